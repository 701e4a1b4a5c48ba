import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.responses import RedirectResponse

from backend.authentication.router import router as auth_router
from backend.config import Settings, get_settings
from backend.errors import CivicPulseError
from backend.logging_config import configure_logging
from backend.reports.router import router as reports_router

log = logging.getLogger(__name__)


def _cors_kwargs(settings: Settings) -> dict:
    kwargs = dict(allow_methods=["*"], allow_headers=["*"], allow_credentials=True)
    if settings.cors_origins:
        kwargs.update(allow_origins=settings.cors_origins)
    else:
        # Dev default: any localhost port
        kwargs.update(allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$")
    return kwargs


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        os.makedirs(settings.uploads_dir, exist_ok=True)
        yield

    app = FastAPI(
        title="Civic Pulse API",
        lifespan=lifespan,
        version="1.0.0",
        description="Citizen reports of municipal issues: submit, browse, filter, track.",
    )
    app.add_middleware(CORSMiddleware, **_cors_kwargs(settings))

    @app.exception_handler(CivicPulseError)
    async def civic_pulse_error_handler(request: Request, exc: CivicPulseError):
        log.warning("%s %s -> %s: %s", request.method, request.url.path, type(exc).__name__, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.message})

    prefix = settings.api_prefix
    app.include_router(auth_router, prefix=prefix)
    app.include_router(reports_router, prefix=prefix)

    # created on startup, not at import
    app.mount(
        f"{prefix}/uploads",
        StaticFiles(directory=settings.uploads_dir, check_dir=False),
        name="uploads",
    )

    @app.get("/", include_in_schema=False)
    def root() -> RedirectResponse:
        return RedirectResponse(url="/docs")

    @app.get(f"{prefix}/health", tags=["meta"])
    def health():
        return {"status": "OK", "message": "Civic Pulse API is running"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "backend.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "5000")),
        reload=True,
    )
