"""
Runtime settings for the Civic Pulse API.

Values come from environment variables; a `.env` file next to the project
root is loaded first so `os.getenv` sees it everywhere.
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.dirname(os.path.abspath(__file__))


def _normalize_prefix(raw: str) -> str:
    prefix = raw.strip()
    if not prefix:
        return ""
    if not prefix.startswith("/"):
        prefix = "/" + prefix
    # /api/reports, not /api//reports
    return prefix.rstrip("/")


@dataclass(frozen=True)
class Settings:
    api_prefix: str = ""
    cors_origins: Optional[List[str]] = None
    jwt_secret: str = "dev-secret-change"
    jwt_algorithm: str = "HS256"
    token_expire_minutes: int = 60 * 24
    otp_code: str = "123456"
    uploads_dir: str = os.path.join(BASE_DIR, "data", "uploads")
    reports_file: Optional[str] = None
    default_radius_km: float = 5.0
    sla_days: int = 7
    simulated_latency_seconds: float = 0.0
    log_level: str = "INFO"
    log_format: str = "text"


@lru_cache()
def get_settings() -> Settings:
    cors_env = os.getenv("CORS_ORIGINS")
    cors_origins = None
    if cors_env:
        cors_origins = [o.strip() for o in cors_env.split(",") if o.strip()]

    return Settings(
        api_prefix=_normalize_prefix(os.getenv("API_PREFIX", "")),
        cors_origins=cors_origins,
        jwt_secret=os.getenv("JWT_SECRET", Settings.jwt_secret),
        jwt_algorithm=os.getenv("JWT_ALGORITHM", Settings.jwt_algorithm),
        token_expire_minutes=int(os.getenv("TOKEN_EXPIRE_MINUTES", str(Settings.token_expire_minutes))),
        otp_code=os.getenv("OTP_CODE", Settings.otp_code),
        uploads_dir=os.getenv("UPLOADS_DIR", Settings.uploads_dir),
        reports_file=os.getenv("REPORTS_FILE") or None,
        default_radius_km=float(os.getenv("DEFAULT_RADIUS_KM", str(Settings.default_radius_km))),
        sla_days=int(os.getenv("SLA_DAYS", str(Settings.sla_days))),
        simulated_latency_seconds=float(os.getenv("SIMULATED_LATENCY_SECONDS", "0")),
        log_level=os.getenv("LOG_LEVEL", Settings.log_level).upper(),
        log_format=os.getenv("LOG_FORMAT", Settings.log_format).lower(),
    )
