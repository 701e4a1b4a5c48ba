"""
Handles report submission, listing/filtering, retrieval and status changes.
Submitting and browsing are open to anonymous citizens; a bearer session, when
present, becomes the report owner and the default for filter=my.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from backend.authentication.schemas import Session
from backend.authentication.security import get_optional_session
from backend.config import get_settings
from backend.errors import ValidationFailed
from backend.reports import lifecycle, schemas, utils
from backend.reports.store import ReportStore, utcnow

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("", response_model=schemas.ReportListResponse)
def list_reports(
    filter: schemas.ReportFilter = Query(schemas.ReportFilter.all),
    user_id: Optional[str] = Query(None, alias="userId"),
    lat: Optional[float] = Query(None),
    lng: Optional[float] = Query(None),
    radius: Optional[float] = Query(None, description="Kilometres, default 5"),
    q: Optional[str] = Query(None, description="Case-insensitive text search"),
    session: Optional[Session] = Depends(get_optional_session),
    store: ReportStore = Depends(utils.get_report_store),
):
    """List reports in submission order, optionally restricted to mine or nearby."""
    if filter is schemas.ReportFilter.my and not user_id and session is not None:
        user_id = session.id

    query = schemas.ReportQuery(
        filter=filter,
        user_id=user_id,
        lat=lat,
        lng=lng,
        radius=get_settings().default_radius_km if radius is None else radius,
        q=q,
    )
    return schemas.ReportListResponse(reports=store.list(query))


@router.post("", response_model=schemas.ReportCreatedResponse)
def submit_report(
    photo: Optional[UploadFile] = File(None),
    description: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    latitude: Optional[str] = Form(None),
    longitude: Optional[str] = Form(None),
    user_id: Optional[str] = Form(None, alias="userId"),
    address: Optional[str] = Form(None),
    landmark: Optional[str] = Form(None),
    session: Optional[Session] = Depends(get_optional_session),
    store: ReportStore = Depends(utils.get_report_store),
):
    """Submit a new geotagged photo report (multipart form)."""
    if photo is None or not photo.filename:
        raise ValidationFailed("Missing required fields: photo")

    data = utils.build_report_input(
        description=description,
        category=category,
        latitude=latitude,
        longitude=longitude,
        photo_uri="pending-upload",
        user_id=user_id or (session.id if session else None),
        address=address,
        landmark=landmark,
    )
    # validate before anything touches the disk
    store.validate(data)

    utils.simulate_latency()
    data = data.model_copy(update={"photo": utils.save_photo(photo)})
    report = store.create(data)
    return schemas.ReportCreatedResponse(report=report, ticket_id=report.ticket_code)


@router.get("/summary", response_model=schemas.ReportSummaryResponse)
def get_summary(store: ReportStore = Depends(utils.get_report_store)):
    """Aggregate counts for the analytics dashboard."""
    return schemas.ReportSummaryResponse(summary=store.summary())


@router.get("/{report_id}", response_model=schemas.ReportDetailResponse)
def get_report(report_id: str, store: ReportStore = Depends(utils.get_report_store)):
    report = store.get(report_id)
    return schemas.ReportDetailResponse(
        report=report,
        display_status=lifecycle.display_status(report.status),
        category_label=lifecycle.format_category(report.category),
        sla_remaining_days=lifecycle.sla_remaining_days(report, utcnow(), get_settings().sla_days),
    )


@router.put("/{report_id}/status", response_model=schemas.ReportResponse)
def update_report_status(
    report_id: str,
    update: schemas.StatusUpdate,
    store: ReportStore = Depends(utils.get_report_store),
):
    """Move a report to any accepted status (backward moves included)."""
    return schemas.ReportResponse(report=store.set_status(report_id, update.status))
