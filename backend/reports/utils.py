"""
Helpers around the report store: the shared store instance, photo uploads and
parsing of multipart form fields.
"""

import logging
import os
import random
import shutil
import time
from typing import Optional

from fastapi import UploadFile

from backend.config import get_settings
from backend.errors import ValidationFailed
from backend.reports.schemas import ReportCreate
from backend.reports.store import ReportStore

log = logging.getLogger(__name__)

UPLOADS_URL_PREFIX = "/uploads"

_store: Optional[ReportStore] = None


def get_report_store() -> ReportStore:
    """FastAPI dependency returning the process-wide store."""
    global _store
    if _store is None:
        _store = ReportStore(snapshot_file=get_settings().reports_file)
    return _store


def set_report_store(store: Optional[ReportStore]) -> None:
    global _store
    _store = store


def simulate_latency() -> None:
    """Stand-in for a real network round trip (0 seconds by default)."""
    seconds = get_settings().simulated_latency_seconds
    if seconds > 0:
        time.sleep(seconds)


def parse_coordinate(value: Optional[str], name: str) -> Optional[float]:
    if value is None or not str(value).strip():
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationFailed(f"{name} must be a number")


def save_photo(photo: UploadFile, uploads_dir: Optional[str] = None) -> str:
    """Write an uploaded photo to disk and return the URI it is served under."""
    uploads_dir = uploads_dir or get_settings().uploads_dir
    os.makedirs(uploads_dir, exist_ok=True)

    _, ext = os.path.splitext(photo.filename or "")
    unique_suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
    filename = f"photo-{unique_suffix}{ext.lower()}"
    path = os.path.join(uploads_dir, filename)

    with open(path, "wb") as out:
        shutil.copyfileobj(photo.file, out)
    log.debug("Stored upload %s (%s)", filename, photo.content_type)
    return f"{UPLOADS_URL_PREFIX}/{filename}"


def build_report_input(
    description: Optional[str],
    category: Optional[str],
    latitude: Optional[str],
    longitude: Optional[str],
    photo_uri: Optional[str],
    user_id: Optional[str] = None,
    address: Optional[str] = None,
    landmark: Optional[str] = None,
) -> ReportCreate:
    return ReportCreate(
        description=description,
        category=category,
        latitude=parse_coordinate(latitude, "latitude"),
        longitude=parse_coordinate(longitude, "longitude"),
        photo=photo_uri,
        user_id=user_id,
        address=address,
        landmark=landmark,
    )
