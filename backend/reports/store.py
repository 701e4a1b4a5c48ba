"""
In-memory report store.

Reports live in an insertion-ordered dict keyed by id. One lock serialises
writers; readers copy under the same lock. When a snapshot file is given the
store loads it on startup and rewrites it (atomically) after each mutation.
"""

import json
import logging
import math
import os
import shutil
import tempfile
import threading
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from backend.errors import NotFound, ValidationFailed
from backend.geo.distance import distance_km, is_valid_coordinate
from backend.reports import lifecycle
from backend.reports.schemas import (
    ANONYMOUS_USER,
    Report,
    ReportCreate,
    ReportFilter,
    ReportQuery,
    ReportStatus,
    ReportSummary,
)

log = logging.getLogger(__name__)

TICKET_PREFIX = "CP"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def make_ticket_code(now: datetime) -> str:
    """Last six digits of the epoch-millisecond timestamp, prefixed."""
    millis = str(int(now.timestamp() * 1000))
    return f"{TICKET_PREFIX}{millis[-6:]}"


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def validate_input(data: ReportCreate) -> None:
    """Raise ValidationFailed for missing or out-of-range required fields."""
    missing = [
        name for name, value in (
            ("description", data.description),
            ("category", data.category),
            ("latitude", data.latitude),
            ("longitude", data.longitude),
            ("photo", data.photo),
        )
        if value is None or (isinstance(value, str) and _blank(value))
    ]
    if missing:
        raise ValidationFailed("Missing required fields: " + ", ".join(missing))
    if not is_valid_coordinate(data.latitude, data.longitude):
        raise ValidationFailed(
            "Coordinate out of range: latitude must be within [-90, 90] "
            "and longitude within [-180, 180]"
        )


class ReportStore:
    def __init__(self, snapshot_file: Optional[str] = None, clock: Callable[[], datetime] = utcnow):
        self._reports: Dict[str, Report] = {}
        self._lock = threading.Lock()
        self._snapshot_file = snapshot_file
        self._clock = clock
        if snapshot_file:
            self._load_snapshot()

    # ────────────────────────────────
    # JSON snapshot
    # ────────────────────────────────
    def _load_snapshot(self) -> None:
        if not os.path.exists(self._snapshot_file):
            return
        with open(self._snapshot_file, "r", encoding="utf-8") as f:
            content = f.read().strip()
        if not content:
            return
        for raw in json.loads(content):
            report = Report.model_validate(raw)
            self._reports[report.id] = report
        log.info("Loaded %d reports from %s", len(self._reports), self._snapshot_file)

    def _save_snapshot(self) -> None:
        if not self._snapshot_file:
            return
        directory = os.path.dirname(os.path.abspath(self._snapshot_file))
        os.makedirs(directory, exist_ok=True)
        tmp_fd, tmp_path = tempfile.mkstemp(dir=directory)
        os.close(tmp_fd)
        try:
            data = [r.model_dump(mode="json", by_alias=True) for r in self._reports.values()]
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            shutil.move(tmp_path, self._snapshot_file)
        finally:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)

    # ────────────────────────────────
    # Operations
    # ────────────────────────────────
    def validate(self, data: ReportCreate) -> None:
        validate_input(data)

    def create(self, data: ReportCreate) -> Report:
        self.validate(data)
        now = self._clock()
        category = data.category.strip()
        report = Report(
            id=str(uuid.uuid4()),
            ticket_code=make_ticket_code(now),
            description=data.description.strip(),
            category=category,
            latitude=data.latitude,
            longitude=data.longitude,
            address=(data.address or "").strip() or None,
            landmark=(data.landmark or "").strip() or None,
            photo=data.photo,
            user_id=data.user_id or ANONYMOUS_USER,
            status=ReportStatus.open,
            created_at=now,
            updated_at=now,
            estimated_resolution_days=lifecycle.estimated_resolution_days(category),
        )
        with self._lock:
            self._reports[report.id] = report
            self._save_snapshot()
        log.info(
            "Report %s created (%s)", report.ticket_code, report.category,
            extra={"report_id": report.id, "ticket_code": report.ticket_code},
        )
        return report

    def get(self, report_id: str) -> Report:
        with self._lock:
            report = self._reports.get(report_id)
        if report is None:
            raise NotFound(f"Report {report_id} not found")
        return report

    def all(self) -> List[Report]:
        with self._lock:
            return list(self._reports.values())

    def __len__(self) -> int:
        return len(self._reports)

    def list(self, query: Optional[ReportQuery] = None) -> List[Report]:
        """Matching reports in insertion order (nearby results are not re-sorted by distance)."""
        query = query or ReportQuery()
        if query.filter is ReportFilter.my and _blank(query.user_id):
            raise ValidationFailed("userId is required for filter=my")
        if query.filter is ReportFilter.nearby:
            if query.lat is None or query.lng is None:
                raise ValidationFailed("lat and lng are required for filter=nearby")
            if not is_valid_coordinate(query.lat, query.lng):
                raise ValidationFailed("lat/lng out of range")
            if not (query.radius >= 0):
                raise ValidationFailed("radius must be a non-negative number")

        needle = (query.q or "").strip().lower()
        return [
            r for r in self.all()
            if _matches_text(r, needle) and _matches_filter(r, query)
        ]

    def set_status(self, report_id: str, status) -> Report:
        new_status = lifecycle.normalize_status(status)
        with self._lock:
            current = self._reports.get(report_id)
            if current is None:
                raise NotFound(f"Report {report_id} not found")
            now = max(self._clock(), current.created_at)
            updated = current.model_copy(update={"status": new_status, "updated_at": now})
            self._reports[report_id] = updated
            self._save_snapshot()
        log.info(
            "Report %s status %s -> %s", updated.ticket_code, current.status.value, new_status.value,
            extra={"report_id": report_id, "status": new_status.value},
        )
        return updated

    def summary(self, now: Optional[datetime] = None) -> ReportSummary:
        now = now or self._clock()
        reports = self.all()
        counts = {ReportStatus.open: 0, ReportStatus.in_progress: 0, ReportStatus.resolved: 0}
        by_category: Dict[str, int] = {}
        this_month = 0
        for r in reports:
            counts[lifecycle.canonical_status(r.status)] += 1
            by_category[r.category] = by_category.get(r.category, 0) + 1
            created = r.created_at.astimezone(now.tzinfo) if now.tzinfo else r.created_at
            if created.year == now.year and created.month == now.month:
                this_month += 1

        total = len(reports)
        resolved = counts[ReportStatus.resolved]
        return ReportSummary(
            total=total,
            open=counts[ReportStatus.open],
            in_progress=counts[ReportStatus.in_progress],
            resolved=resolved,
            by_category=by_category,
            this_month=this_month,
            resolution_rate=round(resolved / total * 100) if total else 0,
        )


def _matches_text(report: Report, needle: str) -> bool:
    if not needle:
        return True
    return any(
        field and needle in field.lower()
        for field in (report.description, report.category, report.address)
    )


def _matches_filter(report: Report, query: ReportQuery) -> bool:
    if query.filter is ReportFilter.my:
        return report.user_id == query.user_id
    if query.filter is ReportFilter.nearby:
        lat, lng = report.latitude, report.longitude
        if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in (lat, lng)):
            return False
        distance = distance_km(query.lat, query.lng, lat, lng)
        # NaN compares false, so a bad coordinate never slips through
        return not math.isnan(distance) and distance <= query.radius
    return True
