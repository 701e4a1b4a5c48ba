"""
Report lifecycle helpers.

There is no state machine object at runtime: a report's `status` field is the
whole state, any accepted status may follow any other, and everything here is
a pure view over that field.
"""

import math
import re
from datetime import datetime
from typing import Union

from backend.errors import InvalidStatus
from backend.reports.schemas import Report, ReportStatus

SLA_DAYS = 7
DEFAULT_RESOLUTION_DAYS = 7

RESOLUTION_DAYS_BY_CATEGORY = {
    "Roads": 7,
    "Water": 10,
    "Electricity": 5,
    "Waste": 3,
    "Safety": 1,
    "Other": 7,
}

_CANONICAL = {
    ReportStatus.open: ReportStatus.open,
    ReportStatus.pending: ReportStatus.open,
    ReportStatus.in_progress: ReportStatus.in_progress,
    ReportStatus.resolved: ReportStatus.resolved,
    ReportStatus.closed: ReportStatus.resolved,
}

_STATUS_LABELS = {
    "open": "Open",
    "inProgress": "In Progress",
    "in_progress": "In Progress",
    "resolved": "Resolved",
    "pending": "Pending",
    "closed": "Closed",
}


def normalize_status(value: Union[str, ReportStatus, None]) -> ReportStatus:
    """Parse an incoming status, folding `in_progress` into `inProgress`."""
    if isinstance(value, ReportStatus):
        return value
    try:
        return ReportStatus(value.strip() if isinstance(value, str) else value)
    except (ValueError, TypeError):
        raise InvalidStatus(f"Invalid status '{value}'. Use one of: "
                            + ", ".join(s.value for s in ReportStatus))


def canonical_status(status: ReportStatus) -> ReportStatus:
    """open, inProgress or resolved, with legacy aliases folded in."""
    return _CANONICAL[normalize_status(status)]


def estimated_resolution_days(category: str) -> int:
    return RESOLUTION_DAYS_BY_CATEGORY.get(category, DEFAULT_RESOLUTION_DAYS)


def sla_remaining_days(report: Report, now: datetime, sla_days: int = SLA_DAYS) -> int:
    """Days left in the fixed SLA window; independent of the category estimate."""
    elapsed_days = (now - report.created_at).total_seconds() / 86400
    return max(0, sla_days - math.ceil(elapsed_days))


def label_case(text: str) -> str:
    """camelCase -> Proper Case ("waterLeak" -> "Water Leak")."""
    if not text:
        return ""
    spaced = re.sub(r"([A-Z])", r" \1", text)
    return (spaced[:1].upper() + spaced[1:]).strip()


def display_status(status: Union[str, ReportStatus]) -> str:
    raw = status.value if isinstance(status, ReportStatus) else status
    return _STATUS_LABELS.get(raw) or label_case(raw)


def format_category(category: str) -> str:
    if not category:
        return ""
    return " ".join(word[:1].upper() + word[1:].lower() for word in category.split(" "))
