"""
Defines the data models and enums for civic issue reports.
Field names are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

ANONYMOUS_USER = "anonymous"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ReportStatus(str, Enum):
    open = "open"
    in_progress = "inProgress"
    resolved = "resolved"
    # legacy aliases: pending reads as open, closed as resolved
    pending = "pending"
    closed = "closed"

    @classmethod
    def _missing_(cls, value):
        if value == "in_progress":
            return cls.in_progress
        return None


class ReportFilter(str, Enum):
    all = "all"
    my = "my"
    nearby = "nearby"


class Report(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    ticket_code: str
    description: str
    category: str
    latitude: float
    longitude: float
    address: Optional[str] = None
    landmark: Optional[str] = None
    photo: str
    user_id: str = ANONYMOUS_USER
    status: ReportStatus = ReportStatus.open
    created_at: datetime
    updated_at: datetime
    estimated_resolution_days: int

    @field_validator("status", mode="before")
    @classmethod
    def _fold_status_spelling(cls, v):
        if isinstance(v, str):
            return ReportStatus(v)
        return v


class ReportCreate(CamelModel):
    """Unvalidated submission; the store decides what is missing or out of range."""
    description: Optional[str] = None
    category: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    photo: Optional[str] = None
    address: Optional[str] = None
    landmark: Optional[str] = None
    user_id: Optional[str] = None


class ReportQuery(CamelModel):
    filter: ReportFilter = ReportFilter.all
    user_id: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    radius: float = 5.0
    q: Optional[str] = None


class StatusUpdate(CamelModel):
    # validated by lifecycle.normalize_status so bad values surface as InvalidStatus
    status: Any = None


class ReportSummary(CamelModel):
    total: int
    open: int
    in_progress: int
    resolved: int
    by_category: Dict[str, int]
    this_month: int
    resolution_rate: int


class ReportResponse(CamelModel):
    success: bool = True
    report: Report


class ReportCreatedResponse(ReportResponse):
    ticket_id: str


class ReportDetailResponse(ReportResponse):
    display_status: str
    category_label: str
    sla_remaining_days: int


class ReportListResponse(CamelModel):
    success: bool = True
    reports: List[Report]


class ReportSummaryResponse(CamelModel):
    success: bool = True
    summary: ReportSummary
