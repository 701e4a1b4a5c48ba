from datetime import datetime, timezone
from typing import Optional

from pydantic import Field

from backend.reports.schemas import ANONYMOUS_USER, CamelModel


class PendingReport(CamelModel):
    """A report captured on the device but not yet acknowledged by the server."""
    description: str
    category: str
    latitude: float
    longitude: float
    photo: str  # data: URI of the compressed image
    address: Optional[str] = None
    landmark: Optional[str] = None
    user_id: str = ANONYMOUS_USER
    queued_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
