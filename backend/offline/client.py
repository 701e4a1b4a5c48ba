"""
Python client for the Civic Pulse API.

Mirrors what the mobile app does: keeps the current session and a cache of
reports in durable local state, submits reports straight away when online and
queues them when offline, flushing the queue once connectivity returns.
"""

import base64
import binascii
import logging
import mimetypes
from typing import Any, Dict, List, Optional, Tuple

import httpx

from backend.errors import InvalidCode, NotFound, InvalidStatus, ValidationFailed
from backend.offline.queue import OfflineQueue
from backend.offline.schemas import PendingReport
from backend.offline.storage import REPORTS_KEY, SESSION_KEY, LocalStorage
from backend.reports.schemas import Report, ReportCreate
from backend.reports.store import validate_input

log = logging.getLogger(__name__)


def decode_photo(photo: str) -> Tuple[str, bytes, str]:
    """Turn a `data:<mime>;base64,<payload>` URI into a multipart file tuple."""
    if not photo.startswith("data:") or "," not in photo:
        raise ValidationFailed("photo must be a base64 data URI")
    header, payload = photo[5:].split(",", 1)
    content_type = header.split(";")[0] or "application/octet-stream"
    try:
        content = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationFailed("photo data URI is not valid base64")
    ext = mimetypes.guess_extension(content_type) or ""
    return f"photo{ext}", content, content_type


def validate_pending(pending: PendingReport) -> None:
    """Raise ValidationFailed for a report the server would reject on create."""
    decode_photo(pending.photo)
    validate_input(ReportCreate(
        description=pending.description,
        category=pending.category,
        latitude=pending.latitude,
        longitude=pending.longitude,
        photo=pending.photo,
    ))


class CivicPulseClient:
    def __init__(self, http: httpx.Client, storage: LocalStorage, online: bool = True):
        self.http = http
        self.storage = storage
        self.queue = OfflineQueue(storage, submit=self._post_report, online=online)

    # ---------------- Session ----------------
    @property
    def session(self) -> Optional[Dict[str, Any]]:
        return self.storage.get(SESSION_KEY)

    def _auth_headers(self) -> Dict[str, str]:
        session = self.session
        if session and session.get("token"):
            return {"Authorization": f"Bearer {session['token']}"}
        return {}

    def send_otp(self, phone_or_email: str) -> bool:
        resp = self.http.post("/auth/send-otp", json={"phoneOrEmail": phone_or_email})
        resp.raise_for_status()
        return resp.json()["success"]

    def login(self, phone_or_email: str, otp: str) -> Dict[str, Any]:
        resp = self.http.post("/auth/verify-otp", json={"phoneOrEmail": phone_or_email, "otp": otp})
        if resp.status_code == 400:
            raise InvalidCode(resp.json().get("error", "Invalid OTP"))
        resp.raise_for_status()
        body = resp.json()
        session = {"user": body["user"], "token": body["token"]}
        self.storage.set(SESSION_KEY, session)
        return session

    def logout(self) -> None:
        headers = self._auth_headers()
        try:
            if headers:
                self.http.post("/auth/logout", headers=headers)
        finally:
            self.storage.remove(SESSION_KEY)

    def _user_id(self) -> Optional[str]:
        session = self.session
        return session["user"]["id"] if session else None

    # ---------------- Reports ----------------
    def _post_report(self, pending: PendingReport) -> Report:
        data = {
            "description": pending.description,
            "category": pending.category,
            "latitude": str(pending.latitude),
            "longitude": str(pending.longitude),
            "userId": pending.user_id,
        }
        if pending.address:
            data["address"] = pending.address
        if pending.landmark:
            data["landmark"] = pending.landmark

        resp = self.http.post(
            "/reports",
            data=data,
            files={"photo": decode_photo(pending.photo)},
            headers=self._auth_headers(),
        )
        if resp.status_code == 400:
            raise ValidationFailed(resp.json().get("error", "Report rejected"))
        resp.raise_for_status()
        report = Report.model_validate(resp.json()["report"])
        self._cache_report(report)
        return report

    def _cache_report(self, report: Report) -> None:
        cached = self.storage.get(REPORTS_KEY, [])
        entry = report.model_dump(mode="json", by_alias=True)
        for i, existing in enumerate(cached):
            if existing.get("id") == report.id:
                cached[i] = entry
                break
        else:
            cached.append(entry)
        self.storage.set(REPORTS_KEY, cached)

    def new_report(self, **fields) -> PendingReport:
        """Build a pending report owned by the current session (or anonymous)."""
        fields.setdefault("user_id", self._user_id() or "anonymous")
        return PendingReport(**fields)

    def submit_report(self, pending: PendingReport) -> Optional[Report]:
        """Send now when online; otherwise queue it and return None."""
        validate_pending(pending)
        if not self.queue.online:
            self.queue.enqueue(pending)
            return None
        return self._post_report(pending)

    def list_reports(
        self,
        filter: str = "all",
        lat: Optional[float] = None,
        lng: Optional[float] = None,
        radius: Optional[float] = None,
        q: Optional[str] = None,
    ) -> List[Report]:
        params: Dict[str, Any] = {"filter": filter}
        if filter == "my" and self._user_id():
            params["userId"] = self._user_id()
        for key, value in (("lat", lat), ("lng", lng), ("radius", radius), ("q", q)):
            if value is not None:
                params[key] = value

        resp = self.http.get("/reports", params=params, headers=self._auth_headers())
        if resp.status_code == 400:
            raise ValidationFailed(resp.json().get("error", "Bad filter"))
        resp.raise_for_status()
        reports = [Report.model_validate(r) for r in resp.json()["reports"]]
        if filter == "all" and not q:
            self.storage.set(REPORTS_KEY, [r.model_dump(mode="json", by_alias=True) for r in reports])
        return reports

    def cached_reports(self) -> List[Report]:
        return [Report.model_validate(r) for r in self.storage.get(REPORTS_KEY, [])]

    def update_status(self, report_id: str, status: str) -> Report:
        resp = self.http.put(f"/reports/{report_id}/status", json={"status": status})
        if resp.status_code == 404:
            raise NotFound(resp.json().get("error", "Report not found"))
        if resp.status_code == 400:
            raise InvalidStatus(resp.json().get("error", "Invalid status"))
        resp.raise_for_status()
        report = Report.model_validate(resp.json()["report"])
        self._cache_report(report)
        return report

    # ---------------- Connectivity ----------------
    def set_online(self, online: bool) -> Optional[int]:
        flushed = self.queue.set_online(online)
        if flushed:
            log.info("Back online: %d queued reports synced", flushed)
        return flushed
