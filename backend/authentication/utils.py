"""
Session bookkeeping for the OTP login stub. Sessions live in memory only and
disappear on logout or process exit.
"""

import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Dict, Optional, Set

from backend.authentication.challenge import ChallengeIssuer, FixedCodeIssuer
from backend.authentication.schemas import Session
from backend.config import get_settings
from backend.errors import InvalidCode

log = logging.getLogger(__name__)


class SessionManager:
    def __init__(self, issuer: Optional[ChallengeIssuer] = None):
        self.issuer = issuer or FixedCodeIssuer()
        self._sessions: Dict[str, Session] = {}
        self._revoked_tokens: Set[str] = set()
        self._lock = threading.Lock()

    def request_challenge(self, identifier: str) -> bool:
        """Always accepted; no rate limiting."""
        self.issuer.issue(identifier)
        return True

    def verify_challenge(self, identifier: str, code: str) -> Session:
        if not self.issuer.verify(identifier, code):
            log.warning("Invalid OTP for %s", identifier)
            raise InvalidCode("Invalid OTP")

        session = Session(
            id=str(uuid.uuid4()),
            identifier=identifier,
            created_at=datetime.now(timezone.utc),
        )
        with self._lock:
            self._sessions[session.id] = session
        log.info("Session %s started for %s", session.id, identifier, extra={"session_id": session.id})
        return session

    def get_session(self, session_id: str) -> Optional[Session]:
        with self._lock:
            return self._sessions.get(session_id)

    def end_session(self, session_id: str) -> bool:
        with self._lock:
            removed = self._sessions.pop(session_id, None)
        if removed:
            log.info("Session %s ended", session_id, extra={"session_id": session_id})
        return removed is not None

    # Revoked bearer tokens
    def revoke_token(self, token: str) -> None:
        with self._lock:
            self._revoked_tokens.add(token)

    def is_token_revoked(self, token: str) -> bool:
        with self._lock:
            return token in self._revoked_tokens


_manager: Optional[SessionManager] = None


def get_session_manager() -> SessionManager:
    global _manager
    if _manager is None:
        _manager = SessionManager(FixedCodeIssuer(get_settings().otp_code))
    return _manager


def set_session_manager(manager: Optional[SessionManager]) -> None:
    global _manager
    _manager = manager
