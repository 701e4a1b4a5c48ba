from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from backend.authentication.schemas import Session, TokenData
from backend.authentication.utils import SessionManager, get_session_manager
from backend.config import get_settings

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(session: Session, expires_delta: Optional[timedelta] = None) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.token_expire_minutes))
    payload = {
        "sub": session.id,
        "identifier": session.identifier,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> TokenData:
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")
    return TokenData(session_id=payload.get("sub"), identifier=payload.get("identifier"))


def session_from_token(token: str, manager: SessionManager) -> Session:
    if manager.is_token_revoked(token):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token has been revoked")
    data = decode_access_token(token)
    session = manager.get_session(data.session_id) if data.session_id else None
    if session is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Session not found")
    return session


def get_current_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    manager: SessionManager = Depends(get_session_manager),
) -> Session:
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return session_from_token(credentials.credentials, manager)


def get_optional_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    manager: SessionManager = Depends(get_session_manager),
) -> Optional[Session]:
    """Anonymous callers get None; a bad token is still rejected."""
    if credentials is None:
        return None
    return session_from_token(credentials.credentials, manager)
