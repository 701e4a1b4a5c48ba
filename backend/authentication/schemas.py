from datetime import datetime
from typing import Optional

from pydantic import field_validator

from backend.reports.schemas import CamelModel


# OTP CHALLENGE CONTRACT
class OtpRequest(CamelModel):
    phone_or_email: str

    @field_validator("phone_or_email")
    @classmethod
    def validate_identifier(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Phone number or email is required")
        return v


class OtpVerify(OtpRequest):
    otp: str


# SESSION (what the client keeps as its current user)
class Session(CamelModel):
    id: str
    identifier: str
    created_at: datetime


class TokenData(CamelModel):
    session_id: Optional[str] = None
    identifier: Optional[str] = None


# RESPONSES
class ChallengeResponse(CamelModel):
    success: bool = True
    message: str = "OTP sent successfully"


class SessionResponse(CamelModel):
    success: bool = True
    user: Session
    token: str


class WhoAmIResponse(CamelModel):
    success: bool = True
    user: Session


class MessageResponse(CamelModel):
    success: bool = True
    message: str
