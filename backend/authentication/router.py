from fastapi import APIRouter, Depends
from fastapi.security import HTTPAuthorizationCredentials

from backend.authentication import schemas, security
from backend.authentication.utils import SessionManager, get_session_manager
from backend.reports.utils import simulate_latency

router = APIRouter(prefix="/auth", tags=["authentication"])


# Send OTP
@router.post("/send-otp", response_model=schemas.ChallengeResponse)
def send_otp(body: schemas.OtpRequest, manager: SessionManager = Depends(get_session_manager)):
    simulate_latency()
    manager.request_challenge(body.phone_or_email)
    return schemas.ChallengeResponse()


# Verify OTP -> session + bearer token
@router.post("/verify-otp", response_model=schemas.SessionResponse)
def verify_otp(body: schemas.OtpVerify, manager: SessionManager = Depends(get_session_manager)):
    session = manager.verify_challenge(body.phone_or_email, body.otp)
    token = security.create_access_token(session)
    return schemas.SessionResponse(user=session, token=token)


# Logout
@router.post("/logout", response_model=schemas.MessageResponse)
def logout(
    credentials: HTTPAuthorizationCredentials = Depends(security.bearer_scheme),
    session: schemas.Session = Depends(security.get_current_session),
    manager: SessionManager = Depends(get_session_manager),
):
    manager.revoke_token(credentials.credentials)
    manager.end_session(session.id)
    return schemas.MessageResponse(message="Successfully logged out and token revoked.")


# Who Am I
@router.get("/whoami", response_model=schemas.WhoAmIResponse)
def whoami(session: schemas.Session = Depends(security.get_current_session)):
    return schemas.WhoAmIResponse(user=session)
