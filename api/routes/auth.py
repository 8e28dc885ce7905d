"""Login, owner OTP and password routes"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
import logging

from api.dependencies import get_current_user, get_db
from api.rate_limit import limiter
from api.responses import success_response
from app.config import settings
from domain.models import AppUser
from domain.schemas import (
    ChangePasswordRequest,
    LoginRequest,
    OtpChallengeResponse,
    OtpResendRequest,
    OtpVerifyRequest,
    TokenResponse,
    UserSummary,
)
from services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["Auth"])
logger = logging.getLogger("tiffinmate.api.auth")


def _login_payload(result: dict):
    if result.get("requires_otp"):
        return OtpChallengeResponse.model_validate(result)
    return TokenResponse.model_validate(result, from_attributes=True)


@router.post("/login")
@limiter.limit(settings.rate_limit_login)
def login(request: Request, body: LoginRequest, db: Session = Depends(get_db)):
    """
    Log in with a user code or mobile number.

    Owners get an OTP challenge; customers and delivery staff get a token.
    """
    result = AuthService.login(db, body.identifier, body.password)
    return success_response(data=_login_payload(result))


@router.post("/verify-otp")
@limiter.limit(settings.rate_limit_otp)
def verify_otp(request: Request, body: OtpVerifyRequest, db: Session = Depends(get_db)):
    result = AuthService.verify_otp(db, body.user_id, body.otp)
    return success_response(data=_login_payload(result), message="Login successful")


@router.post("/resend-otp")
@limiter.limit(settings.rate_limit_otp)
def resend_otp(request: Request, body: OtpResendRequest, db: Session = Depends(get_db)):
    result = AuthService.resend_otp(db, body.user_id)
    return success_response(data={"mobile": result["mobile"]}, message=result["message"])


@router.post("/change-password")
def change_password(
    body: ChangePasswordRequest,
    user: AppUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user = AuthService.change_password(db, user, body.current_password, body.new_password)
    return success_response(
        data=UserSummary.model_validate(user), message="Password changed successfully"
    )


@router.get("/me")
def get_me(user: AppUser = Depends(get_current_user)):
    return success_response(data=UserSummary.model_validate(user))
