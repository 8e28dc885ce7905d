"""
Authentication: credential login, owner OTP second factor, password changes.
"""

from datetime import datetime, timedelta
from typing import Any, Dict
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from app.config import settings
from app.exceptions import (
    ForbiddenError,
    NotFoundError,
    ServiceUnavailableError,
    ServiceValidationError,
    UnauthorizedError,
)
from domain.enums import UserRole
from domain.models import AppUser
from repositories import UserRepository
from services import security
from services.sms_service import SmsService

logger = logging.getLogger("tiffinmate.auth")


class AuthService:
    @staticmethod
    def _token_response(user: AppUser) -> Dict[str, Any]:
        return {
            "token": security.create_access_token(user.id, user.role.value),
            "user": user,
            "requires_otp": False,
            "force_password_change": bool(user.force_password_change),
        }

    @staticmethod
    def _issue_otp(db: Session, user: AppUser) -> None:
        """Generate, store (hashed) and SMS a fresh OTP; clears it again if the SMS fails"""
        otp = security.generate_otp()
        user.otp_hash = security.hash_secret(otp)
        user.otp_expires_at = datetime.utcnow() + timedelta(minutes=settings.otp_expiry_minutes)
        user.otp_attempts = 0

        result = SmsService.send_otp(db, user, otp)
        if not result.get("success"):
            AuthService._clear_otp(user)
            db.commit()
            raise ServiceUnavailableError(
                "Failed to send OTP. Please try again later.", code="OTP_SEND_FAILED"
            )
        db.commit()
        logger.info("OTP issued for user %s", user.user_code)

    @staticmethod
    def _clear_otp(user: AppUser) -> None:
        user.otp_hash = None
        user.otp_expires_at = None
        user.otp_attempts = 0

    @staticmethod
    def login(db: Session, identifier: str, password: str) -> Dict[str, Any]:
        """
        First login step.

        Owners receive an OTP by SMS and must call ``verify_otp``; every other
        role receives a token straight away.

        Raises:
            UnauthorizedError: unknown user or wrong password
            ForbiddenError: deactivated or deleted account
            ServiceUnavailableError: the owner's OTP could not be sent
        """
        user = UserRepository(db).get_by_login(identifier.strip())
        if not user or not security.verify_secret(password, user.password_hash):
            logger.warning("Failed login for %s", identifier)
            raise UnauthorizedError("Invalid credentials", code="INVALID_CREDENTIALS")
        if user.is_deleted or not user.is_active:
            raise ForbiddenError(
                "Your account is inactive. Please contact the administrator.",
                code="ACCOUNT_INACTIVE",
            )

        if user.role == UserRole.OWNER:
            AuthService._issue_otp(db, user)
            return {
                "requires_otp": True,
                "user_id": user.id,
                "mobile": user.masked_mobile,
                "message": "OTP sent to your registered mobile number",
            }

        logger.info("User %s logged in", user.user_code)
        return AuthService._token_response(user)

    @staticmethod
    def verify_otp(db: Session, user_id: UUID, otp: str) -> Dict[str, Any]:
        """Second login step for owners"""
        user = UserRepository(db).get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        if user.role != UserRole.OWNER:
            raise ForbiddenError("OTP verification is only required for owners")

        if not user.otp_hash or not user.otp_expires_at:
            raise ServiceValidationError("No OTP generated", code="OTP_MISSING")
        if user.otp_attempts >= settings.otp_max_attempts:
            raise ServiceValidationError(
                "Maximum OTP attempts exceeded", code="OTP_ATTEMPTS_EXCEEDED"
            )
        if datetime.utcnow() > user.otp_expires_at:
            raise ServiceValidationError("OTP expired", code="OTP_EXPIRED")

        if not security.verify_secret(otp, user.otp_hash):
            user.otp_attempts += 1
            db.commit()
            remaining = max(0, settings.otp_max_attempts - user.otp_attempts)
            raise ServiceValidationError(
                "Invalid OTP",
                details={"attempts_remaining": remaining},
                code="OTP_INVALID",
            )

        AuthService._clear_otp(user)
        db.commit()
        logger.info("Owner %s verified OTP", user.user_code)
        return AuthService._token_response(user)

    @staticmethod
    def resend_otp(db: Session, user_id: UUID) -> Dict[str, Any]:
        user = UserRepository(db).get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        if user.role != UserRole.OWNER:
            raise ForbiddenError("OTP is only used for owner login")
        if user.is_deleted or not user.is_active:
            raise ForbiddenError("Your account is inactive", code="ACCOUNT_INACTIVE")
        AuthService._issue_otp(db, user)
        return {"message": "OTP resent successfully", "mobile": user.masked_mobile}

    @staticmethod
    def change_password(
        db: Session, user: AppUser, current_password: str, new_password: str
    ) -> AppUser:
        if not security.verify_secret(current_password, user.password_hash):
            raise UnauthorizedError("Current password is incorrect", code="INVALID_PASSWORD")
        security.validate_password_policy(new_password)
        if current_password == new_password:
            raise ServiceValidationError(
                "New password must be different from current password"
            )

        try:
            user.password_hash = security.hash_secret(new_password)
            user.is_password_changed = True
            user.force_password_change = False
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Error changing password for %s", user.user_code)
            raise
        logger.info("Password changed for %s", user.user_code)
        return user

    @staticmethod
    def authenticate_token(db: Session, token: str) -> AppUser:
        """Resolve a bearer token to a live user"""
        payload = security.decode_access_token(token)
        try:
            user_id = UUID(payload.get("sub", ""))
        except ValueError:
            raise UnauthorizedError("Invalid token", code="INVALID_TOKEN")
        user = UserRepository(db).get_by_id(user_id)
        if not user or user.is_deleted:
            raise UnauthorizedError("User not found", code="USER_NOT_FOUND")
        if not user.is_active:
            raise ForbiddenError("Your account is inactive", code="ACCOUNT_INACTIVE")
        return user
