"""
Authentication primitives: password/OTP hashing, token issuance, password policy.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Optional
import re
import secrets

import bcrypt
import jwt

from app.config import settings
from app.exceptions import ServiceValidationError, UnauthorizedError

_LOWER = re.compile(r"[a-z]")
_UPPER = re.compile(r"[A-Z]")
_DIGIT = re.compile(r"\d")

# bcrypt only accepts this many bytes
MAX_PASSWORD_BYTES = 72


def hash_secret(value: str) -> str:
    """bcrypt hash of a password or OTP"""
    return bcrypt.hashpw(value.encode(), bcrypt.gensalt()).decode()


def verify_secret(plain: str, hashed: Optional[str]) -> bool:
    if not plain or not hashed:
        return False
    try:
        return bcrypt.checkpw(plain.encode(), hashed.encode())
    except ValueError:
        # Malformed stored hash or an over-long password
        return False


def generate_otp(length: Optional[int] = None) -> str:
    length = length or settings.otp_length
    return "".join(secrets.choice("0123456789") for _ in range(length))


def generate_temp_password() -> str:
    """Six-digit temporary password sent to new customers"""
    return f"{secrets.randbelow(900000) + 100000}"


def password_policy_errors(password: str) -> list:
    """Messages for each password rule ``password`` breaks"""
    errors = []
    if len(password or "") < 8:
        errors.append("Password must be at least 8 characters long")
    if not _LOWER.search(password or ""):
        errors.append("Password must contain at least one lowercase letter")
    if not _UPPER.search(password or ""):
        errors.append("Password must contain at least one uppercase letter")
    if not _DIGIT.search(password or ""):
        errors.append("Password must contain at least one number")
    if len((password or "").encode()) > MAX_PASSWORD_BYTES:
        errors.append(f"Password must be at most {MAX_PASSWORD_BYTES} bytes long")
    return errors


def validate_password_policy(password: str) -> None:
    errors = password_policy_errors(password)
    if errors:
        raise ServiceValidationError(errors[0], details={"errors": errors})


def create_access_token(user_id, role: str, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.utcnow() + (expires_delta or timedelta(days=settings.jwt_expire_days))
    payload = {"sub": str(user_id), "role": role, "exp": expire}
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Dict[str, Any]:
    try:
        return jwt.decode(
            token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Token has expired", code="TOKEN_EXPIRED")
    except jwt.InvalidTokenError:
        raise UnauthorizedError("Invalid token", code="INVALID_TOKEN")
