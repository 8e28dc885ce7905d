"""
API dependencies for dependency injection
"""

from typing import Callable, Generator, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.exceptions import ForbiddenError, UnauthorizedError
from domain.enums import UserRole
from domain.models import AppUser, get_db_session
from services.auth_service import AuthService

bearer_scheme = HTTPBearer(auto_error=False)


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency for FastAPI routes.

    Usage:
        @router.get("/example")
        def example(db: Session = Depends(get_db)):
            # Use db session here
            pass
    """
    yield from get_db_session()


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> AppUser:
    """Resolve the ``Authorization: Bearer <token>`` header to a live user"""
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Authentication required", code="TOKEN_MISSING")
    return AuthService.authenticate_token(db, credentials.credentials)


def require_roles(*roles: UserRole) -> Callable[..., AppUser]:
    """
    Role guard.

    Usage:
        @router.get("/owner-only")
        def handler(owner: AppUser = Depends(require_roles(UserRole.OWNER))):
            ...
    """

    def guard(user: AppUser = Depends(get_current_user)) -> AppUser:
        if user.role not in roles:
            raise ForbiddenError(
                "You do not have permission to perform this action",
                code="INSUFFICIENT_ROLE",
            )
        return user

    return guard


require_owner = require_roles(UserRole.OWNER)
require_customer = require_roles(UserRole.CUSTOMER)
require_staff = require_roles(UserRole.OWNER, UserRole.DELIVERY)
