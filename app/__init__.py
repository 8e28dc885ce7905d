"""
App package - Application configuration and core utilities.
Contains settings, exceptions and clock helpers.
"""

from app.config import settings
from app.exceptions import (
    ServiceError,
    ServiceValidationError,
    UnauthorizedError,
    ForbiddenError,
    NotFoundError,
    ConflictError,
    ServiceUnavailableError,
)

__all__ = [
    "settings",
    "ServiceError",
    "ServiceValidationError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "ServiceUnavailableError",
]
