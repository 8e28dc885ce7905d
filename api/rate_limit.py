"""
Request rate limiting (slowapi).

Limits key on the client address. ``DISABLE_RATE_LIMIT`` turns them off,
which the test suite relies on.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.rate_limit_default],
    enabled=not settings.disable_rate_limit,
)
