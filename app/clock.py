"""
Business-timezone clock helpers.

All calendar reasoning (cutoffs, "today", subscription dates) happens in the
configured business timezone. Timestamps are persisted as naive UTC, the way
the rest of the codebase uses ``datetime.utcnow()``.
"""

from datetime import date, datetime, time, timedelta

import pytz

from app.config import settings


def business_tz():
    return pytz.timezone(settings.timezone)


def now_local() -> datetime:
    """Current aware datetime in the business timezone."""
    return datetime.now(pytz.utc).astimezone(business_tz())


def today_local() -> date:
    return now_local().date()


def local_datetime(day: date, hour: int, minute: int = 0) -> datetime:
    """Aware datetime for a wall-clock time on ``day`` in the business timezone."""
    return business_tz().localize(datetime.combine(day, time(hour, minute)))


def as_local(dt: datetime) -> datetime:
    """Interpret ``dt`` in the business timezone (naive values are taken as UTC)."""
    if dt.tzinfo is None:
        dt = pytz.utc.localize(dt)
    return dt.astimezone(business_tz())


def to_utc_naive(dt: datetime) -> datetime:
    """Convert an aware datetime to naive UTC for storage."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(pytz.utc).replace(tzinfo=None)


def day_bounds_utc(day: date):
    """(start, end) of a business day as naive UTC datetimes, end exclusive."""
    start = local_datetime(day, 0)
    end = local_datetime(day + timedelta(days=1), 0)
    return to_utc_naive(start), to_utc_naive(end)


def format_cutoff(dt: datetime) -> str:
    """Human format used in cutoff messages, e.g. '04 Mar 2025, 11:00 PM'."""
    return as_local(dt).strftime("%d %b %Y, %I:%M %p")
