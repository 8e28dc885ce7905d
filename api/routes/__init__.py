"""API routes package"""

from . import (
    access_requests,
    admin,
    auth,
    deliveries,
    health,
    leads,
    meals,
    notifications,
    payments,
    plans,
    realtime,
    subscriptions,
    users,
)

__all__ = [
    "access_requests",
    "admin",
    "auth",
    "deliveries",
    "health",
    "leads",
    "meals",
    "notifications",
    "payments",
    "plans",
    "realtime",
    "subscriptions",
    "users",
]
