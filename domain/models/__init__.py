"""
Domain models package - SQLAlchemy ORM models.
"""

from domain.models.database import (
    Base,
    engine,
    SessionLocal,
    init_database,
    get_db_session,
)
from domain.models.user import AppUser, AccessRequest
from domain.models.subscription import SubscriptionPlan, Subscription
from domain.models.meal import MealOrder, DefaultMeal, WeeklyMenu
from domain.models.delivery import Delivery
from domain.models.payment import Payment
from domain.models.notification import NotificationLog, AppNotification
from domain.models.lead import Lead

__all__ = [
    # Database
    "Base",
    "engine",
    "SessionLocal",
    "init_database",
    "get_db_session",
    # User models
    "AppUser",
    "AccessRequest",
    # Subscription models
    "SubscriptionPlan",
    "Subscription",
    # Meal models
    "MealOrder",
    "DefaultMeal",
    "WeeklyMenu",
    # Fulfillment and money
    "Delivery",
    "Payment",
    # Notifications
    "NotificationLog",
    "AppNotification",
    "Lead",
]
