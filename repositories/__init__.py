"""
Repositories package - Data access layer.
"""

from repositories.base import BaseRepository
from repositories.user_repository import UserRepository, AccessRequestRepository
from repositories.plan_repository import PlanRepository
from repositories.subscription_repository import SubscriptionRepository
from repositories.meal_repository import (
    MealOrderRepository,
    DefaultMealRepository,
    WeeklyMenuRepository,
)
from repositories.delivery_repository import DeliveryRepository
from repositories.payment_repository import PaymentRepository
from repositories.notification_repository import (
    NotificationLogRepository,
    AppNotificationRepository,
)
from repositories.lead_repository import LeadRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "AccessRequestRepository",
    "PlanRepository",
    "SubscriptionRepository",
    "MealOrderRepository",
    "DefaultMealRepository",
    "WeeklyMenuRepository",
    "DeliveryRepository",
    "PaymentRepository",
    "NotificationLogRepository",
    "AppNotificationRepository",
    "LeadRepository",
]
