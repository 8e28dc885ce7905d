"""Services package - Business logic layer"""

from services.auth_service import AuthService
from services.notification_service import NotificationService
from services.sms_service import SmsService
from services.payment_service import PaymentService
from services.subscription_service import SubscriptionService
from services.meal_service import MealService
from services.delivery_service import DeliveryService
from services.calendar_service import CalendarService
from services.user_service import UserService
from services.access_request_service import AccessRequestService
from services.lead_service import LeadService
from services.dashboard_service import DashboardService
from services.cron_service import CronService

# Note: meal_counter and security contain module-level functions, not classes

__all__ = [
    "AuthService",
    "NotificationService",
    "SmsService",
    "PaymentService",
    "SubscriptionService",
    "MealService",
    "DeliveryService",
    "CalendarService",
    "UserService",
    "AccessRequestService",
    "LeadService",
    "DashboardService",
    "CronService",
]
