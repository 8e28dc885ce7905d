"""
Domain enums for TiffinMate.
Contains all enumeration types used across the domain models.
"""

import enum


class UserRole(str, enum.Enum):
    """Account roles"""

    OWNER = "owner"
    CUSTOMER = "customer"
    DELIVERY = "delivery"


class SubscriptionStatus(str, enum.Enum):
    """Subscription lifecycle states"""

    PENDING_APPROVAL = "pending_approval"
    PENDING = "pending"
    ACTIVE = "active"
    PAUSED = "paused"
    EXPIRED = "expired"
    DISABLED = "disabled"
    REJECTED = "rejected"


# Statuses that block a customer from requesting another subscription
OPEN_SUBSCRIPTION_STATUSES = (
    SubscriptionStatus.PENDING_APPROVAL,
    SubscriptionStatus.PENDING,
    SubscriptionStatus.ACTIVE,
)


class PlanType(str, enum.Enum):
    """Menu line a subscription is served from"""

    TRIAL = "trial"
    CLASSIC = "classic"
    PREMIUM_VEG = "premium-veg"
    PREMIUM_NON_VEG = "premium-non-veg"


class PlanCategory(str, enum.Enum):
    TRIAL = "trial"
    CLASSIC = "classic"
    PREMIUM = "premium"


class DurationType(str, enum.Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class FoodType(str, enum.Enum):
    VEG = "VEG"
    NON_VEG = "NON_VEG"
    MIX = "MIX"


class DietaryPreference(str, enum.Enum):
    VEG = "veg"
    NON_VEG = "non-veg"
    BOTH = "both"


class PaymentMode(str, enum.Enum):
    CASH = "cash"
    ONLINE = "online"


class MealType(str, enum.Enum):
    LUNCH = "lunch"
    DINNER = "dinner"


class DeliveryMealType(str, enum.Enum):
    LUNCH = "lunch"
    DINNER = "dinner"
    BOTH = "both"


class MealOrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class DeliveryStatus(str, enum.Enum):
    """Delivery progression"""

    PREPARING = "preparing"
    ON_THE_WAY = "on-the-way"
    DELIVERED = "delivered"
    PAUSED = "paused"
    DISABLED = "disabled"


class CookingState(str, enum.Enum):
    """Derived kitchen state of a delivery at a point in time"""

    SCHEDULED = "scheduled"
    COOKING = "cooking"
    READY = "ready"
    DISPATCHED = "dispatched"
    DELIVERED = "delivered"
    SKIPPED = "skipped"


class CalendarDayStatus(str, enum.Enum):
    DELIVERED = "delivered"
    SKIPPED = "skipped"
    EXPIRED = "expired"
    PENDING = "pending"
    UPCOMING = "upcoming"


class PaymentMethod(str, enum.Enum):
    UPI = "upi"
    CASH = "cash"
    OTHER = "other"


class PaymentStatus(str, enum.Enum):
    """Owner-side workflow state of a payment record"""

    PENDING = "pending"
    PAID = "paid"
    VERIFIED = "verified"
    REJECTED = "rejected"


class SettlementStatus(str, enum.Enum):
    """Amount-derived state of a payment record"""

    PAID = "paid"
    PARTIAL = "partial"
    PENDING = "pending"
    OVERDUE = "overdue"


class NotificationType(str, enum.Enum):
    """SMS message kinds"""

    OTP = "otp"
    CREDENTIALS = "credentials"
    SUBSCRIPTION_REMINDER = "subscription-reminder"
    SUBSCRIPTION_EXPIRY = "subscription-expiry"
    SUBSCRIPTION_DISABLED = "subscription-disabled"
    SUBSCRIPTION_APPROVED = "subscription-approved"
    TRIAL_EXPIRED = "trial-expired"
    DELIVERY_PREPARING = "delivery-preparing"
    DELIVERY_ON_WAY = "delivery-on-way"
    DELIVERY_DELIVERED = "delivery-delivered"
    PAYMENT_REMINDER = "payment-reminder"
    PAYMENT_OVERDUE = "payment-overdue"
    ACCESS_APPROVED = "access-approved"
    ACCESS_REJECTED = "access-rejected"
    OTHER = "other"


class NotificationStatus(str, enum.Enum):
    SENT = "sent"
    FAILED = "failed"


class NotificationPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class AccessRequestStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class LeadSource(str, enum.Enum):
    APP = "app"
    REFERRAL = "referral"
    WALK_IN = "walk-in"
    LOCATION = "location"
    OTHER = "other"


class LeadStatus(str, enum.Enum):
    NEW = "new"
    CONTACTED = "contacted"
    CONVERTED = "converted"
    NOT_INTERESTED = "not-interested"
    CLOSED = "closed"
