"""
Domain schemas package - Pydantic models for validation.
"""

from domain.schemas.auth_schemas import (
    AddressSchema,
    LoginRequest,
    OtpVerifyRequest,
    OtpResendRequest,
    ChangePasswordRequest,
    UserSummary,
    TokenResponse,
    OtpChallengeResponse,
)
from domain.schemas.subscription_schemas import (
    PlanCreate,
    PlanUpdate,
    PlanResponse,
    DurationTypeSummary,
    PlanWithMenuResponse,
    SubscriptionRequest,
    ApproveRequest,
    RejectRequest,
    StatusUpdateRequest,
    RenewRequest,
    SubscriptionResponse,
    TrialCheckResponse,
)
from domain.schemas.user_schemas import (
    CustomerCreate,
    CustomerUpdate,
    ProfileUpdate,
    CustomerResponse,
    CustomerCreatedResponse,
)
from domain.schemas.meal_schemas import (
    MealChoice,
    MealSelectionRequest,
    MealOrderResponse,
    DefaultMealRequest,
    DefaultMealResponse,
    WeeklyMenuRequest,
    WeeklyMenuSlotResponse,
    MealCountResponse,
)
from domain.schemas.delivery_schemas import (
    DeliveryCreate,
    DeliveryStatusUpdate,
    AutoCreateRequest,
    DeliveryResponse,
)
from domain.schemas.payment_schemas import (
    PaymentCreate,
    PaymentReceiveRequest,
    PaymentVerifyRequest,
    PaymentResponse,
    PaymentCreatedResponse,
)
from domain.schemas.notification_schemas import NotificationResponse
from domain.schemas.lead_schemas import (
    AccessRequestCreate,
    AccessRequestResponse,
    AccessApprovalResponse,
    LocationSchema,
    LeadCreate,
    LeadUpdate,
    LeadResponse,
)

__all__ = [
    # Auth schemas
    "AddressSchema",
    "LoginRequest",
    "OtpVerifyRequest",
    "OtpResendRequest",
    "ChangePasswordRequest",
    "UserSummary",
    "TokenResponse",
    "OtpChallengeResponse",
    # Plan and subscription schemas
    "PlanCreate",
    "PlanUpdate",
    "PlanResponse",
    "DurationTypeSummary",
    "PlanWithMenuResponse",
    "SubscriptionRequest",
    "ApproveRequest",
    "RejectRequest",
    "StatusUpdateRequest",
    "RenewRequest",
    "SubscriptionResponse",
    "TrialCheckResponse",
    # Customer schemas
    "CustomerCreate",
    "CustomerUpdate",
    "ProfileUpdate",
    "CustomerResponse",
    "CustomerCreatedResponse",
    # Meal schemas
    "MealChoice",
    "MealSelectionRequest",
    "MealOrderResponse",
    "DefaultMealRequest",
    "DefaultMealResponse",
    "WeeklyMenuRequest",
    "WeeklyMenuSlotResponse",
    "MealCountResponse",
    # Delivery schemas
    "DeliveryCreate",
    "DeliveryStatusUpdate",
    "AutoCreateRequest",
    "DeliveryResponse",
    # Payment schemas
    "PaymentCreate",
    "PaymentReceiveRequest",
    "PaymentVerifyRequest",
    "PaymentResponse",
    "PaymentCreatedResponse",
    # Notification schemas
    "NotificationResponse",
    # Access request and lead schemas
    "AccessRequestCreate",
    "AccessRequestResponse",
    "AccessApprovalResponse",
    "LocationSchema",
    "LeadCreate",
    "LeadUpdate",
    "LeadResponse",
]
