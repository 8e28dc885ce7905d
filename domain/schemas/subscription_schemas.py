from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import date, datetime
from uuid import UUID
from decimal import Decimal

from domain.enums import (
    DietaryPreference,
    DurationType,
    FoodType,
    PaymentMode,
    PlanCategory,
    PlanType,
    SubscriptionStatus,
)


class PlanCreate(BaseModel):
    """Schema for creating a subscription plan"""

    name: str = Field(..., min_length=2, max_length=100)
    display_name: str = Field(..., min_length=2, max_length=150)
    description: Optional[str] = None
    duration_type: DurationType
    duration_days: int = Field(..., ge=1, le=366)
    price_per_day: Decimal = Field(..., ge=0)
    total_price: Optional[Decimal] = Field(
        None, ge=0, description="Defaults to price_per_day x duration_days"
    )
    plan_category: PlanCategory = PlanCategory.CLASSIC
    food_type: FoodType = FoodType.MIX
    menu_category: PlanType = PlanType.CLASSIC
    includes_lunch: bool = True
    includes_dinner: bool = True
    is_active: bool = True
    features: Optional[List[str]] = None
    sort_order: int = 0


class PlanUpdate(BaseModel):
    display_name: Optional[str] = Field(None, min_length=2, max_length=150)
    description: Optional[str] = None
    price_per_day: Optional[Decimal] = Field(None, ge=0)
    total_price: Optional[Decimal] = Field(None, ge=0)
    includes_lunch: Optional[bool] = None
    includes_dinner: Optional[bool] = None
    is_active: Optional[bool] = None
    features: Optional[List[str]] = None
    sort_order: Optional[int] = None


class PlanResponse(BaseModel):
    id: UUID
    name: str
    display_name: str
    description: Optional[str]
    duration_type: DurationType
    duration_days: int
    price_per_day: Decimal
    total_price: Decimal
    plan_category: PlanCategory
    food_type: FoodType
    menu_category: PlanType
    includes_lunch: bool
    includes_dinner: bool
    meal_types: List[str]
    is_active: bool
    features: Optional[List[str]] = None
    sort_order: int

    model_config = {"from_attributes": True}


class DurationTypeSummary(BaseModel):
    duration_type: DurationType
    min_price: Decimal
    plan_count: int


class PlanWithMenuResponse(BaseModel):
    plan: PlanResponse
    menu: Dict[str, Any]

    model_config = {"from_attributes": True}


class SubscriptionRequest(BaseModel):
    """Customer asking for a plan"""

    plan_id: UUID
    start_date: Optional[date] = None
    payment_mode: PaymentMode = PaymentMode.CASH


class ApproveRequest(BaseModel):
    start_date: Optional[date] = None


class RejectRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class StatusUpdateRequest(BaseModel):
    status: SubscriptionStatus


class RenewRequest(BaseModel):
    plan_id: Optional[UUID] = None


class SubscriptionResponse(BaseModel):
    id: UUID
    user_id: UUID
    plan_id: Optional[UUID]
    plan_type: PlanType
    plan_category: PlanCategory
    start_date: date
    end_date: date
    total_days: int
    used_days: int
    remaining_days: int
    status: SubscriptionStatus
    amount: Decimal
    payment_mode: PaymentMode
    includes_lunch: bool
    includes_dinner: bool
    dietary_preference: DietaryPreference
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class TrialCheckResponse(BaseModel):
    has_used_trial: bool
    can_use_trial: bool
