from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import date, datetime
from uuid import UUID

from domain.enums import MealOrderStatus, MealType, PlanType


class MealChoice(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    items: List[str] = Field(default_factory=list)


class MealSelectionRequest(BaseModel):
    """Lunch and/or dinner for one delivery date"""

    date: date
    lunch: Optional[MealChoice] = None
    dinner: Optional[MealChoice] = None


class MealOrderResponse(BaseModel):
    id: UUID
    user_id: UUID
    subscription_id: UUID
    delivery_date: date
    meal_type: MealType
    meal_name: str
    items: Optional[List[str]] = None
    is_default: bool
    is_after_cutoff: bool
    status: MealOrderStatus
    created_by: str
    order_date: datetime

    model_config = {"from_attributes": True}


class DefaultMealRequest(BaseModel):
    meal_type: MealType
    name: str = Field(..., min_length=1, max_length=255)
    items: Optional[List[str]] = None
    is_active: bool = True


class DefaultMealResponse(BaseModel):
    id: UUID
    meal_type: MealType
    name: str
    items: Optional[List[str]] = None
    is_active: bool
    updated_at: datetime

    model_config = {"from_attributes": True}


class WeeklyMenuRequest(BaseModel):
    day_of_week: int = Field(..., ge=0, le=6, description="0 = Sunday")
    meal_type: MealType
    menu_category: PlanType = PlanType.CLASSIC
    items: List[str]
    description: Optional[str] = None


class WeeklyMenuSlotResponse(BaseModel):
    id: UUID
    day_of_week: int
    meal_type: MealType
    menu_category: PlanType
    items: List[str]
    description: Optional[str] = None

    model_config = {"from_attributes": True}


class MealCountResponse(BaseModel):
    """Counter output shared by dashboard and kitchen"""

    date: date
    lunch_count: int
    dinner_count: int
    total_orders: int
    unique_customers: int
    duplicates: List[Dict[str, Any]]
