from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import date, datetime
from uuid import UUID
from decimal import Decimal

from domain.enums import DeliveryMealType, DeliveryStatus


class DeliveryCreate(BaseModel):
    user_id: UUID
    delivery_date: date
    meal_type: DeliveryMealType
    meals: Optional[Dict[str, Any]] = None
    notes: Optional[str] = Field(None, max_length=500)
    is_extra_tiffin: bool = False
    extra_charge: Decimal = Field(default=Decimal("0"), ge=0)
    delivery_boy_id: Optional[UUID] = None


class DeliveryStatusUpdate(BaseModel):
    status: DeliveryStatus
    delivery_boy_id: Optional[UUID] = None


class AutoCreateRequest(BaseModel):
    day: Optional[date] = Field(None, alias="date")


class DeliveryResponse(BaseModel):
    id: UUID
    user_id: UUID
    subscription_id: UUID
    delivery_date: date
    meal_type: DeliveryMealType
    status: DeliveryStatus
    delivery_boy_id: Optional[UUID] = None
    meals: Optional[Dict[str, Any]] = None
    preparing_start_time: Optional[datetime] = None
    out_for_delivery_time: Optional[datetime] = None
    delivered_time: Optional[datetime] = None
    estimated_delivery_time: Optional[datetime] = None
    notes: Optional[str] = None
    is_extra_tiffin: bool
    extra_charge: Decimal
    cooking_state: Optional[str] = None

    model_config = {"from_attributes": True}
