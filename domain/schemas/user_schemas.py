from pydantic import BaseModel, Field
from typing import Optional
from datetime import date
from uuid import UUID

from domain.schemas.auth_schemas import MOBILE_PATTERN, AddressSchema, UserSummary
from domain.schemas.subscription_schemas import SubscriptionResponse


class CustomerCreate(BaseModel):
    """Owner onboarding a customer; ``plan_id`` starts a subscription at once"""

    name: str = Field(..., min_length=2, max_length=50)
    mobile: str = Field(..., pattern=MOBILE_PATTERN)
    address: Optional[AddressSchema] = None
    plan_id: Optional[UUID] = None
    start_date: Optional[date] = None


class CustomerUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=50)
    mobile: Optional[str] = Field(None, pattern=MOBILE_PATTERN)
    address: Optional[AddressSchema] = None
    is_active: Optional[bool] = None


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    address: Optional[AddressSchema] = None


class CustomerResponse(BaseModel):
    user: UserSummary
    subscription: Optional[SubscriptionResponse] = None

    model_config = {"from_attributes": True}


class CustomerCreatedResponse(BaseModel):
    user: UserSummary
    temporary_password: str
    subscription: Optional[SubscriptionResponse] = None
    sms_sent: bool

    model_config = {"from_attributes": True}
