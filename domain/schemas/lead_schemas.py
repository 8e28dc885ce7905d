from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from uuid import UUID

from domain.enums import AccessRequestStatus, DurationType, LeadSource, LeadStatus
from domain.schemas.auth_schemas import MOBILE_PATTERN, UserSummary


class AccessRequestCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=50)
    mobile: str = Field(..., pattern=MOBILE_PATTERN)
    plan_type: DurationType = DurationType.MONTHLY
    wants_lunch: bool = True
    wants_dinner: bool = False


class AccessRequestResponse(BaseModel):
    id: UUID
    name: str
    mobile: str
    plan_type: DurationType
    wants_lunch: bool
    wants_dinner: bool
    status: AccessRequestStatus
    reviewed_at: Optional[datetime] = None
    user_id: Optional[UUID] = None
    rejection_reason: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class AccessApprovalResponse(BaseModel):
    request: AccessRequestResponse
    user: UserSummary
    temporary_password: str
    sms_sent: bool

    model_config = {"from_attributes": True}


class LocationSchema(BaseModel):
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    distance: Optional[float] = Field(None, ge=0, description="km from the kitchen")
    address: Optional[str] = None


class LeadCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    phone: str = Field(..., pattern=r"^\d{10}$")
    location: Optional[LocationSchema] = None
    area: Optional[str] = Field(None, max_length=200)
    message: Optional[str] = Field(None, max_length=1000)
    source: LeadSource = LeadSource.APP


class LeadUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    area: Optional[str] = Field(None, max_length=200)
    message: Optional[str] = None
    source: Optional[LeadSource] = None
    status: Optional[LeadStatus] = None
    notes: Optional[str] = None


class LeadResponse(BaseModel):
    id: UUID
    name: str
    phone: str
    location: Optional[LocationSchema] = None
    area: str
    message: str
    source: LeadSource
    status: LeadStatus
    notes: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}
