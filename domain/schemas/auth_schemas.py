from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime
from uuid import UUID

from domain.enums import UserRole

MOBILE_PATTERN = r"^[6-9]\d{9}$"


class AddressSchema(BaseModel):
    """Delivery address of a customer"""

    street: Optional[str] = Field(None, max_length=200)
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = Field(None, pattern=r"^\d{6}$")
    landmark: Optional[str] = None


class LoginRequest(BaseModel):
    """Login with a user code (CUST1001) or a mobile number"""

    identifier: str = Field(..., min_length=3, max_length=20)
    password: str = Field(..., min_length=1)


class OtpVerifyRequest(BaseModel):
    user_id: UUID
    otp: str = Field(..., pattern=r"^\d{4,8}$")


class OtpResendRequest(BaseModel):
    user_id: UUID


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1, max_length=72)

    model_config = {"extra": "forbid"}


class UserSummary(BaseModel):
    """Public view of an account"""

    id: UUID
    user_code: str
    name: str
    mobile: str
    address: Optional[Dict[str, Any]] = None
    role: UserRole
    is_active: bool
    is_password_changed: bool
    force_password_change: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class TokenResponse(BaseModel):
    token: str
    user: UserSummary
    requires_otp: bool = False
    force_password_change: bool = False


class OtpChallengeResponse(BaseModel):
    requires_otp: bool = True
    user_id: UUID
    mobile: str
    message: str
