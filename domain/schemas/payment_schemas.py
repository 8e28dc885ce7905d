from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import date, datetime
from uuid import UUID
from decimal import Decimal

from domain.enums import PaymentMethod, PaymentStatus, SettlementStatus


class PaymentCreate(BaseModel):
    """Schema for a customer recording a payment"""

    subscription_id: UUID
    amount: Decimal = Field(..., gt=0)
    payment_method: PaymentMethod
    reference_note: Optional[str] = Field(None, max_length=200)
    transaction_id: Optional[str] = Field(None, max_length=100)


class PaymentReceiveRequest(BaseModel):
    transaction_id: Optional[str] = Field(None, max_length=100)


class PaymentVerifyRequest(BaseModel):
    status: PaymentStatus


class PaymentResponse(BaseModel):
    id: UUID
    user_id: UUID
    subscription_id: UUID
    amount: Decimal
    payment_method: PaymentMethod
    status: PaymentStatus
    payment_status: SettlementStatus
    paid_amount: Decimal
    pending_amount: Decimal
    due_date: Optional[date] = None
    reference_note: Optional[str] = None
    transaction_id: Optional[str] = None
    payment_type: str
    payment_date: datetime
    received_at: Optional[datetime] = None
    verified_at: Optional[datetime] = None
    reminder_count: int

    model_config = {"from_attributes": True}


class PaymentCreatedResponse(BaseModel):
    payment: PaymentResponse
    instructions: Dict[str, Any]
