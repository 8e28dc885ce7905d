"""Payment recording, settlement and reporting routes"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
import logging

from api.dependencies import get_current_user, get_db, require_customer, require_owner
from api.responses import success_response
from domain.enums import PaymentStatus, SettlementStatus
from domain.models import AppUser
from domain.schemas import (
    PaymentCreate,
    PaymentCreatedResponse,
    PaymentReceiveRequest,
    PaymentResponse,
    PaymentVerifyRequest,
)
from services.payment_service import PaymentService

router = APIRouter(prefix="/payments", tags=["Payments"])
logger = logging.getLogger("tiffinmate.api.payments")


def _many(payments):
    return [PaymentResponse.model_validate(p) for p in payments]


@router.post("", status_code=status.HTTP_201_CREATED)
def create_payment(
    body: PaymentCreate, user: AppUser = Depends(require_customer), db: Session = Depends(get_db)
):
    """
    Record a payment against the customer's subscription.

    UPI payments come back with a ``upi://pay`` link to open in the payment app.
    """
    payment, instructions = PaymentService.create_payment(
        db,
        user,
        body.subscription_id,
        body.amount,
        body.payment_method,
        reference_note=body.reference_note,
        transaction_id=body.transaction_id,
    )
    return success_response(
        data=PaymentCreatedResponse(
            payment=PaymentResponse.model_validate(payment), instructions=instructions
        ),
        message="Payment recorded",
    )


@router.get("/my")
def my_payments(user: AppUser = Depends(require_customer), db: Session = Depends(get_db)):
    return success_response(data=_many(PaymentService.list_for_user(db, user.id)))


@router.get("/pending")
def pending_payments(owner: AppUser = Depends(require_owner), db: Session = Depends(get_db)):
    return success_response(data=_many(PaymentService.list_pending(db)))


@router.get("/stats")
def payment_stats(owner: AppUser = Depends(require_owner), db: Session = Depends(get_db)):
    return success_response(data=PaymentService.stats(db))


@router.get("")
def list_payments(
    status_filter: Optional[PaymentStatus] = Query(None, alias="status"),
    payment_status: Optional[SettlementStatus] = Query(None),
    user_id: Optional[UUID] = Query(None),
    owner: AppUser = Depends(require_owner),
    db: Session = Depends(get_db),
):
    payments = PaymentService.list_all(
        db, status=status_filter, user_id=user_id, payment_status=payment_status
    )
    return success_response(data=_many(payments))


@router.get("/user/{user_id}")
def user_payments(
    user_id: UUID, owner: AppUser = Depends(require_owner), db: Session = Depends(get_db)
):
    return success_response(data=_many(PaymentService.list_for_user(db, user_id)))


@router.get("/{payment_id}")
def get_payment(
    payment_id: UUID, user: AppUser = Depends(get_current_user), db: Session = Depends(get_db)
):
    payment = PaymentService.get(db, payment_id, actor=user)
    return success_response(data=PaymentResponse.model_validate(payment))


@router.post("/{payment_id}/receive")
def receive_payment(
    payment_id: UUID,
    body: Optional[PaymentReceiveRequest] = None,
    owner: AppUser = Depends(require_owner),
    db: Session = Depends(get_db),
):
    """Owner confirms the money arrived; the subscription is activated or extended"""
    payment = PaymentService.receive(
        db, payment_id, owner, transaction_id=body.transaction_id if body else None
    )
    return success_response(data=PaymentResponse.model_validate(payment), message="Payment received")


@router.post("/{payment_id}/verify")
def verify_payment(
    payment_id: UUID,
    body: PaymentVerifyRequest,
    owner: AppUser = Depends(require_owner),
    db: Session = Depends(get_db),
):
    payment = PaymentService.verify(db, payment_id, owner, body.status)
    return success_response(
        data=PaymentResponse.model_validate(payment), message=f"Payment {payment.status.value}"
    )


@router.post("/{payment_id}/mark-paid")
def mark_paid(
    payment_id: UUID,
    body: Optional[PaymentReceiveRequest] = None,
    owner: AppUser = Depends(require_owner),
    db: Session = Depends(get_db),
):
    payment = PaymentService.mark_paid(
        db, payment_id, owner, transaction_id=body.transaction_id if body else None
    )
    return success_response(data=PaymentResponse.model_validate(payment), message="Payment marked as paid")
