"""
Payments: customer-initiated payments, owner receipt/verification, and the
effect a settled payment has on its subscription.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from app.clock import local_datetime, to_utc_naive, today_local
from app.config import settings
from app.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ServiceValidationError,
)
from domain.enums import (
    NotificationPriority,
    NotificationType,
    PaymentMethod,
    PaymentMode,
    PaymentStatus,
    SettlementStatus,
    SubscriptionStatus,
    UserRole,
)
from domain.models import AppUser, Payment, Subscription
from repositories import PaymentRepository, SubscriptionRepository
from services.notification_service import NotificationService
from services.sms_service import SmsService

logger = logging.getLogger("tiffinmate.payments")

# Payment types: the current period vs. an extension bought while active
PAYMENT_TYPE_SUBSCRIPTION = "subscription"
PAYMENT_TYPE_RENEWAL = "renewal"

SETTLED_STATUSES = (PaymentStatus.PAID, PaymentStatus.VERIFIED)


def upi_link(amount: Decimal, note: str) -> str:
    return (
        f"upi://pay?pa={settings.upi_id}&pn={quote(settings.upi_payee_name)}"
        f"&am={Decimal(amount):.2f}&cu=INR&tn={quote(note)}"
    )


def payment_event(payment: Payment) -> Dict[str, Any]:
    return {
        "id": payment.id,
        "user_id": payment.user_id,
        "subscription_id": payment.subscription_id,
        "amount": payment.amount,
        "status": payment.status.value,
        "payment_status": payment.payment_status.value,
        "payment_method": payment.payment_method.value,
    }


class PaymentService:
    @staticmethod
    def ensure_pending_for_subscription(
        db: Session, subscription: Subscription, today: Optional[date] = None
    ) -> Optional[Payment]:
        """
        Raise a pending payment for ``subscription`` unless one was already
        created this month. Staged only; the caller commits.
        """
        today = today or today_local()
        amount = Decimal(subscription.amount or 0)
        if amount <= 0:
            return None

        month_start = to_utc_naive(local_datetime(today.replace(day=1), 0))
        repo = PaymentRepository(db)
        if repo.exists_for_subscription_since(subscription.id, month_start):
            return None

        payment = Payment(
            user_id=subscription.user_id,
            subscription_id=subscription.id,
            amount=amount,
            payment_method=(
                PaymentMethod.UPI
                if subscription.payment_mode == PaymentMode.ONLINE
                else PaymentMethod.CASH
            ),
            status=PaymentStatus.PENDING,
            paid_amount=Decimal("0"),
            due_date=today + timedelta(days=settings.payment_due_days),
            payment_type=PAYMENT_TYPE_SUBSCRIPTION,
        )
        payment.refresh_settlement(today)
        repo.add(payment)
        logger.info(
            "Pending payment of %s raised for subscription %s", amount, subscription.id
        )
        return payment

    @staticmethod
    def create_payment(
        db: Session,
        user: AppUser,
        subscription_id: UUID,
        amount: Decimal,
        payment_method: PaymentMethod,
        reference_note: Optional[str] = None,
        transaction_id: Optional[str] = None,
        today: Optional[date] = None,
    ) -> Tuple[Payment, Dict[str, Any]]:
        """
        Customer records a payment they are making for their subscription.

        Returns the payment and instructions (UPI deep link or cash message).
        """
        today = today or today_local()
        subscription = SubscriptionRepository(db).get_by_id(subscription_id)
        if not subscription:
            raise NotFoundError(f"Subscription not found: {subscription_id}")
        if subscription.user_id != user.id:
            raise ForbiddenError("Not authorized to pay for this subscription")
        if amount is None or Decimal(amount) <= 0:
            raise ServiceValidationError("Amount must be greater than zero")
        if not isinstance(payment_method, PaymentMethod):
            try:
                payment_method = PaymentMethod(payment_method)
            except ValueError:
                raise ServiceValidationError(
                    "Invalid payment method. Use upi, cash or other"
                )

        renewing = (
            subscription.status in (SubscriptionStatus.ACTIVE, SubscriptionStatus.PAUSED)
            and today <= subscription.end_date
        )
        payment = Payment(
            user_id=user.id,
            subscription_id=subscription.id,
            amount=Decimal(amount),
            payment_method=payment_method,
            status=PaymentStatus.PENDING,
            reference_note=reference_note,
            transaction_id=transaction_id,
            paid_amount=Decimal("0"),
            due_date=today + timedelta(days=settings.payment_due_days),
            payment_type=PAYMENT_TYPE_RENEWAL if renewing else PAYMENT_TYPE_SUBSCRIPTION,
        )
        payment.refresh_settlement(today)

        try:
            PaymentRepository(db).add(payment)
            NotificationService.notify_owner(
                db,
                type="payment_created",
                title="New Payment",
                message=f"{user.name} submitted Rs.{Decimal(amount):.2f} via {payment_method.value}",
                related_user_id=user.id,
                related_model="Payment",
                related_id=payment.id,
                priority=NotificationPriority.HIGH,
            )
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Error creating payment for %s", user.user_code)
            raise

        note = reference_note or f"{settings.business_name} {user.user_code}"
        if payment_method == PaymentMethod.UPI:
            instructions = {"upi_link": upi_link(payment.amount, note)}
        elif payment_method == PaymentMethod.CASH:
            instructions = {
                "message": f"Please hand over Rs.{payment.amount:.2f} in cash to the delivery person or owner."
            }
        else:
            instructions = {"message": "The owner will confirm your payment once received."}

        NotificationService.publish("payment_created", payment_event(payment), user_id=user.id)
        return payment, instructions

    @staticmethod
    def get(db: Session, payment_id: UUID, actor: Optional[AppUser] = None) -> Payment:
        payment = PaymentRepository(db).get_by_id(payment_id)
        if not payment:
            raise NotFoundError(f"Payment not found: {payment_id}")
        if actor is not None and actor.role == UserRole.CUSTOMER and payment.user_id != actor.id:
            raise ForbiddenError("Not authorized to access this payment")
        return payment

    @staticmethod
    def apply_to_subscription(db: Session, payment: Payment, today: date) -> Subscription:
        """
        Apply a settled payment to its subscription.

        * not running (or past its end): restart it today for ``total_days``
        * running and the payment is a renewal: extend it by one plan period
        * running and the payment covers the current period: dates unchanged
        """
        subscription = payment.subscription
        running = (
            subscription.status in (SubscriptionStatus.ACTIVE, SubscriptionStatus.PAUSED)
            and today <= subscription.end_date
        )

        if not running:
            other = SubscriptionRepository(db).get_open_for_user(
                subscription.user_id, exclude_id=subscription.id
            )
            if other is not None:
                raise ConflictError(
                    "Customer already has another active or pending subscription",
                    details={"subscription_id": str(other.id), "status": other.status.value},
                    code="SUBSCRIPTION_OPEN",
                )
            subscription.start_date = today
            subscription.end_date = today + timedelta(days=subscription.total_days - 1)
            subscription.used_days = 0
            subscription.status = SubscriptionStatus.ACTIVE
            subscription.expiry_reminder_sent = False
            subscription.expiry_warning_sent = False
            subscription.disable_reminder_sent = False
        elif payment.payment_type == PAYMENT_TYPE_RENEWAL:
            period = subscription.plan.duration_days if subscription.plan else subscription.total_days
            subscription.end_date = subscription.end_date + timedelta(days=period)
            subscription.total_days = subscription.total_days + period
            subscription.expiry_reminder_sent = False

        subscription.recompute_remaining()
        subscription.activated_via_payment_id = payment.id
        subscription.user.is_active = True
        return subscription

    @staticmethod
    def _settle(db: Session, payment: Payment, actor: AppUser, today: date) -> None:
        payment.paid_amount = payment.amount
        payment.received_at = payment.received_at or datetime.utcnow()
        payment.refresh_settlement(today)
        subscription = PaymentService.apply_to_subscription(db, payment, today)
        SmsService.notify(
            db,
            subscription.user,
            NotificationType.SUBSCRIPTION_APPROVED,
            start=subscription.start_date.strftime("%d %b %Y"),
            end=subscription.end_date.strftime("%d %b %Y"),
        )

    @staticmethod
    def receive(
        db: Session,
        payment_id: UUID,
        owner: AppUser,
        transaction_id: Optional[str] = None,
        today: Optional[date] = None,
    ) -> Payment:
        """Owner confirms money was received for a pending payment"""
        today = today or today_local()
        payment = PaymentService.get(db, payment_id)
        if payment.status != PaymentStatus.PENDING:
            raise ServiceValidationError(
                f"Only pending payments can be received (status: {payment.status.value})"
            )
        try:
            payment.status = PaymentStatus.PAID
            payment.received_at = datetime.utcnow()
            payment.received_by = owner.id
            if transaction_id:
                payment.transaction_id = transaction_id
            PaymentService._settle(db, payment, owner, today)
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Error receiving payment %s", payment_id)
            raise

        logger.info("Payment %s received by %s", payment.id, owner.user_code)
        NotificationService.publish("payment_received", payment_event(payment), user_id=payment.user_id)
        return payment

    @staticmethod
    def verify(
        db: Session,
        payment_id: UUID,
        owner: AppUser,
        status: PaymentStatus,
        today: Optional[date] = None,
    ) -> Payment:
        """Owner verifies or rejects a payment the customer reported"""
        today = today or today_local()
        if status not in (PaymentStatus.VERIFIED, PaymentStatus.REJECTED):
            raise ServiceValidationError("Status must be verified or rejected")
        payment = PaymentService.get(db, payment_id)
        if payment.status != PaymentStatus.PENDING:
            raise ServiceValidationError(
                f"Only pending payments can be verified (status: {payment.status.value})"
            )
        try:
            payment.status = status
            payment.verified_by = owner.id
            payment.verified_at = datetime.utcnow()
            if status == PaymentStatus.VERIFIED:
                PaymentService._settle(db, payment, owner, today)
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Error verifying payment %s", payment_id)
            raise

        NotificationService.publish("payment_verified", payment_event(payment), user_id=payment.user_id)
        return payment

    @staticmethod
    def mark_paid(
        db: Session,
        payment_id: UUID,
        owner: AppUser,
        transaction_id: Optional[str] = None,
        today: Optional[date] = None,
    ) -> Payment:
        """Owner shortcut that also accepts overdue payments"""
        today = today or today_local()
        payment = PaymentService.get(db, payment_id)
        if payment.status in SETTLED_STATUSES:
            raise ServiceValidationError("Payment is already settled")
        if payment.status == PaymentStatus.REJECTED:
            raise ServiceValidationError("Rejected payments cannot be marked paid")
        try:
            payment.status = PaymentStatus.PAID
            payment.payment_date = datetime.utcnow()
            payment.received_at = datetime.utcnow()
            payment.received_by = owner.id
            if transaction_id:
                payment.transaction_id = transaction_id
            PaymentService._settle(db, payment, owner, today)
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Error marking payment %s paid", payment_id)
            raise
        NotificationService.publish(
            "payment_status_updated", payment_event(payment), user_id=payment.user_id
        )
        return payment

    @staticmethod
    def list_pending(db: Session) -> List[Payment]:
        return PaymentRepository(db).list_filtered(status=PaymentStatus.PENDING)

    @staticmethod
    def list_all(
        db: Session,
        status: Optional[PaymentStatus] = None,
        user_id: Optional[UUID] = None,
        payment_status: Optional[SettlementStatus] = None,
    ) -> List[Payment]:
        return PaymentRepository(db).list_filtered(
            status=status, user_id=user_id, payment_status=payment_status
        )

    @staticmethod
    def list_for_user(db: Session, user_id: UUID) -> List[Payment]:
        return PaymentRepository(db).list_filtered(user_id=user_id)

    @staticmethod
    def stats(db: Session) -> Dict[str, Any]:
        repo = PaymentRepository(db)
        return {
            "total_collected": repo.sum_amount(SETTLED_STATUSES),
            "total_pending": repo.sum_amount([PaymentStatus.PENDING]),
            "pending_count": repo.count_by_status(PaymentStatus.PENDING),
            "settled_count": repo.count_by_status(*SETTLED_STATUSES),
            "rejected_count": repo.count_by_status(PaymentStatus.REJECTED),
            "overdue_count": repo.count_by_settlement(SettlementStatus.OVERDUE),
        }
