"""
Payment tracking models.
"""

from datetime import date, datetime
from decimal import Decimal
import uuid

from sqlalchemy import (
    Column,
    String,
    Text,
    Date,
    DateTime,
    Boolean,
    Integer,
    Numeric,
    ForeignKey,
    Uuid,
    CheckConstraint,
    Enum as SQLEnum,
)
from sqlalchemy.orm import relationship

from domain.models.database import Base
from domain.enums import PaymentMethod, PaymentStatus, SettlementStatus


class Payment(Base):
    """Money owed or received for a subscription period"""

    __tablename__ = "payment"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False, index=True
    )
    subscription_id = Column(
        Uuid, ForeignKey("subscription.id", ondelete="CASCADE"), nullable=False
    )
    amount = Column(Numeric(10, 2), nullable=False)
    payment_method = Column(
        SQLEnum(PaymentMethod), nullable=False, default=PaymentMethod.CASH
    )
    status = Column(SQLEnum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING)
    reference_note = Column(Text, nullable=True)
    payment_date = Column(DateTime, nullable=False, default=datetime.utcnow)
    received_at = Column(DateTime, nullable=True)
    received_by = Column(Uuid, ForeignKey("app_user.id"), nullable=True)
    verified_by = Column(Uuid, ForeignKey("app_user.id"), nullable=True)
    verified_at = Column(DateTime, nullable=True)
    payment_type = Column(String(32), nullable=False, default="subscription")

    payment_status = Column(
        SQLEnum(SettlementStatus), nullable=False, default=SettlementStatus.PENDING
    )
    paid_amount = Column(Numeric(10, 2), nullable=False, default=0)
    pending_amount = Column(Numeric(10, 2), nullable=False, default=0)
    due_date = Column(Date, nullable=True)
    transaction_id = Column(String(100), nullable=True)

    reminder_sent = Column(Boolean, nullable=False, default=False)
    reminder_count = Column(Integer, nullable=False, default=0)
    last_reminder_date = Column(Date, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    user = relationship("AppUser", foreign_keys=[user_id])
    subscription = relationship("Subscription")

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_payment_amount_nonneg"),
        CheckConstraint("paid_amount >= 0", name="ck_payment_paid_nonneg"),
    )

    def refresh_settlement(self, today: date) -> SettlementStatus:
        """Recompute pending amount and the amount-derived status."""
        amount = Decimal(self.amount or 0)
        paid = Decimal(self.paid_amount or 0)
        self.pending_amount = max(Decimal("0"), amount - paid)

        if paid >= amount:
            self.payment_status = SettlementStatus.PAID
        elif self.due_date is not None and today > self.due_date:
            self.payment_status = SettlementStatus.OVERDUE
        elif paid > 0:
            self.payment_status = SettlementStatus.PARTIAL
        else:
            self.payment_status = SettlementStatus.PENDING
        return self.payment_status
