"""
Payment Repository - Data access layer for payment records
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from repositories.base import BaseRepository
from domain.models import Payment
from domain.enums import PaymentStatus, SettlementStatus


class PaymentRepository(BaseRepository[Payment]):
    """Repository for payment data access"""

    def __init__(self, db: Session):
        super().__init__(db, Payment)

    def list_filtered(
        self,
        status: Optional[PaymentStatus] = None,
        user_id: Optional[UUID] = None,
        payment_status: Optional[SettlementStatus] = None,
    ) -> List[Payment]:
        query = self.db.query(Payment).options(joinedload(Payment.user))
        if status:
            query = query.filter(Payment.status == status)
        if user_id:
            query = query.filter(Payment.user_id == user_id)
        if payment_status:
            query = query.filter(Payment.payment_status == payment_status)
        return query.order_by(Payment.created_at.desc()).all()

    def exists_for_subscription_since(self, subscription_id: UUID, since: datetime) -> bool:
        return (
            self.db.query(Payment)
            .filter(
                Payment.subscription_id == subscription_id,
                Payment.created_at >= since,
            )
            .first()
            is not None
        )

    def list_due_before(
        self, day: date, settlement: Iterable[SettlementStatus]
    ) -> List[Payment]:
        return (
            self.db.query(Payment)
            .options(joinedload(Payment.user))
            .filter(
                Payment.payment_status.in_(list(settlement)),
                Payment.due_date.isnot(None),
                Payment.due_date < day,
            )
            .all()
        )

    def count_by_status(self, *statuses: PaymentStatus) -> int:
        return self.db.query(Payment).filter(Payment.status.in_(statuses)).count()

    def count_by_settlement(self, *statuses: SettlementStatus) -> int:
        return (
            self.db.query(Payment).filter(Payment.payment_status.in_(statuses)).count()
        )

    def sum_amount(
        self,
        statuses: Iterable[PaymentStatus],
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        on_field=None,
    ) -> Decimal:
        """Sum of ``amount`` for payments in ``statuses`` with ``on_field`` in [start, end)"""
        field = on_field if on_field is not None else Payment.payment_date
        query = self.db.query(func.coalesce(func.sum(Payment.amount), 0)).filter(
            Payment.status.in_(list(statuses))
        )
        if start is not None:
            query = query.filter(field >= start)
        if end is not None:
            query = query.filter(field < end)
        return Decimal(str(query.scalar() or 0))
