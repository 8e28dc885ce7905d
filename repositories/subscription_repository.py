"""
Subscription Repository - Data access layer for customer subscriptions
"""

from datetime import date
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from repositories.base import BaseRepository
from domain.models import Subscription, AppUser
from domain.enums import (
    SubscriptionStatus,
    PlanType,
    PlanCategory,
    OPEN_SUBSCRIPTION_STATUSES,
)


class SubscriptionRepository(BaseRepository[Subscription]):
    """Repository for subscription data access"""

    def __init__(self, db: Session):
        super().__init__(db, Subscription)

    def get_open_for_user(
        self, user_id: UUID, exclude_id: Optional[UUID] = None
    ) -> Optional[Subscription]:
        """A subscription that blocks a new request (pending approval, pending, active)"""
        query = self.db.query(Subscription).filter(
            Subscription.user_id == user_id,
            Subscription.status.in_(OPEN_SUBSCRIPTION_STATUSES),
        )
        if exclude_id is not None:
            query = query.filter(Subscription.id != exclude_id)
        return (
            query.order_by(Subscription.created_at.desc())
            .first()
        )

    def get_latest_for_user(
        self, user_id: UUID, statuses: Iterable[SubscriptionStatus]
    ) -> Optional[Subscription]:
        return (
            self.db.query(Subscription)
            .filter(
                Subscription.user_id == user_id,
                Subscription.status.in_(list(statuses)),
            )
            .order_by(Subscription.created_at.desc())
            .first()
        )

    def get_active_for_user(self, user_id: UUID) -> Optional[Subscription]:
        return self.get_latest_for_user(user_id, [SubscriptionStatus.ACTIVE])

    def get_active_covering(self, user_id: UUID, day: date) -> Optional[Subscription]:
        """The active subscription whose date range includes ``day``"""
        return (
            self.db.query(Subscription)
            .filter(
                Subscription.user_id == user_id,
                Subscription.status == SubscriptionStatus.ACTIVE,
                Subscription.start_date <= day,
                Subscription.end_date >= day,
            )
            .order_by(Subscription.created_at.desc())
            .first()
        )

    def list_active_covering(self, day: date) -> List[Subscription]:
        return (
            self.db.query(Subscription)
            .options(joinedload(Subscription.user))
            .filter(
                Subscription.status == SubscriptionStatus.ACTIVE,
                Subscription.start_date <= day,
                Subscription.end_date >= day,
            )
            .all()
        )

    def has_used_trial(self, user_id: UUID) -> bool:
        return (
            self.db.query(Subscription)
            .filter(
                Subscription.user_id == user_id,
                (Subscription.plan_category == PlanCategory.TRIAL)
                | (Subscription.plan_type == PlanType.TRIAL),
            )
            .first()
            is not None
        )

    def list_for_user(self, user_id: UUID) -> List[Subscription]:
        return (
            self.db.query(Subscription)
            .filter(Subscription.user_id == user_id)
            .order_by(Subscription.created_at.desc())
            .all()
        )

    def list_filtered(
        self,
        status: Optional[SubscriptionStatus] = None,
        plan_type: Optional[PlanType] = None,
    ) -> List[Subscription]:
        """Subscriptions of non-deleted, active customers"""
        query = (
            self.db.query(Subscription)
            .join(AppUser, Subscription.user_id == AppUser.id)
            .options(joinedload(Subscription.user))
            .filter(AppUser.deleted_at.is_(None), AppUser.is_active.is_(True))
        )
        if status:
            query = query.filter(Subscription.status == status)
        if plan_type:
            query = query.filter(Subscription.plan_type == plan_type)
        return query.order_by(Subscription.created_at.desc()).all()

    def list_by_status(self, *statuses: SubscriptionStatus) -> List[Subscription]:
        return (
            self.db.query(Subscription)
            .options(joinedload(Subscription.user))
            .filter(Subscription.status.in_(statuses))
            .order_by(Subscription.created_at)
            .all()
        )

    def list_expiring_between(self, start: date, end: date) -> List[Subscription]:
        """Active subscriptions ending within [start, end]"""
        return (
            self.db.query(Subscription)
            .options(joinedload(Subscription.user))
            .filter(
                Subscription.status == SubscriptionStatus.ACTIVE,
                Subscription.end_date >= start,
                Subscription.end_date <= end,
            )
            .order_by(Subscription.end_date)
            .all()
        )

    def list_active_ended_before(self, day: date) -> List[Subscription]:
        return (
            self.db.query(Subscription)
            .options(joinedload(Subscription.user))
            .filter(
                Subscription.status == SubscriptionStatus.ACTIVE,
                Subscription.end_date < day,
            )
            .all()
        )

    def count_by_status(self, status: SubscriptionStatus) -> int:
        return self.db.query(Subscription).filter(Subscription.status == status).count()
