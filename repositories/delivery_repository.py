"""
Delivery Repository - Data access layer for delivery records
"""

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from repositories.base import BaseRepository
from domain.models import Delivery
from domain.enums import DeliveryMealType, DeliveryStatus


class DeliveryRepository(BaseRepository[Delivery]):
    """Repository for delivery data access"""

    def __init__(self, db: Session):
        super().__init__(db, Delivery)

    def get_for_user_day(
        self, user_id: UUID, day: date, meal_type: DeliveryMealType
    ) -> Optional[Delivery]:
        return (
            self.db.query(Delivery)
            .filter(
                Delivery.user_id == user_id,
                Delivery.delivery_date == day,
                Delivery.meal_type == meal_type,
            )
            .first()
        )

    def list_for_day(self, day: date, include_disabled: bool = True) -> List[Delivery]:
        query = (
            self.db.query(Delivery)
            .options(joinedload(Delivery.user))
            .filter(Delivery.delivery_date == day)
        )
        if not include_disabled:
            query = query.filter(Delivery.status != DeliveryStatus.DISABLED)
        return query.order_by(Delivery.meal_type, Delivery.created_at).all()

    def list_for_user(
        self,
        user_id: UUID,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[Delivery]:
        query = self.db.query(Delivery).filter(Delivery.user_id == user_id)
        if start:
            query = query.filter(Delivery.delivery_date >= start)
        if end:
            query = query.filter(Delivery.delivery_date <= end)
        return query.order_by(Delivery.delivery_date.desc(), Delivery.meal_type).all()

    def list_for_subscription_day(self, subscription_id: UUID, day: date) -> List[Delivery]:
        return (
            self.db.query(Delivery)
            .filter(
                Delivery.subscription_id == subscription_id,
                Delivery.delivery_date == day,
            )
            .all()
        )

    def list_out_since_before(self, threshold: datetime) -> List[Delivery]:
        """On-the-way deliveries dispatched before ``threshold`` (naive UTC)"""
        return (
            self.db.query(Delivery)
            .options(joinedload(Delivery.user))
            .filter(
                Delivery.status == DeliveryStatus.ON_THE_WAY,
                Delivery.out_for_delivery_time.isnot(None),
                Delivery.out_for_delivery_time <= threshold,
            )
            .all()
        )

    def delete_for_user(self, user_id: UUID) -> int:
        return (
            self.db.query(Delivery)
            .filter(Delivery.user_id == user_id)
            .delete(synchronize_session=False)
        )
