"""
Plan Repository - Data access layer for subscription plans
"""

from typing import List, Optional

from sqlalchemy.orm import Session

from repositories.base import BaseRepository
from domain.models import SubscriptionPlan
from domain.enums import DurationType, MealType


class PlanRepository(BaseRepository[SubscriptionPlan]):
    """Repository for subscription plan data access"""

    def __init__(self, db: Session):
        super().__init__(db, SubscriptionPlan)

    def get_by_name(self, name: str) -> Optional[SubscriptionPlan]:
        return self.db.query(SubscriptionPlan).filter(SubscriptionPlan.name == name).first()

    def list(
        self,
        duration_type: Optional[DurationType] = None,
        meal_type: Optional[MealType] = None,
        active_only: bool = True,
    ) -> List[SubscriptionPlan]:
        query = self.db.query(SubscriptionPlan)
        if active_only:
            query = query.filter(SubscriptionPlan.is_active.is_(True))
        if duration_type:
            query = query.filter(SubscriptionPlan.duration_type == duration_type)
        if meal_type == MealType.LUNCH:
            query = query.filter(SubscriptionPlan.includes_lunch.is_(True))
        elif meal_type == MealType.DINNER:
            query = query.filter(SubscriptionPlan.includes_dinner.is_(True))
        return query.order_by(
            SubscriptionPlan.sort_order, SubscriptionPlan.total_price
        ).all()
