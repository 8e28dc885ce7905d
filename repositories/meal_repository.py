"""
Meal Repository - Data access layer for meal orders, default meals and weekly menus
"""

from datetime import date
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from repositories.base import BaseRepository
from domain.models import MealOrder, DefaultMeal, WeeklyMenu, AppUser
from domain.enums import MealType, MealOrderStatus, PlanType, UserRole


class MealOrderRepository(BaseRepository[MealOrder]):
    """Repository for meal order data access"""

    def __init__(self, db: Session):
        super().__init__(db, MealOrder)

    def get_for_user_day(
        self, user_id: UUID, day: date, meal_type: MealType
    ) -> Optional[MealOrder]:
        return (
            self.db.query(MealOrder)
            .filter(
                MealOrder.user_id == user_id,
                MealOrder.delivery_date == day,
                MealOrder.meal_type == meal_type,
            )
            .first()
        )

    def list_for_day(
        self,
        day: date,
        meal_type: Optional[MealType] = None,
        status: Optional[MealOrderStatus] = None,
    ) -> List[MealOrder]:
        query = (
            self.db.query(MealOrder)
            .options(joinedload(MealOrder.user))
            .filter(MealOrder.delivery_date == day)
        )
        if meal_type:
            query = query.filter(MealOrder.meal_type == meal_type)
        if status:
            query = query.filter(MealOrder.status == status)
        return query.order_by(MealOrder.created_at).all()

    def list_countable_for_day(self, day: date) -> List[MealOrder]:
        """
        Orders the kitchen must cook on ``day``.

        Only orders of active, non-deleted customers count; cancelled orders
        are excluded.
        """
        return (
            self.db.query(MealOrder)
            .join(AppUser, MealOrder.user_id == AppUser.id)
            .options(joinedload(MealOrder.user))
            .filter(
                MealOrder.delivery_date == day,
                MealOrder.status != MealOrderStatus.CANCELLED,
                AppUser.role == UserRole.CUSTOMER,
                AppUser.is_active.is_(True),
                AppUser.deleted_at.is_(None),
            )
            .order_by(MealOrder.created_at)
            .all()
        )

    def list_filtered(
        self,
        day: Optional[date] = None,
        meal_type: Optional[MealType] = None,
        user_id: Optional[UUID] = None,
    ) -> List[MealOrder]:
        query = self.db.query(MealOrder).options(joinedload(MealOrder.user))
        if day:
            query = query.filter(MealOrder.delivery_date == day)
        if meal_type:
            query = query.filter(MealOrder.meal_type == meal_type)
        if user_id:
            query = query.filter(MealOrder.user_id == user_id)
        return query.order_by(MealOrder.delivery_date.desc(), MealOrder.meal_type).all()

    def delete_for_user(self, user_id: UUID) -> int:
        return (
            self.db.query(MealOrder)
            .filter(MealOrder.user_id == user_id)
            .delete(synchronize_session=False)
        )


class DefaultMealRepository(BaseRepository[DefaultMeal]):
    """Repository for operator-defined default meals"""

    def __init__(self, db: Session):
        super().__init__(db, DefaultMeal)

    def get_for_meal_type(self, meal_type: MealType) -> Optional[DefaultMeal]:
        return (
            self.db.query(DefaultMeal)
            .filter(DefaultMeal.meal_type == meal_type, DefaultMeal.is_active.is_(True))
            .first()
        )

    def get_any_for_meal_type(self, meal_type: MealType) -> Optional[DefaultMeal]:
        return self.db.query(DefaultMeal).filter(DefaultMeal.meal_type == meal_type).first()

    def list_active(self) -> List[DefaultMeal]:
        return self.db.query(DefaultMeal).filter(DefaultMeal.is_active.is_(True)).all()


class WeeklyMenuRepository(BaseRepository[WeeklyMenu]):
    """Repository for weekly menu slots"""

    def __init__(self, db: Session):
        super().__init__(db, WeeklyMenu)

    def get_slot(
        self, day_of_week: int, meal_type: MealType, menu_category: PlanType
    ) -> Optional[WeeklyMenu]:
        return (
            self.db.query(WeeklyMenu)
            .filter(
                WeeklyMenu.day_of_week == day_of_week,
                WeeklyMenu.meal_type == meal_type,
                WeeklyMenu.menu_category == menu_category,
            )
            .first()
        )

    def list_for_category(self, menu_category: PlanType) -> List[WeeklyMenu]:
        return (
            self.db.query(WeeklyMenu)
            .filter(WeeklyMenu.menu_category == menu_category)
            .order_by(WeeklyMenu.day_of_week, WeeklyMenu.meal_type)
            .all()
        )
