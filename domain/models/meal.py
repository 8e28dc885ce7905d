"""
Meal selection and menu models.
"""

from datetime import datetime
import uuid

from sqlalchemy import (
    Column,
    String,
    Text,
    Date,
    DateTime,
    Boolean,
    Integer,
    ForeignKey,
    JSON,
    Uuid,
    UniqueConstraint,
    CheckConstraint,
    Enum as SQLEnum,
)
from sqlalchemy.orm import relationship

from domain.models.database import Base
from domain.enums import MealType, MealOrderStatus, PlanType


class MealOrder(Base):
    """One customer's meal for one delivery date and meal type"""

    __tablename__ = "meal_order"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False, index=True
    )
    subscription_id = Column(
        Uuid, ForeignKey("subscription.id", ondelete="CASCADE"), nullable=False
    )
    delivery_id = Column(
        Uuid, ForeignKey("delivery.id", ondelete="SET NULL"), nullable=True
    )
    order_date = Column(DateTime, nullable=False, default=datetime.utcnow)
    delivery_date = Column(Date, nullable=False, index=True)
    meal_type = Column(SQLEnum(MealType), nullable=False)
    meal_name = Column(String(255), nullable=False)
    items = Column(JSON, nullable=True)
    is_default = Column(Boolean, nullable=False, default=False)
    cutoff_time = Column(DateTime, nullable=False)
    is_after_cutoff = Column(Boolean, nullable=False, default=False)
    status = Column(
        SQLEnum(MealOrderStatus), nullable=False, default=MealOrderStatus.PENDING
    )
    created_by = Column(String(32), nullable=False, default="customer")
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    user = relationship("AppUser")
    subscription = relationship("Subscription")

    __table_args__ = (
        UniqueConstraint(
            "user_id", "delivery_date", "meal_type", name="uq_meal_order_user_day_meal"
        ),
    )


class DefaultMeal(Base):
    """Operator-defined fallback meal per meal type"""

    __tablename__ = "default_meal"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    meal_type = Column(SQLEnum(MealType), unique=True, nullable=False)
    name = Column(String(255), nullable=False)
    items = Column(JSON, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    updated_by = Column(Uuid, ForeignKey("app_user.id"), nullable=True)
    updated_at = Column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )


class WeeklyMenu(Base):
    """Menu items for a weekday, meal type and menu line (0 = Sunday)"""

    __tablename__ = "weekly_menu"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    day_of_week = Column(Integer, nullable=False)
    meal_type = Column(SQLEnum(MealType), nullable=False)
    menu_category = Column(SQLEnum(PlanType), nullable=False, default=PlanType.CLASSIC)
    items = Column(JSON, nullable=False, default=list)
    description = Column(Text, nullable=True)
    updated_at = Column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __table_args__ = (
        UniqueConstraint(
            "day_of_week", "meal_type", "menu_category", name="uq_weekly_menu_slot"
        ),
        CheckConstraint(
            "day_of_week >= 0 AND day_of_week <= 6", name="ck_weekly_menu_day"
        ),
    )
