"""
Subscription plans and customer subscriptions.
"""

from datetime import date, datetime
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
    JSON,
    Uuid,
    CheckConstraint,
    Enum as SQLEnum,
)
from sqlalchemy.orm import relationship

from domain.models.database import Base
from domain.enums import (
    SubscriptionStatus,
    PlanType,
    PlanCategory,
    DurationType,
    FoodType,
    DietaryPreference,
    PaymentMode,
)


class SubscriptionPlan(Base):
    """A plan the owner offers (price, duration, menu line)"""

    __tablename__ = "subscription_plan"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), unique=True, nullable=False)
    display_name = Column(String(150), nullable=False)
    description = Column(Text, nullable=True)
    duration_type = Column(SQLEnum(DurationType), nullable=False)
    duration_days = Column(Integer, nullable=False)
    price_per_day = Column(Numeric(10, 2), nullable=False, default=0)
    total_price = Column(Numeric(10, 2), nullable=False, default=0)
    plan_category = Column(
        SQLEnum(PlanCategory), nullable=False, default=PlanCategory.CLASSIC
    )
    food_type = Column(SQLEnum(FoodType), nullable=False, default=FoodType.MIX)
    menu_category = Column(SQLEnum(PlanType), nullable=False, default=PlanType.CLASSIC)
    includes_lunch = Column(Boolean, nullable=False, default=True)
    includes_dinner = Column(Boolean, nullable=False, default=True)
    is_active = Column(Boolean, nullable=False, default=True)
    features = Column(JSON, nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __table_args__ = (
        CheckConstraint("duration_days >= 1", name="ck_plan_duration_positive"),
    )

    @property
    def meal_types(self) -> list:
        types = []
        if self.includes_lunch:
            types.append("lunch")
        if self.includes_dinner:
            types.append("dinner")
        return types


class Subscription(Base):
    """A customer's subscription to a plan for a date range"""

    __tablename__ = "subscription"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False, index=True
    )
    plan_id = Column(Uuid, ForeignKey("subscription_plan.id"), nullable=True)
    plan_type = Column(SQLEnum(PlanType), nullable=False, default=PlanType.CLASSIC)
    plan_category = Column(
        SQLEnum(PlanCategory), nullable=False, default=PlanCategory.CLASSIC
    )
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    total_days = Column(Integer, nullable=False)
    used_days = Column(Integer, nullable=False, default=0)
    remaining_days = Column(Integer, nullable=False, default=0)
    status = Column(
        SQLEnum(SubscriptionStatus),
        nullable=False,
        default=SubscriptionStatus.PENDING_APPROVAL,
        index=True,
    )
    amount = Column(Numeric(10, 2), nullable=False, default=0)
    payment_mode = Column(SQLEnum(PaymentMode), nullable=False, default=PaymentMode.CASH)

    includes_lunch = Column(Boolean, nullable=False, default=True)
    includes_dinner = Column(Boolean, nullable=False, default=True)
    dietary_preference = Column(
        SQLEnum(DietaryPreference), nullable=False, default=DietaryPreference.BOTH
    )

    expiry_reminder_sent = Column(Boolean, nullable=False, default=False)
    expiry_warning_sent = Column(Boolean, nullable=False, default=False)
    disable_reminder_sent = Column(Boolean, nullable=False, default=False)

    approved_by = Column(Uuid, ForeignKey("app_user.id"), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    rejected_by = Column(Uuid, ForeignKey("app_user.id"), nullable=True)
    rejected_at = Column(DateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    activated_via_payment_id = Column(Uuid, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    user = relationship("AppUser", back_populates="subscriptions", foreign_keys=[user_id])
    plan = relationship("SubscriptionPlan")

    __table_args__ = (
        CheckConstraint("used_days >= 0", name="ck_subscription_used_nonneg"),
        CheckConstraint("remaining_days >= 0", name="ck_subscription_remaining_nonneg"),
    )

    def recompute_remaining(self) -> int:
        self.remaining_days = max(0, (self.total_days or 0) - (self.used_days or 0))
        return self.remaining_days

    def mark_day_used(self, today: date) -> bool:
        """
        Consume one day of the subscription.

        Returns True when this consumption expired the subscription.
        """
        self.used_days = (self.used_days or 0) + 1
        self.recompute_remaining()
        if self.remaining_days <= 0 or today > self.end_date:
            self.status = SubscriptionStatus.EXPIRED
            return True
        return False

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def is_near_expiry(self, today: date, days: int = 2) -> bool:
        if self.status != SubscriptionStatus.ACTIVE:
            return False
        return 0 <= (self.end_date - today).days <= days

    @property
    def is_trial(self) -> bool:
        return (
            self.plan_category == PlanCategory.TRIAL or self.plan_type == PlanType.TRIAL
        )
