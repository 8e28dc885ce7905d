"""
Delivery fulfillment records.
"""

from datetime import datetime
import uuid

from sqlalchemy import (
    Column,
    Text,
    Date,
    DateTime,
    Boolean,
    Numeric,
    ForeignKey,
    JSON,
    Uuid,
    Enum as SQLEnum,
    Index,
)
from sqlalchemy.orm import relationship

from domain.models.database import Base
from domain.enums import DeliveryMealType, DeliveryStatus


class Delivery(Base):
    """A per-day fulfillment of one customer's tiffin"""

    __tablename__ = "delivery"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False
    )
    subscription_id = Column(
        Uuid, ForeignKey("subscription.id", ondelete="CASCADE"), nullable=False
    )
    delivery_date = Column(Date, nullable=False)
    meal_type = Column(SQLEnum(DeliveryMealType), nullable=False)
    status = Column(
        SQLEnum(DeliveryStatus), nullable=False, default=DeliveryStatus.PREPARING
    )
    delivery_boy_id = Column(Uuid, ForeignKey("app_user.id"), nullable=True)
    meals = Column(JSON, nullable=True)  # {"lunch": {"name", "items"}, "dinner": {...}}

    preparing_start_time = Column(DateTime, nullable=True)
    out_for_delivery_time = Column(DateTime, nullable=True)
    delivered_time = Column(DateTime, nullable=True)
    estimated_delivery_time = Column(DateTime, nullable=True)

    notes = Column(Text, nullable=True)
    is_extra_tiffin = Column(Boolean, nullable=False, default=False)
    extra_charge = Column(Numeric(10, 2), nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    user = relationship("AppUser", foreign_keys=[user_id])
    subscription = relationship("Subscription")

    __table_args__ = (
        Index("ix_delivery_user_date", "user_id", "delivery_date"),
        Index("ix_delivery_date_status", "delivery_date", "status"),
    )
