"""
User-related database models.
"""

from datetime import datetime
import uuid

from sqlalchemy import (
    Column,
    String,
    Text,
    DateTime,
    Boolean,
    Integer,
    ForeignKey,
    JSON,
    Uuid,
    Enum as SQLEnum,
)
from sqlalchemy.orm import relationship

from domain.models.database import Base
from domain.enums import UserRole, AccessRequestStatus, DurationType


class AppUser(Base):
    """User account (owner, customer or delivery staff)"""

    __tablename__ = "app_user"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_code = Column(String(20), unique=True, nullable=False, index=True)
    password_hash = Column(String(128), nullable=False)
    name = Column(String(100), nullable=False)
    mobile = Column(String(10), nullable=False, index=True)  # unique among non-deleted users
    address = Column(JSON, nullable=True)
    role = Column(SQLEnum(UserRole), nullable=False, default=UserRole.CUSTOMER)
    is_active = Column(Boolean, nullable=False, default=True)
    is_password_changed = Column(Boolean, nullable=False, default=False)
    force_password_change = Column(Boolean, nullable=False, default=False)

    # Pending OTP challenge (hash only)
    otp_hash = Column(String(128), nullable=True)
    otp_expires_at = Column(DateTime, nullable=True)
    otp_attempts = Column(Integer, nullable=False, default=0)

    deleted_at = Column(DateTime, nullable=True)
    created_by = Column(Uuid, ForeignKey("app_user.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    subscriptions = relationship(
        "Subscription",
        back_populates="user",
        foreign_keys="Subscription.user_id",
        order_by="Subscription.created_at.desc()",
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def masked_mobile(self) -> str:
        return "******" + (self.mobile or "")[-4:]


class AccessRequest(Base):
    """A prospective customer asking the owner for an account"""

    __tablename__ = "access_request"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    mobile = Column(String(10), nullable=False, index=True)
    plan_type = Column(SQLEnum(DurationType), nullable=False, default=DurationType.MONTHLY)
    wants_lunch = Column(Boolean, nullable=False, default=True)
    wants_dinner = Column(Boolean, nullable=False, default=False)
    status = Column(
        SQLEnum(AccessRequestStatus),
        nullable=False,
        default=AccessRequestStatus.PENDING,
    )
    reviewed_by = Column(Uuid, ForeignKey("app_user.id"), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    user_id = Column(Uuid, ForeignKey("app_user.id"), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )
