"""
Notification models: SMS delivery log and the owner's in-app feed.
"""

from datetime import datetime
import uuid

from sqlalchemy import (
    Column,
    String,
    Text,
    DateTime,
    Boolean,
    ForeignKey,
    JSON,
    Uuid,
    Enum as SQLEnum,
)

from domain.models.database import Base
from domain.enums import NotificationType, NotificationStatus, NotificationPriority


class NotificationLog(Base):
    """One SMS send attempt"""

    __tablename__ = "notification_log"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid, ForeignKey("app_user.id", ondelete="SET NULL"), nullable=True, index=True
    )
    mobile = Column(String(10), nullable=False)
    type = Column(SQLEnum(NotificationType), nullable=False, default=NotificationType.OTHER)
    message = Column(Text, nullable=False)
    status = Column(SQLEnum(NotificationStatus), nullable=False)
    provider = Column(String(32), nullable=False)
    response = Column(JSON, nullable=True)
    error_message = Column(Text, nullable=True)
    sent_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class AppNotification(Base):
    """Entry in the owner's notification feed"""

    __tablename__ = "app_notification"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    type = Column(String(50), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    related_user_id = Column(
        Uuid, ForeignKey("app_user.id", ondelete="SET NULL"), nullable=True
    )
    related_model = Column(String(32), nullable=True)
    related_id = Column(Uuid, nullable=True)
    priority = Column(
        SQLEnum(NotificationPriority),
        nullable=False,
        default=NotificationPriority.MEDIUM,
    )
    is_read = Column(Boolean, nullable=False, default=False, index=True)
    read_at = Column(DateTime, nullable=True)
    extra = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
