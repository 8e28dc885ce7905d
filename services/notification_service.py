"""
Owner notification feed and real-time event fan-out.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from adapters import socket_hub
from app.exceptions import NotFoundError
from domain.enums import NotificationPriority
from domain.models import AppNotification
from repositories import AppNotificationRepository

logger = logging.getLogger("tiffinmate.notifications")


class NotificationService:
    @staticmethod
    def publish(event: str, payload: Dict[str, Any], user_id=None, owner: bool = True) -> List[str]:
        """Push a domain event to the owner room and/or the customer's room"""
        return socket_hub.publish(event, payload, user_id=user_id, owner=owner)

    @staticmethod
    def notify_owner(
        db: Session,
        type: str,
        title: str,
        message: str,
        related_user_id: Optional[UUID] = None,
        related_model: Optional[str] = None,
        related_id: Optional[UUID] = None,
        priority: NotificationPriority = NotificationPriority.MEDIUM,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AppNotification:
        """Add an entry to the owner's feed (staged, caller commits) and push it live"""
        notification = AppNotification(
            type=type,
            title=title,
            message=message,
            related_user_id=related_user_id,
            related_model=related_model,
            related_id=related_id,
            priority=priority,
            extra=metadata,
        )
        AppNotificationRepository(db).add(notification)
        socket_hub.publish(
            "notification",
            {
                "id": notification.id,
                "type": type,
                "title": title,
                "message": message,
                "priority": priority.value,
                "related_id": related_id,
            },
        )
        return notification

    @staticmethod
    def list_notifications(
        db: Session,
        page: int = 1,
        page_size: int = 20,
        type: Optional[str] = None,
        is_read: Optional[bool] = None,
        priority: Optional[NotificationPriority] = None,
    ) -> Tuple[List[AppNotification], int]:
        return AppNotificationRepository(db).list_page(
            page=page, page_size=page_size, type=type, is_read=is_read, priority=priority
        )

    @staticmethod
    def unread_count(db: Session) -> int:
        return AppNotificationRepository(db).count_unread()

    @staticmethod
    def mark_read(db: Session, notification_id: UUID) -> AppNotification:
        repo = AppNotificationRepository(db)
        notification = repo.get_by_id(notification_id)
        if not notification:
            raise NotFoundError(f"Notification not found: {notification_id}")
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = datetime.utcnow()
            repo.update(notification)
        return notification

    @staticmethod
    def mark_all_read(db: Session) -> int:
        try:
            count = AppNotificationRepository(db).mark_all_read(datetime.utcnow())
            db.commit()
            return count
        except Exception:
            db.rollback()
            logger.exception("Error marking notifications read")
            raise

    @staticmethod
    def delete(db: Session, notification_id: UUID) -> bool:
        if not AppNotificationRepository(db).delete(notification_id):
            raise NotFoundError(f"Notification not found: {notification_id}")
        return True

    @staticmethod
    def delete_old_read(db: Session, days: int = 30) -> int:
        threshold = datetime.utcnow() - timedelta(days=days)
        try:
            count = AppNotificationRepository(db).delete_read_before(threshold)
            db.commit()
            logger.info("Deleted %d read notifications older than %d days", count, days)
            return count
        except Exception:
            db.rollback()
            logger.exception("Error deleting old notifications")
            raise

    @staticmethod
    def stats(db: Session) -> Dict[str, Any]:
        repo = AppNotificationRepository(db)
        return {
            "total": repo.db.query(AppNotification).count(),
            "unread": repo.count_unread(),
            "by_type": repo.counts_by(AppNotification.type),
            "by_priority": repo.counts_by(AppNotification.priority),
        }
