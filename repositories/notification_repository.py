"""
Notification Repository - SMS log and owner feed data access
"""

from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from repositories.base import BaseRepository
from domain.models import NotificationLog, AppNotification
from domain.enums import NotificationPriority


class NotificationLogRepository(BaseRepository[NotificationLog]):
    """Repository for SMS send attempts"""

    def __init__(self, db: Session):
        super().__init__(db, NotificationLog)

    def list_recent(self, limit: int = 100) -> List[NotificationLog]:
        return (
            self.db.query(NotificationLog)
            .order_by(NotificationLog.sent_at.desc())
            .limit(limit)
            .all()
        )


class AppNotificationRepository(BaseRepository[AppNotification]):
    """Repository for the owner's notification feed"""

    def __init__(self, db: Session):
        super().__init__(db, AppNotification)

    def list_page(
        self,
        page: int = 1,
        page_size: int = 20,
        type: Optional[str] = None,
        is_read: Optional[bool] = None,
        priority: Optional[NotificationPriority] = None,
    ) -> Tuple[List[AppNotification], int]:
        query = self.db.query(AppNotification)
        if type:
            query = query.filter(AppNotification.type == type)
        if is_read is not None:
            query = query.filter(AppNotification.is_read.is_(is_read))
        if priority:
            query = query.filter(AppNotification.priority == priority)
        total = query.count()
        items = (
            query.order_by(AppNotification.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return items, total

    def count_unread(self) -> int:
        return (
            self.db.query(AppNotification)
            .filter(AppNotification.is_read.is_(False))
            .count()
        )

    def mark_all_read(self, now: datetime) -> int:
        return (
            self.db.query(AppNotification)
            .filter(AppNotification.is_read.is_(False))
            .update({"is_read": True, "read_at": now}, synchronize_session=False)
        )

    def delete_read_before(self, threshold: datetime) -> int:
        return (
            self.db.query(AppNotification)
            .filter(
                AppNotification.is_read.is_(True),
                AppNotification.created_at < threshold,
            )
            .delete(synchronize_session=False)
        )

    def counts_by(self, column) -> dict:
        rows = (
            self.db.query(column, func.count(AppNotification.id))
            .group_by(column)
            .all()
        )
        return {
            (key.value if hasattr(key, "value") else key): count for key, count in rows
        }
