"""Owner notification feed routes"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
import logging

from api.dependencies import get_db, require_owner
from api.responses import paginated_response, success_response
from domain.enums import NotificationPriority
from domain.models import AppUser
from domain.schemas import NotificationResponse
from services.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])
logger = logging.getLogger("tiffinmate.api.notifications")


@router.get("")
def list_notifications(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    type: Optional[str] = Query(None),
    is_read: Optional[bool] = Query(None),
    priority: Optional[NotificationPriority] = Query(None),
    owner: AppUser = Depends(require_owner),
    db: Session = Depends(get_db),
):
    items, total = NotificationService.list_notifications(
        db, page=page, page_size=page_size, type=type, is_read=is_read, priority=priority
    )
    return success_response(
        data=paginated_response(
            [NotificationResponse.model_validate(n) for n in items], total, page, page_size
        )
    )


@router.get("/unread-count")
def unread_count(owner: AppUser = Depends(require_owner), db: Session = Depends(get_db)):
    return success_response(data={"count": NotificationService.unread_count(db)})


@router.get("/stats")
def notification_stats(owner: AppUser = Depends(require_owner), db: Session = Depends(get_db)):
    return success_response(data=NotificationService.stats(db))


@router.patch("/read-all")
def mark_all_read(owner: AppUser = Depends(require_owner), db: Session = Depends(get_db)):
    updated = NotificationService.mark_all_read(db)
    return success_response(data={"updated": updated}, message="All notifications marked as read")


@router.delete("/old")
def delete_old(
    days: int = Query(30, ge=1),
    owner: AppUser = Depends(require_owner),
    db: Session = Depends(get_db),
):
    """Purge read notifications older than ``days``"""
    deleted = NotificationService.delete_old_read(db, days=days)
    return success_response(data={"deleted": deleted})


@router.patch("/{notification_id}/read")
def mark_read(
    notification_id: UUID, owner: AppUser = Depends(require_owner), db: Session = Depends(get_db)
):
    notification = NotificationService.mark_read(db, notification_id)
    return success_response(data=NotificationResponse.model_validate(notification))


@router.delete("/{notification_id}")
def delete_notification(
    notification_id: UUID, owner: AppUser = Depends(require_owner), db: Session = Depends(get_db)
):
    NotificationService.delete(db, notification_id)
    return success_response(message="Notification deleted")
