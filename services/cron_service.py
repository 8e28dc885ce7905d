"""
Daily sweeps that move subscriptions, meals, deliveries and payments along.

Every job takes a session plus an explicit ``today``/``now`` and returns a
summary dict. A failure on one item is logged and the sweep carries on.
"""

from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, Optional
import logging

from sqlalchemy.orm import Session

from app.clock import now_local, today_local
from app.config import settings
from domain.enums import (
    MealType,
    NotificationType,
    PaymentStatus,
    SettlementStatus,
    SubscriptionStatus,
)
from domain.models.database import SessionLocal
from repositories import PaymentRepository, SubscriptionRepository
from services.delivery_service import DeliveryService
from services.meal_service import MealService
from services.notification_service import NotificationService
from services.sms_service import SmsService

logger = logging.getLogger("tiffinmate.cron")


def _summary(job: str) -> Dict[str, Any]:
    return {"job": job, "processed": 0, "errors": []}


def _fail(summary: Dict[str, Any], db: Session, item, exc: Exception) -> None:
    db.rollback()
    logger.exception("%s failed for %s", summary["job"], item)
    summary["errors"].append(f"{item}: {exc}")


class CronService:
    @staticmethod
    def midnight_maintenance(db: Session, today: Optional[date] = None) -> Dict[str, Any]:
        """
        Expire subscriptions past their end date, cap remaining days by the
        calendar days left, and close trials that used their allowance.
        """
        today = today or today_local()
        summary = _summary("midnight_maintenance")
        summary.update({"expired": 0, "recalculated": 0, "trials_expired": 0})

        for subscription in SubscriptionRepository(db).list_by_status(SubscriptionStatus.ACTIVE):
            try:
                if subscription.end_date < today:
                    subscription.status = SubscriptionStatus.EXPIRED
                    subscription.recompute_remaining()
                    db.commit()
                    summary["expired"] += 1
                    NotificationService.publish(
                        "subscription_expired",
                        {"id": subscription.id, "user_id": subscription.user_id},
                        user_id=subscription.user_id,
                    )
                    continue

                calendar_left = (subscription.end_date - today).days + 1
                remaining = max(
                    0, min(subscription.total_days - subscription.used_days, calendar_left)
                )
                if remaining != subscription.remaining_days:
                    subscription.remaining_days = remaining
                    summary["recalculated"] += 1

                if subscription.is_trial and subscription.used_days >= settings.trial_max_days:
                    subscription.status = SubscriptionStatus.EXPIRED
                    SmsService.notify(db, subscription.user, NotificationType.TRIAL_EXPIRED)
                    summary["trials_expired"] += 1
                db.commit()
                summary["processed"] += 1
            except Exception as exc:
                _fail(summary, db, subscription.id, exc)
        return summary

    @staticmethod
    def expiry_reminder(db: Session, today: Optional[date] = None) -> Dict[str, Any]:
        today = today or today_local()
        summary = _summary("expiry_reminder")
        horizon = today + timedelta(days=settings.expiry_reminder_days)

        for subscription in SubscriptionRepository(db).list_by_status(SubscriptionStatus.ACTIVE):
            if subscription.expiry_reminder_sent or subscription.end_date > horizon:
                continue
            try:
                SmsService.notify(
                    db,
                    subscription.user,
                    NotificationType.SUBSCRIPTION_REMINDER,
                    days=max(0, (subscription.end_date - today).days),
                )
                subscription.expiry_reminder_sent = True
                db.commit()
                summary["processed"] += 1
            except Exception as exc:
                _fail(summary, db, subscription.id, exc)
        return summary

    @staticmethod
    def expiry_warning(db: Session, today: Optional[date] = None) -> Dict[str, Any]:
        today = today or today_local()
        summary = _summary("expiry_warning")

        for subscription in SubscriptionRepository(db).list_active_ended_before(today):
            if subscription.expiry_warning_sent:
                continue
            try:
                SmsService.notify(db, subscription.user, NotificationType.SUBSCRIPTION_EXPIRY)
                subscription.status = SubscriptionStatus.EXPIRED
                subscription.expiry_warning_sent = True
                db.commit()
                summary["processed"] += 1
            except Exception as exc:
                _fail(summary, db, subscription.id, exc)
        return summary

    @staticmethod
    def auto_disable(db: Session, today: Optional[date] = None) -> Dict[str, Any]:
        today = today or today_local()
        summary = _summary("auto_disable")
        yesterday = today - timedelta(days=1)

        for subscription in SubscriptionRepository(db).list_by_status(SubscriptionStatus.EXPIRED):
            if subscription.disable_reminder_sent or not subscription.end_date < yesterday:
                continue
            try:
                subscription.user.is_active = False
                SmsService.notify(db, subscription.user, NotificationType.SUBSCRIPTION_DISABLED)
                subscription.status = SubscriptionStatus.DISABLED
                subscription.disable_reminder_sent = True
                db.commit()
                summary["processed"] += 1
                NotificationService.publish(
                    "subscription_updated",
                    {"id": subscription.id, "status": subscription.status.value},
                    user_id=subscription.user_id,
                )
            except Exception as exc:
                _fail(summary, db, subscription.id, exc)
        return summary

    @staticmethod
    def payment_overdue(db: Session, today: Optional[date] = None) -> Dict[str, Any]:
        today = today or today_local()
        summary = _summary("payment_overdue")
        due = PaymentRepository(db).list_due_before(
            today,
            (SettlementStatus.PENDING, SettlementStatus.PARTIAL, SettlementStatus.OVERDUE),
        )

        for payment in due:
            if payment.status != PaymentStatus.PENDING or payment.last_reminder_date == today:
                continue
            try:
                SmsService.notify(
                    db,
                    payment.user,
                    NotificationType.PAYMENT_OVERDUE,
                    amount=f"{payment.pending_amount:.2f}",
                )
                payment.payment_status = SettlementStatus.OVERDUE
                payment.reminder_sent = True
                payment.reminder_count = (payment.reminder_count or 0) + 1
                payment.last_reminder_date = today
                db.commit()
                summary["processed"] += 1
            except Exception as exc:
                _fail(summary, db, payment.id, exc)
        return summary

    @staticmethod
    def default_lunch(db: Session, today: Optional[date] = None) -> Dict[str, Any]:
        """Runs after the 23:00 cutoff for tomorrow's lunch"""
        today = today or today_local()
        return MealService.assign_default_meals(db, today + timedelta(days=1), MealType.LUNCH)

    @staticmethod
    def default_dinner(db: Session, today: Optional[date] = None) -> Dict[str, Any]:
        today = today or today_local()
        return MealService.assign_default_meals(db, today, MealType.DINNER)

    @staticmethod
    def auto_deliveries(db: Session, today: Optional[date] = None) -> Dict[str, Any]:
        return DeliveryService.auto_create_deliveries(db, today or today_local())

    @staticmethod
    def auto_mark_delivered(db: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
        return DeliveryService.auto_mark_delivered(db, now or now_local())


JOBS: Dict[str, Callable[[Session], Dict[str, Any]]] = {
    "midnight_maintenance": CronService.midnight_maintenance,
    "auto_deliveries": CronService.auto_deliveries,
    "expiry_reminder": CronService.expiry_reminder,
    "expiry_warning": CronService.expiry_warning,
    "auto_disable": CronService.auto_disable,
    "default_dinner": CronService.default_dinner,
    "payment_overdue": CronService.payment_overdue,
    "default_lunch": CronService.default_lunch,
    "auto_mark_delivered": CronService.auto_mark_delivered,
}


def run_job(name: str, db: Optional[Session] = None) -> Dict[str, Any]:
    """Run one job by name in its own session (or ``db`` when given)"""
    job = JOBS[name]
    own_session = db is None
    db = db or SessionLocal()
    started = datetime.utcnow()
    try:
        result = job(db)
        logger.info(
            "Cron job %s finished in %.2fs: %s",
            name,
            (datetime.utcnow() - started).total_seconds(),
            {k: v for k, v in result.items() if k != "errors"},
        )
        return result
    except Exception:
        db.rollback()
        logger.exception("Cron job %s failed", name)
        raise
    finally:
        if own_session:
            db.close()
