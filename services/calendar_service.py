"""
Customer delivery calendar.
"""

from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.clock import today_local
from domain.enums import CalendarDayStatus, DeliveryStatus
from domain.models import AppUser, Delivery
from repositories import DeliveryRepository, SubscriptionRepository

SKIPPED_STATUSES = (DeliveryStatus.PAUSED, DeliveryStatus.DISABLED)


def day_status(day: date, today: date, deliveries: List[Delivery]) -> CalendarDayStatus:
    statuses = {d.status for d in deliveries}
    delivered = DeliveryStatus.DELIVERED in statuses
    skipped = bool(statuses) and statuses <= set(SKIPPED_STATUSES)

    if day > today:
        return CalendarDayStatus.SKIPPED if skipped else CalendarDayStatus.UPCOMING
    if delivered:
        return CalendarDayStatus.DELIVERED
    if skipped:
        return CalendarDayStatus.SKIPPED
    if day < today:
        return CalendarDayStatus.EXPIRED
    return CalendarDayStatus.PENDING


class CalendarService:
    @staticmethod
    def customer_calendar(
        db: Session, user: AppUser, today: Optional[date] = None
    ) -> Dict[str, Any]:
        """Per-day status across the customer's active subscription"""
        today = today or today_local()
        subscription = SubscriptionRepository(db).get_active_for_user(user.id)
        if not subscription:
            return {"subscription_id": None, "days": []}

        deliveries = DeliveryRepository(db).list_for_user(
            user.id, subscription.start_date, subscription.end_date
        )
        by_day = {}
        for delivery in deliveries:
            by_day.setdefault(delivery.delivery_date, []).append(delivery)

        days = []
        current = subscription.start_date
        while current <= subscription.end_date:
            day_deliveries = by_day.get(current, [])
            days.append(
                {
                    "date": current,
                    "status": day_status(current, today, day_deliveries).value,
                    "meal_types": sorted(d.meal_type.value for d in day_deliveries),
                }
            )
            current += timedelta(days=1)

        return {
            "subscription_id": subscription.id,
            "start_date": subscription.start_date,
            "end_date": subscription.end_date,
            "days": days,
        }
