"""
Owner dashboard figures.
"""

from datetime import date, timedelta
from typing import Any, Dict, Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy.orm import Session

from app.clock import day_bounds_utc, today_local
from domain.models import Payment
from domain.enums import LeadStatus, PaymentStatus, SettlementStatus, SubscriptionStatus
from repositories import (
    AccessRequestRepository,
    LeadRepository,
    PaymentRepository,
    SubscriptionRepository,
    UserRepository,
)
from services.meal_counter import count_meals_for_day
from services.payment_service import SETTLED_STATUSES


class DashboardService:
    @staticmethod
    def stats(db: Session, today: Optional[date] = None) -> Dict[str, Any]:
        today = today or today_local()
        users = UserRepository(db)
        subscriptions = SubscriptionRepository(db)
        payments = PaymentRepository(db)
        leads = LeadRepository(db)

        meals = count_meals_for_day(db, today)

        month_start = today.replace(day=1)
        month_from, _ = day_bounds_utc(month_start)
        month_to, _ = day_bounds_utc(month_start + relativedelta(months=1))
        day_from, day_to = day_bounds_utc(today)

        return {
            "date": today,
            "customers": {
                "total": users.count_customers(),
                "active": users.count_customers(active_only=True),
            },
            "subscriptions": {
                "active": subscriptions.count_by_status(SubscriptionStatus.ACTIVE),
                "expiring_soon": len(
                    subscriptions.list_expiring_between(today, today + timedelta(days=7))
                ),
                "pending_approval": subscriptions.count_by_status(
                    SubscriptionStatus.PENDING_APPROVAL
                ),
            },
            "today_meals": {
                "lunch": meals["lunch_count"],
                "dinner": meals["dinner_count"],
                "total": meals["total_orders"],
                "unique_customers": meals["unique_customers"],
            },
            "payments": {
                "pending": payments.count_by_status(PaymentStatus.PENDING),
                "overdue": payments.count_by_settlement(SettlementStatus.OVERDUE),
            },
            "subscription_alerts": {
                "expiring": len(
                    subscriptions.list_expiring_between(today, today + timedelta(days=3))
                ),
                "expired": subscriptions.count_by_status(SubscriptionStatus.EXPIRED),
                "paused": subscriptions.count_by_status(SubscriptionStatus.PAUSED),
            },
            "monthly_collection": {
                "collected": payments.sum_amount(
                    SETTLED_STATUSES, month_from, month_to, on_field=Payment.received_at
                ),
                "pending": payments.sum_amount(
                    [PaymentStatus.PENDING], month_from, month_to
                ),
            },
            "today_collection": payments.sum_amount(
                SETTLED_STATUSES, day_from, day_to, on_field=Payment.received_at
            ),
            "pending_access_requests": AccessRequestRepository(db).count_pending(),
            "leads": {"total": leads.count(), "new": leads.count(LeadStatus.NEW)},
        }
