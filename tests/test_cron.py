"""
Tests for the scheduled sweeps: subscription lifecycle, reminders,
overdue payments and default meal assignment.
"""

from datetime import timedelta
from decimal import Decimal

from sqlalchemy.orm import Session

from test_fixtures import (
    TODAY,
    auth_headers,
    client,
    db_session,
    make_customer,
    make_order,
    make_owner,
    make_subscription,
    sms,
)
from adapters.scheduler import JOB_SCHEDULES, SchedulerManager
from app.clock import today_local
from domain.enums import (
    MealType,
    PaymentMethod,
    PaymentStatus,
    PlanCategory,
    PlanType,
    SettlementStatus,
    SubscriptionStatus,
)
from domain.models import MealOrder, Payment
from services.cron_service import JOBS, CronService, run_job


# =============================================================================
# MIDNIGHT MAINTENANCE
# =============================================================================


def test_midnight_expires_subscriptions_past_end(db_session: Session, sms):
    customer = make_customer(db_session)
    subscription = make_subscription(
        db_session, customer, start=TODAY - timedelta(days=30), days=30, used_days=25
    )

    summary = CronService.midnight_maintenance(db_session, today=TODAY)

    assert summary["expired"] == 1
    assert subscription.status == SubscriptionStatus.EXPIRED
    assert subscription.remaining_days == 5


def test_midnight_caps_remaining_by_calendar_days(db_session: Session, sms):
    """
    Verifies:
    - Remaining days never exceed the calendar days left before the end date
    - Subscriptions already consistent are left alone
    """
    priya = make_customer(db_session)
    rahul = make_customer(db_session, "student")
    behind = make_subscription(
        db_session, priya, start=TODAY - timedelta(days=20), days=30, used_days=5
    )
    on_track = make_subscription(db_session, rahul, days=30)

    summary = CronService.midnight_maintenance(db_session, today=TODAY)

    assert behind.remaining_days == 10
    assert behind.status == SubscriptionStatus.ACTIVE
    assert on_track.remaining_days == 30
    assert summary["recalculated"] == 1
    assert summary["processed"] == 2


def test_midnight_closes_used_up_trials(db_session: Session, sms):
    customer = make_customer(db_session)
    trial = make_subscription(
        db_session,
        customer,
        start=TODAY - timedelta(days=3),
        days=7,
        used_days=3,
        plan_type=PlanType.TRIAL,
        plan_category=PlanCategory.TRIAL,
    )

    summary = CronService.midnight_maintenance(db_session, today=TODAY)

    assert summary["trials_expired"] == 1
    assert trial.status == SubscriptionStatus.EXPIRED
    assert any("trial has ended" in text for text in sms.to(customer.mobile))


# =============================================================================
# REMINDERS AND DISABLING
# =============================================================================


def test_expiry_reminder_sent_once(db_session: Session, sms):
    priya = make_customer(db_session)
    rahul = make_customer(db_session, "student")
    ending = make_subscription(db_session, priya, start=TODAY - timedelta(days=28), days=30)
    make_subscription(db_session, rahul, days=30)

    first = CronService.expiry_reminder(db_session, today=TODAY)
    second = CronService.expiry_reminder(db_session, today=TODAY)

    assert first["processed"] == 1
    assert second["processed"] == 0
    assert ending.expiry_reminder_sent is True
    assert sms.to(priya.mobile) == [
        "Hi Priya Sharma, your TiffinMate subscription will expire in 1 days. "
        "Please renew to continue enjoying our service."
    ]
    assert sms.to(rahul.mobile) == []


def test_expiry_warning_expires_overdue_active(db_session: Session, sms):
    customer = make_customer(db_session)
    subscription = make_subscription(
        db_session, customer, start=TODAY - timedelta(days=10), days=7
    )

    summary = CronService.expiry_warning(db_session, today=TODAY)

    assert summary["processed"] == 1
    assert subscription.status == SubscriptionStatus.EXPIRED
    assert subscription.expiry_warning_sent is True
    assert any("has expired" in text for text in sms.to(customer.mobile))


def test_auto_disable_after_grace_day(db_session: Session, sms):
    """
    Verifies:
    - Expired subscriptions that ended before yesterday are disabled
    - The customer account is deactivated and told by SMS
    - A subscription that ended yesterday gets one more day
    """
    priya = make_customer(db_session)
    rahul = make_customer(db_session, "student")
    long_gone = make_subscription(
        db_session, priya, start=TODAY - timedelta(days=32), days=30,
        status=SubscriptionStatus.EXPIRED,
    )
    just_ended = make_subscription(
        db_session, rahul, start=TODAY - timedelta(days=30), days=30,
        status=SubscriptionStatus.EXPIRED,
    )

    summary = CronService.auto_disable(db_session, today=TODAY)

    assert summary["processed"] == 1
    assert long_gone.status == SubscriptionStatus.DISABLED
    assert long_gone.disable_reminder_sent is True
    assert priya.is_active is False
    assert just_ended.status == SubscriptionStatus.EXPIRED
    assert rahul.is_active is True


# =============================================================================
# PAYMENTS
# =============================================================================


def test_payment_overdue_reminds_once_per_day(db_session: Session, sms):
    customer = make_customer(db_session)
    subscription = make_subscription(db_session, customer)
    payment = Payment(
        user_id=customer.id,
        subscription_id=subscription.id,
        amount=Decimal("2400.00"),
        paid_amount=Decimal("0"),
        payment_method=PaymentMethod.CASH,
        status=PaymentStatus.PENDING,
        due_date=TODAY - timedelta(days=2),
        payment_type="subscription",
    )
    payment.refresh_settlement(TODAY)
    db_session.add(payment)
    db_session.commit()

    first = CronService.payment_overdue(db_session, today=TODAY)
    again = CronService.payment_overdue(db_session, today=TODAY)
    next_day = CronService.payment_overdue(db_session, today=TODAY + timedelta(days=1))

    assert first["processed"] == 1
    assert again["processed"] == 0
    assert next_day["processed"] == 1
    assert payment.payment_status == SettlementStatus.OVERDUE
    assert payment.reminder_count == 2
    assert payment.last_reminder_date == TODAY + timedelta(days=1)
    assert "Rs.2400.00 is overdue" in sms.to(customer.mobile)[0]


# =============================================================================
# DEFAULT MEALS
# =============================================================================


def test_default_lunch_targets_tomorrow(db_session: Session):
    priya = make_customer(db_session)
    rahul = make_customer(db_session, "student")
    priya_sub = make_subscription(db_session, priya)
    make_subscription(db_session, rahul)
    tomorrow = TODAY + timedelta(days=1)
    make_order(db_session, priya, priya_sub, day=tomorrow, meal_type=MealType.LUNCH)

    summary = CronService.default_lunch(db_session, today=TODAY)

    assert summary["date"] == tomorrow
    assert summary["assigned"] == 1
    assert summary["skipped"] == 1
    default = db_session.query(MealOrder).filter_by(user_id=rahul.id, is_default=True).one()
    assert default.delivery_date == tomorrow
    assert default.meal_type == MealType.LUNCH
    assert default.created_by == "system-cron"


def test_default_dinner_targets_today(db_session: Session):
    customer = make_customer(db_session)
    make_subscription(db_session, customer, includes_lunch=False)

    summary = CronService.default_dinner(db_session, today=TODAY)

    assert summary["assigned"] == 1
    order = db_session.query(MealOrder).one()
    assert order.delivery_date == TODAY
    assert order.meal_type == MealType.DINNER


def test_default_meals_skip_used_up_trial(db_session: Session):
    priya = make_customer(db_session)
    rahul = make_customer(db_session, "student")
    make_subscription(
        db_session,
        priya,
        start=TODAY,
        days=7,
        used_days=3,
        plan_type=PlanType.TRIAL,
        plan_category=PlanCategory.TRIAL,
    )
    make_subscription(
        db_session,
        rahul,
        start=TODAY,
        days=7,
        used_days=1,
        plan_type=PlanType.TRIAL,
        plan_category=PlanCategory.TRIAL,
    )

    summary = CronService.default_lunch(db_session, today=TODAY)

    assert summary["assigned"] == 1
    assert summary["skipped"] == 1
    assert db_session.query(MealOrder).filter_by(user_id=priya.id).count() == 0
    assert db_session.query(MealOrder).filter_by(user_id=rahul.id).count() == 1


# =============================================================================
# RUNNER AND ROUTES
# =============================================================================


def test_job_registry():
    assert set(JOBS) == {
        "midnight_maintenance",
        "auto_deliveries",
        "expiry_reminder",
        "expiry_warning",
        "auto_disable",
        "default_dinner",
        "payment_overdue",
        "default_lunch",
        "auto_mark_delivered",
    }


def test_run_job_with_session(db_session: Session, sms):
    customer = make_customer(db_session)
    make_subscription(db_session, customer, start=today_local() - timedelta(days=40), days=30)

    result = run_job("midnight_maintenance", db=db_session)

    assert result["job"] == "midnight_maintenance"
    assert result["expired"] == 1


def test_cron_routes(client, db_session: Session, sms):
    owner = make_owner(db_session)

    jobs = client.get("/api/admin/cron/jobs", headers=auth_headers(owner))
    assert jobs.status_code == 200
    assert "default_lunch" in jobs.json()["data"]["available"]

    ran = client.post("/api/admin/cron/expiry_reminder", headers=auth_headers(owner))
    assert ran.status_code == 200
    assert ran.json()["data"]["processed"] == 0

    unknown = client.post("/api/admin/cron/make_coffee", headers=auth_headers(owner))
    assert unknown.status_code == 404
    assert unknown.json()["success"] is False


def test_scheduler_registers_every_job():
    manager = SchedulerManager()

    manager.initialize(schedules={"default_lunch": "5 23 * * *"})

    jobs = {job["id"]: job for job in manager.get_jobs()}
    assert set(jobs) == set(JOB_SCHEDULES) == set(JOBS)
    assert jobs["default_lunch"]["name"] == "Default lunch assignment"
    assert "minute='5'" in jobs["default_lunch"]["trigger"]
