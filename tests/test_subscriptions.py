"""
Tests for subscription plans and the subscription lifecycle.

Covers period calculation, customer requests, owner approval/rejection,
the one-trial rule, pause toggling and renewal.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from test_fixtures import (
    TODAY,
    auth_headers,
    client,
    db_session,
    make_customer,
    make_owner,
    make_plan,
    make_subscription,
    sms,
)
from adapters import socket_hub
from app.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ServiceValidationError,
)
from domain.enums import (
    DietaryPreference,
    DurationType,
    FoodType,
    PaymentStatus,
    PlanCategory,
    PlanType,
    SubscriptionStatus,
)
from domain.models import AppNotification, Payment, Subscription
from services.subscription_service import SubscriptionService, calculate_period


# =============================================================================
# PERIOD CALCULATION
# =============================================================================


def test_daily_period_is_one_day():
    assert calculate_period(TODAY, DurationType.DAILY, 1) == (TODAY, 1)


def test_weekly_period_is_seven_days():
    end, days = calculate_period(TODAY, DurationType.WEEKLY, 7)

    assert end == date(2025, 3, 16)
    assert days == 7


def test_monthly_period_follows_calendar_month():
    """
    Verifies:
    - A month starting 10 Mar ends 9 Apr (31 days)
    - A month starting 31 Jan ends 27 Feb (no 31 Feb)
    """
    assert calculate_period(TODAY, DurationType.MONTHLY, 30) == (date(2025, 4, 9), 31)
    end, days = calculate_period(date(2025, 1, 31), DurationType.MONTHLY, 30)
    assert end == date(2025, 2, 27)
    assert days == 28


def test_custom_duration_uses_duration_days():
    end, days = calculate_period(TODAY, None, 3)

    assert end == date(2025, 3, 12)
    assert days == 3


# =============================================================================
# PLANS
# =============================================================================


def test_create_plan_computes_total_price(db_session: Session):
    plan = SubscriptionService.create_plan(
        db_session,
        {
            "name": "weekly-veg",
            "display_name": "Weekly Veg",
            "duration_type": DurationType.WEEKLY,
            "duration_days": 7,
            "price_per_day": Decimal("90.00"),
            "plan_category": PlanCategory.PREMIUM,
            "food_type": FoodType.VEG,
            "menu_category": PlanType.PREMIUM_VEG,
        },
    )

    assert plan.total_price == Decimal("630.00")
    assert plan.meal_types == ["lunch", "dinner"]


def test_create_plan_duplicate_name_conflicts(db_session: Session):
    make_plan(db_session, name="monthly-classic")

    with pytest.raises(ConflictError):
        SubscriptionService.create_plan(
            db_session,
            {
                "name": "monthly-classic",
                "display_name": "Again",
                "duration_type": DurationType.MONTHLY,
                "duration_days": 30,
                "price_per_day": Decimal("80"),
            },
        )


def test_duration_types_summary(db_session: Session):
    make_plan(db_session, name="monthly-classic", price_per_day=Decimal("80"))
    make_plan(db_session, name="monthly-premium", price_per_day=Decimal("120"))
    make_plan(db_session, name="weekly-classic", duration_type=DurationType.WEEKLY, duration_days=7)

    summary = SubscriptionService.duration_types(db_session)

    assert [entry["duration_type"] for entry in summary] == ["weekly", "monthly"]
    monthly = summary[1]
    assert monthly["plan_count"] == 2
    assert monthly["min_price"] == Decimal("2400.00")


# =============================================================================
# REQUEST / APPROVE / REJECT
# =============================================================================


def test_request_subscription_waits_for_approval(db_session: Session):
    """
    Verifies:
    - The request is stored as pending_approval with the plan's period
    - The owner gets a feed entry and a live event
    """
    customer = make_customer(db_session)
    plan = make_plan(db_session, duration_type=DurationType.WEEKLY, duration_days=7)

    subscription = SubscriptionService.request_subscription(
        db_session, customer, plan.id, today=TODAY
    )

    assert subscription.status == SubscriptionStatus.PENDING_APPROVAL
    assert subscription.start_date == TODAY
    assert subscription.end_date == date(2025, 3, 16)
    assert subscription.total_days == 7
    assert subscription.remaining_days == 7
    assert subscription.plan_type == PlanType.CLASSIC
    assert db_session.query(AppNotification).filter_by(type="subscription_requested").count() == 1
    assert socket_hub.hub.events("subscription_request", room="owner")


def test_request_rejects_second_open_subscription(db_session: Session):
    customer = make_customer(db_session)
    plan = make_plan(db_session)
    SubscriptionService.request_subscription(db_session, customer, plan.id, today=TODAY)

    with pytest.raises(ConflictError):
        SubscriptionService.request_subscription(db_session, customer, plan.id, today=TODAY)


def test_request_start_in_past_rejected(db_session: Session):
    customer = make_customer(db_session)
    plan = make_plan(db_session)

    with pytest.raises(ServiceValidationError):
        SubscriptionService.request_subscription(
            db_session, customer, plan.id, start_date=TODAY - timedelta(days=1), today=TODAY
        )


def test_request_inactive_plan_rejected(db_session: Session):
    customer = make_customer(db_session)
    plan = make_plan(db_session, is_active=False)

    with pytest.raises(ServiceValidationError):
        SubscriptionService.request_subscription(db_session, customer, plan.id, today=TODAY)


def test_trial_can_only_be_used_once(db_session: Session):
    customer = make_customer(db_session)
    trial = make_plan(
        db_session,
        name="trial-3-day",
        duration_type=DurationType.DAILY,
        duration_days=1,
        plan_category=PlanCategory.TRIAL,
    )
    first = SubscriptionService.request_subscription(db_session, customer, trial.id, today=TODAY)
    assert first.plan_type == PlanType.TRIAL
    first.status = SubscriptionStatus.EXPIRED
    db_session.commit()

    with pytest.raises(ServiceValidationError) as exc_info:
        SubscriptionService.request_subscription(db_session, customer, trial.id, today=TODAY)

    assert exc_info.value.code == "TRIAL_ALREADY_USED"
    assert SubscriptionService.check_trial(db_session, customer) == {
        "has_used_trial": True,
        "can_use_trial": False,
    }


def test_premium_plan_sets_dietary_preference(db_session: Session):
    customer = make_customer(db_session)
    plan = make_plan(
        db_session,
        name="monthly-non-veg",
        plan_category=PlanCategory.PREMIUM,
        food_type=FoodType.NON_VEG,
        menu_category=PlanType.PREMIUM_NON_VEG,
    )

    subscription = SubscriptionService.request_subscription(db_session, customer, plan.id, today=TODAY)

    assert subscription.plan_type == PlanType.PREMIUM_NON_VEG
    assert subscription.dietary_preference == DietaryPreference.NON_VEG


def test_approve_activates_and_raises_pending_payment(db_session: Session, sms):
    """
    Verifies:
    - Approval makes the subscription active and the customer active
    - A pending payment due three days later is raised
    - The customer is told by SMS
    """
    owner = make_owner(db_session)
    customer = make_customer(db_session, is_active=False)
    plan = make_plan(db_session)
    subscription = SubscriptionService.request_subscription(db_session, customer, plan.id, today=TODAY)

    approved = SubscriptionService.approve(db_session, subscription.id, owner, today=TODAY)

    assert approved.status == SubscriptionStatus.ACTIVE
    assert approved.approved_by == owner.id
    assert customer.is_active is True
    payments = db_session.query(Payment).filter_by(subscription_id=subscription.id).all()
    assert len(payments) == 1
    assert payments[0].status == PaymentStatus.PENDING
    assert payments[0].amount == plan.total_price
    assert payments[0].due_date == TODAY + timedelta(days=3)
    assert any("subscription is active" in text for text in sms.to(customer.mobile))


def test_approve_with_new_start_date_recomputes_period(db_session: Session, sms):
    owner = make_owner(db_session)
    customer = make_customer(db_session)
    plan = make_plan(db_session, duration_type=DurationType.WEEKLY, duration_days=7)
    subscription = SubscriptionService.request_subscription(db_session, customer, plan.id, today=TODAY)

    approved = SubscriptionService.approve(
        db_session, subscription.id, owner, start_date=date(2025, 3, 15), today=TODAY
    )

    assert approved.start_date == date(2025, 3, 15)
    assert approved.end_date == date(2025, 3, 21)
    assert approved.remaining_days == 7


def test_approve_twice_rejected(db_session: Session, sms):
    owner = make_owner(db_session)
    customer = make_customer(db_session)
    plan = make_plan(db_session)
    subscription = SubscriptionService.request_subscription(db_session, customer, plan.id, today=TODAY)
    SubscriptionService.approve(db_session, subscription.id, owner, today=TODAY)

    with pytest.raises(ServiceValidationError):
        SubscriptionService.approve(db_session, subscription.id, owner, today=TODAY)


def test_reject_requires_reason_and_records_it(db_session: Session):
    owner = make_owner(db_session)
    customer = make_customer(db_session)
    plan = make_plan(db_session)
    subscription = SubscriptionService.request_subscription(db_session, customer, plan.id, today=TODAY)

    with pytest.raises(ServiceValidationError):
        SubscriptionService.reject(db_session, subscription.id, owner, "   ")

    rejected = SubscriptionService.reject(
        db_session, subscription.id, owner, "Area not serviceable"
    )
    assert rejected.status == SubscriptionStatus.REJECTED
    assert rejected.rejection_reason == "Area not serviceable"
    assert socket_hub.hub.events("subscription_rejected", room=f"user_{customer.id}")


def test_unknown_subscription_not_found(db_session: Session):
    import uuid

    with pytest.raises(NotFoundError):
        SubscriptionService.get(db_session, uuid.uuid4())


def test_customer_cannot_read_other_subscription(db_session: Session):
    priya = make_customer(db_session)
    rahul = make_customer(db_session, "student")
    subscription = make_subscription(db_session, priya)

    with pytest.raises(ForbiddenError):
        SubscriptionService.get(db_session, subscription.id, actor=rahul)


# =============================================================================
# STATUS, PAUSE, RENEW
# =============================================================================


def test_toggle_pause_round_trip(db_session: Session):
    customer = make_customer(db_session)
    subscription = make_subscription(db_session, customer)

    paused = SubscriptionService.toggle_pause(db_session, subscription.id, customer)
    assert paused.status == SubscriptionStatus.PAUSED

    resumed = SubscriptionService.toggle_pause(db_session, subscription.id, customer)
    assert resumed.status == SubscriptionStatus.ACTIVE


def test_toggle_pause_on_expired_rejected(db_session: Session):
    customer = make_customer(db_session)
    subscription = make_subscription(db_session, customer, status=SubscriptionStatus.EXPIRED)

    with pytest.raises(ServiceValidationError):
        SubscriptionService.toggle_pause(db_session, subscription.id, customer)


def test_update_status_refuses_internal_states(db_session: Session):
    customer = make_customer(db_session)
    subscription = make_subscription(db_session, customer)

    with pytest.raises(ServiceValidationError):
        SubscriptionService.update_status(
            db_session, subscription.id, SubscriptionStatus.PENDING_APPROVAL
        )

    updated = SubscriptionService.update_status(
        db_session, subscription.id, SubscriptionStatus.DISABLED
    )
    assert updated.status == SubscriptionStatus.DISABLED


def test_renew_expires_old_and_starts_new(db_session: Session):
    owner = make_owner(db_session)
    customer = make_customer(db_session)
    plan = make_plan(db_session, duration_type=DurationType.WEEKLY, duration_days=7)
    old = make_subscription(
        db_session, customer, plan=plan, start=TODAY - timedelta(days=7), days=7, used_days=7
    )

    new = SubscriptionService.renew(db_session, old.id, owner, today=TODAY)

    assert old.status == SubscriptionStatus.EXPIRED
    assert new.id != old.id
    assert new.status == SubscriptionStatus.ACTIVE
    assert new.start_date == TODAY
    assert new.end_date == date(2025, 3, 16)
    assert new.used_days == 0
    assert db_session.query(Payment).filter_by(subscription_id=new.id).count() == 1


# =============================================================================
# ONE OPEN SUBSCRIPTION PER CUSTOMER
# =============================================================================


def test_resume_blocked_once_replacement_is_active(db_session: Session, sms):
    """
    Verifies:
    - A customer may request a new plan while the old one is paused
    - Once the new plan is approved the paused one cannot be resumed
    - The paused subscription keeps its status
    """
    owner = make_owner(db_session)
    customer = make_customer(db_session)
    plan = make_plan(db_session)
    paused = make_subscription(db_session, customer)
    SubscriptionService.toggle_pause(db_session, paused.id, customer)
    replacement = SubscriptionService.request_subscription(
        db_session, customer, plan.id, today=TODAY
    )
    SubscriptionService.approve(db_session, replacement.id, owner, today=TODAY)

    with pytest.raises(ConflictError) as exc_info:
        SubscriptionService.toggle_pause(db_session, paused.id, customer)

    assert exc_info.value.code == "SUBSCRIPTION_OPEN"
    assert exc_info.value.details["subscription_id"] == str(replacement.id)
    assert paused.status == SubscriptionStatus.PAUSED
    assert replacement.status == SubscriptionStatus.ACTIVE


def test_update_status_cannot_open_second_subscription(db_session: Session):
    customer = make_customer(db_session)
    make_subscription(db_session, customer)
    old = make_subscription(
        db_session, customer, start=TODAY - timedelta(days=40), days=30,
        status=SubscriptionStatus.EXPIRED,
    )

    for status in (SubscriptionStatus.ACTIVE, SubscriptionStatus.PENDING):
        with pytest.raises(ConflictError):
            SubscriptionService.update_status(db_session, old.id, status)

    assert old.status == SubscriptionStatus.EXPIRED
    disabled = SubscriptionService.update_status(
        db_session, old.id, SubscriptionStatus.DISABLED
    )
    assert disabled.status == SubscriptionStatus.DISABLED


def test_renew_blocked_while_another_subscription_is_active(db_session: Session):
    owner = make_owner(db_session)
    customer = make_customer(db_session)
    current = make_subscription(db_session, customer)
    old = make_subscription(
        db_session, customer, start=TODAY - timedelta(days=40), days=30,
        status=SubscriptionStatus.EXPIRED,
    )

    with pytest.raises(ConflictError):
        SubscriptionService.renew(db_session, old.id, owner, today=TODAY)

    assert db_session.query(Subscription).filter_by(user_id=customer.id).count() == 2
    assert current.status == SubscriptionStatus.ACTIVE
    assert old.status == SubscriptionStatus.EXPIRED


def test_approve_blocked_while_another_subscription_is_active(db_session: Session, sms):
    owner = make_owner(db_session)
    customer = make_customer(db_session)
    make_subscription(db_session, customer)
    waiting = make_subscription(
        db_session, customer, status=SubscriptionStatus.PENDING_APPROVAL
    )

    with pytest.raises(ConflictError):
        SubscriptionService.approve(db_session, waiting.id, owner, today=TODAY)

    assert waiting.status == SubscriptionStatus.PENDING_APPROVAL
    assert db_session.query(Payment).filter_by(subscription_id=waiting.id).count() == 0


def test_expiring_lists_active_ending_within_window(db_session: Session):
    priya = make_customer(db_session)
    rahul = make_customer(db_session, "student")
    soon = make_subscription(db_session, priya, start=TODAY - timedelta(days=25), days=30)
    make_subscription(db_session, rahul, start=TODAY, days=30)

    expiring = SubscriptionService.expiring(db_session, days=7, today=TODAY)

    assert [s.id for s in expiring] == [soon.id]


# =============================================================================
# ROUTES
# =============================================================================


def test_request_and_approve_routes(client, db_session: Session, sms):
    owner = make_owner(db_session)
    customer = make_customer(db_session)
    plan = make_plan(db_session)

    created = client.post(
        "/api/subscriptions",
        json={"plan_id": str(plan.id)},
        headers=auth_headers(customer),
    )
    assert created.status_code == 201
    subscription_id = created.json()["data"]["id"]
    assert created.json()["data"]["status"] == "pending_approval"

    pending = client.get("/api/subscriptions/pending", headers=auth_headers(owner))
    assert [s["id"] for s in pending.json()["data"]] == [subscription_id]

    approved = client.post(
        f"/api/subscriptions/{subscription_id}/approve", headers=auth_headers(owner)
    )
    assert approved.status_code == 200
    assert approved.json()["data"]["status"] == "active"


def test_customer_cannot_approve(client, db_session: Session):
    customer = make_customer(db_session)
    subscription = make_subscription(
        db_session, customer, status=SubscriptionStatus.PENDING_APPROVAL
    )

    response = client.post(
        f"/api/subscriptions/{subscription.id}/approve", headers=auth_headers(customer)
    )

    assert response.status_code == 403


def test_plans_route_is_public(client, db_session: Session):
    make_plan(db_session)

    response = client.get("/api/plans")

    assert response.status_code == 200
    assert response.json()["data"][0]["name"] == "monthly-classic"
