"""
Tests for deliveries: kitchen states, status updates, day consumption,
the automatic create/deliver sweeps and the customer calendar.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
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
from adapters import socket_hub
from app.clock import local_datetime, to_utc_naive, today_local
from app.exceptions import NotFoundError, ServiceValidationError
from domain.enums import (
    CookingState,
    DeliveryMealType,
    DeliveryStatus,
    MealOrderStatus,
    MealType,
    SubscriptionStatus,
)
from domain.models import Delivery
from services.calendar_service import CalendarService
from services.delivery_service import DeliveryService, cooking_state, is_time_to_cook


def make_delivery(
    db: Session,
    user,
    subscription,
    day=TODAY,
    meal_type: DeliveryMealType = DeliveryMealType.LUNCH,
    status: DeliveryStatus = DeliveryStatus.PREPARING,
) -> Delivery:
    delivery = Delivery(
        user_id=user.id,
        subscription_id=subscription.id,
        delivery_date=day,
        meal_type=meal_type,
        status=status,
        meals={},
        extra_charge=Decimal("0"),
    )
    db.add(delivery)
    db.commit()
    return delivery


# =============================================================================
# COOKING STATE
# =============================================================================


@pytest.mark.parametrize(
    "hour, minute, expected",
    [
        (10, 30, CookingState.SCHEDULED),
        (11, 0, CookingState.COOKING),
        (11, 59, CookingState.COOKING),
        (12, 0, CookingState.READY),
    ],
)
def test_lunch_cooking_window(db_session: Session, hour, minute, expected):
    customer = make_customer(db_session)
    subscription = make_subscription(db_session, customer)
    delivery = make_delivery(db_session, customer, subscription)

    assert cooking_state(delivery, local_datetime(TODAY, hour, minute)) == expected


def test_dinner_and_combined_windows(db_session: Session):
    """
    Verifies:
    - Dinner cooks 19:00-20:00
    - A combined lunch+dinner tiffin follows the lunch window
    """
    customer = make_customer(db_session)
    subscription = make_subscription(db_session, customer)
    dinner = make_delivery(db_session, customer, subscription, meal_type=DeliveryMealType.DINNER)
    both = make_delivery(db_session, customer, subscription, meal_type=DeliveryMealType.BOTH)

    assert cooking_state(dinner, local_datetime(TODAY, 11, 30)) == CookingState.SCHEDULED
    assert cooking_state(dinner, local_datetime(TODAY, 19, 30)) == CookingState.COOKING
    assert cooking_state(both, local_datetime(TODAY, 11, 30)) == CookingState.COOKING
    assert is_time_to_cook(DeliveryMealType.BOTH, local_datetime(TODAY, 11, 15))
    assert not is_time_to_cook(MealType.DINNER, local_datetime(TODAY, 11, 15))


def test_cooking_state_follows_status_and_date(db_session: Session):
    customer = make_customer(db_session)
    subscription = make_subscription(db_session, customer)
    noon = local_datetime(TODAY, 11, 30)

    tomorrow = make_delivery(db_session, customer, subscription, day=TODAY + timedelta(days=1))
    on_way = make_delivery(db_session, customer, subscription, status=DeliveryStatus.ON_THE_WAY)
    done = make_delivery(db_session, customer, subscription, status=DeliveryStatus.DELIVERED)
    paused = make_delivery(db_session, customer, subscription, status=DeliveryStatus.PAUSED)

    assert cooking_state(tomorrow, noon) == CookingState.SCHEDULED
    assert cooking_state(on_way, noon) == CookingState.DISPATCHED
    assert cooking_state(done, noon) == CookingState.DELIVERED
    assert cooking_state(paused, noon) == CookingState.SKIPPED


# =============================================================================
# STATUS UPDATES
# =============================================================================


def test_create_requires_active_subscription(db_session: Session):
    customer = make_customer(db_session)

    with pytest.raises(ServiceValidationError):
        DeliveryService.create(db_session, customer.id, TODAY, DeliveryMealType.LUNCH)


def test_create_delivery(db_session: Session):
    customer = make_customer(db_session)
    subscription = make_subscription(db_session, customer)

    delivery = DeliveryService.create(
        db_session, customer.id, TODAY, DeliveryMealType.LUNCH, notes="Ring twice"
    )

    assert delivery.subscription_id == subscription.id
    assert delivery.status == DeliveryStatus.PREPARING
    assert socket_hub.hub.events("delivery_created", room=f"user_{customer.id}")


def test_on_the_way_sets_estimate_and_texts_customer(db_session: Session, sms):
    customer = make_customer(db_session)
    subscription = make_subscription(db_session, customer)
    delivery = make_delivery(db_session, customer, subscription)
    dispatched_at = local_datetime(TODAY, 12, 15)

    DeliveryService.update_status(
        db_session, delivery.id, DeliveryStatus.ON_THE_WAY, now=dispatched_at
    )

    assert delivery.out_for_delivery_time == to_utc_naive(dispatched_at)
    assert delivery.estimated_delivery_time == to_utc_naive(dispatched_at) + timedelta(hours=1)
    assert any("on the way" in text for text in sms.to(customer.mobile))
    assert socket_hub.hub.events("out_for_delivery", room="owner")


def test_delivered_consumes_one_day_per_date(db_session: Session, sms):
    """
    Verifies:
    - Delivering lunch uses one subscription day
    - Delivering dinner on the same date uses nothing more
    - The day's meal orders follow the delivery status
    """
    customer = make_customer(db_session)
    subscription = make_subscription(db_session, customer, days=30)
    lunch_order = make_order(db_session, customer, subscription, meal_type=MealType.LUNCH)
    lunch = make_delivery(db_session, customer, subscription)
    dinner = make_delivery(db_session, customer, subscription, meal_type=DeliveryMealType.DINNER)

    DeliveryService.update_status(
        db_session, lunch.id, DeliveryStatus.DELIVERED, now=local_datetime(TODAY, 13)
    )
    assert subscription.used_days == 1
    assert subscription.remaining_days == 29
    assert lunch_order.status == MealOrderStatus.DELIVERED
    assert lunch_order.delivery_id == lunch.id

    DeliveryService.update_status(
        db_session, dinner.id, DeliveryStatus.DELIVERED, now=local_datetime(TODAY, 21)
    )
    assert subscription.used_days == 1


def test_last_day_expires_subscription(db_session: Session, sms):
    customer = make_customer(db_session)
    subscription = make_subscription(db_session, customer, days=3, used_days=2)
    delivery = make_delivery(db_session, customer, subscription)

    DeliveryService.update_status(
        db_session, delivery.id, DeliveryStatus.DELIVERED, now=local_datetime(TODAY, 13)
    )

    assert subscription.remaining_days == 0
    assert subscription.status == SubscriptionStatus.EXPIRED
    assert socket_hub.hub.events("subscription_expired")


def test_delivered_is_final(db_session: Session, sms):
    customer = make_customer(db_session)
    subscription = make_subscription(db_session, customer)
    delivery = make_delivery(db_session, customer, subscription, status=DeliveryStatus.DELIVERED)

    with pytest.raises(ServiceValidationError):
        DeliveryService.update_status(db_session, delivery.id, DeliveryStatus.PREPARING)


def test_my_today_without_delivery(db_session: Session):
    customer = make_customer(db_session)

    with pytest.raises(NotFoundError):
        DeliveryService.my_today(db_session, customer, today=TODAY)


def test_kitchen_summary_counts(db_session: Session):
    priya = make_customer(db_session)
    rahul = make_customer(db_session, "student")
    priya_sub = make_subscription(db_session, priya)
    rahul_sub = make_subscription(db_session, rahul)
    make_delivery(db_session, priya, priya_sub)
    make_delivery(db_session, rahul, rahul_sub, meal_type=DeliveryMealType.BOTH,
                  status=DeliveryStatus.ON_THE_WAY)
    make_delivery(db_session, rahul, rahul_sub, meal_type=DeliveryMealType.DINNER,
                  status=DeliveryStatus.DISABLED)

    summary = DeliveryService.kitchen_summary(db_session, TODAY)

    assert summary["total"] == 2
    assert summary["by_meal_type"] == {"lunch": 1, "dinner": 0, "both": 1}
    assert summary["by_status"]["preparing"] == 1
    assert summary["by_status"]["on-the-way"] == 1
    assert "disabled" not in summary["by_status"]


# =============================================================================
# AUTOMATIC SWEEPS
# =============================================================================


def test_auto_create_one_delivery_per_confirmed_order(db_session: Session):
    priya = make_customer(db_session)
    rahul = make_customer(db_session, "student")
    priya_sub = make_subscription(db_session, priya)
    rahul_sub = make_subscription(db_session, rahul)
    make_order(db_session, priya, priya_sub, meal_type=MealType.LUNCH)
    make_order(db_session, priya, priya_sub, meal_type=MealType.DINNER, meal_name="DAL FRY, ROTI")
    make_order(db_session, rahul, rahul_sub, status=MealOrderStatus.CANCELLED)

    first = DeliveryService.auto_create_deliveries(db_session, TODAY)
    second = DeliveryService.auto_create_deliveries(db_session, TODAY)

    assert first["created"] == 2
    assert first["errors"] == []
    assert second["created"] == 0
    assert second["skipped"] == 2
    deliveries = db_session.query(Delivery).filter_by(user_id=priya.id).all()
    dinner = next(d for d in deliveries if d.meal_type == DeliveryMealType.DINNER)
    assert dinner.meals == {"dinner": {"name": "DAL FRY, ROTI", "items": ["DAL FRY", "ROTI"]}}


def test_auto_create_reports_missing_subscription(db_session: Session):
    customer = make_customer(db_session)
    subscription = make_subscription(db_session, customer)
    make_order(db_session, customer, subscription)
    subscription.status = SubscriptionStatus.PAUSED
    db_session.commit()

    result = DeliveryService.auto_create_deliveries(db_session, TODAY)

    assert result["created"] == 0
    assert result["errors"] == ["No active subscription for Priya Sharma"]


def test_auto_mark_delivered_after_an_hour(db_session: Session, sms):
    customer = make_customer(db_session)
    subscription = make_subscription(db_session, customer)
    stale = make_delivery(db_session, customer, subscription)
    fresh = make_delivery(db_session, customer, subscription, meal_type=DeliveryMealType.DINNER)
    DeliveryService.update_status(
        db_session, stale.id, DeliveryStatus.ON_THE_WAY, now=local_datetime(TODAY, 12)
    )
    DeliveryService.update_status(
        db_session, fresh.id, DeliveryStatus.ON_THE_WAY, now=local_datetime(TODAY, 12, 45)
    )

    result = DeliveryService.auto_mark_delivered(db_session, now=local_datetime(TODAY, 13, 30))

    assert result["marked"] == 1
    assert stale.status == DeliveryStatus.DELIVERED
    assert fresh.status == DeliveryStatus.ON_THE_WAY
    assert subscription.used_days == 1


# =============================================================================
# CALENDAR
# =============================================================================


def test_calendar_day_statuses(db_session: Session):
    """
    Verifies:
    - Past day with a delivered tiffin: delivered
    - Past day with nothing delivered: expired
    - Paused day: skipped
    - Today without delivery yet: pending
    - Future day: upcoming
    """
    customer = make_customer(db_session)
    start = TODAY - timedelta(days=3)
    subscription = make_subscription(db_session, customer, start=start, days=7)
    make_delivery(db_session, customer, subscription, day=start, status=DeliveryStatus.DELIVERED)
    make_delivery(db_session, customer, subscription, day=start + timedelta(days=2),
                  status=DeliveryStatus.PAUSED)

    calendar = CalendarService.customer_calendar(db_session, customer, today=TODAY)

    statuses = [day["status"] for day in calendar["days"]]
    assert statuses == [
        "delivered",
        "expired",
        "skipped",
        "pending",
        "upcoming",
        "upcoming",
        "upcoming",
    ]
    assert calendar["days"][0]["meal_types"] == ["lunch"]


def test_calendar_without_subscription(db_session: Session):
    customer = make_customer(db_session)

    calendar = CalendarService.customer_calendar(db_session, customer, today=TODAY)

    assert calendar == {"subscription_id": None, "days": []}


# =============================================================================
# ROUTES
# =============================================================================


def test_status_route_and_customer_view(client, db_session: Session, sms):
    owner = make_owner(db_session)
    customer = make_customer(db_session)
    subscription = make_subscription(db_session, customer, start=today_local())
    delivery = make_delivery(db_session, customer, subscription, day=today_local())

    updated = client.patch(
        f"/api/deliveries/{delivery.id}/status",
        json={"status": "on-the-way"},
        headers=auth_headers(owner),
    )
    assert updated.status_code == 200
    assert updated.json()["data"]["status"] == "on-the-way"
    assert updated.json()["data"]["cooking_state"] == "dispatched"

    mine = client.get("/api/deliveries/my", headers=auth_headers(customer))
    assert [d["id"] for d in mine.json()["data"]] == [str(delivery.id)]


def test_customer_cannot_update_delivery_status(client, db_session: Session):
    customer = make_customer(db_session)
    subscription = make_subscription(db_session, customer)
    delivery = make_delivery(db_session, customer, subscription)

    response = client.patch(
        f"/api/deliveries/{delivery.id}/status",
        json={"status": "delivered"},
        headers=auth_headers(customer),
    )

    assert response.status_code == 403
