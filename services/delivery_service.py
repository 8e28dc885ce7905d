"""
Delivery fulfillment: status transitions, subscription day consumption,
kitchen summaries and the automatic create/deliver sweeps.
"""

from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from app.clock import as_local, now_local, to_utc_naive, today_local
from app.exceptions import ForbiddenError, NotFoundError, ServiceValidationError
from domain.enums import (
    CookingState,
    DeliveryMealType,
    DeliveryStatus,
    MealOrderStatus,
    MealType,
    NotificationType,
    SubscriptionStatus,
    UserRole,
)
from domain.models import AppUser, Delivery
from repositories import (
    DeliveryRepository,
    MealOrderRepository,
    SubscriptionRepository,
    UserRepository,
)
from services.notification_service import NotificationService
from services.sms_service import SmsService

logger = logging.getLogger("tiffinmate.deliveries")

# Kitchen preparation windows, business time
COOKING_WINDOWS = {
    MealType.LUNCH: (time(11, 0), time(12, 0)),
    MealType.DINNER: (time(19, 0), time(20, 0)),
}

DELIVERY_WINDOW = timedelta(hours=1)

STATUS_SMS = {
    DeliveryStatus.PREPARING: NotificationType.DELIVERY_PREPARING,
    DeliveryStatus.ON_THE_WAY: NotificationType.DELIVERY_ON_WAY,
    DeliveryStatus.DELIVERED: NotificationType.DELIVERY_DELIVERED,
}

STATUS_EVENTS = {
    DeliveryStatus.PREPARING: "cooking_started",
    DeliveryStatus.ON_THE_WAY: "out_for_delivery",
    DeliveryStatus.DELIVERED: "delivered",
}

ORDER_STATUS_FOR = {
    DeliveryStatus.PREPARING: MealOrderStatus.PREPARING,
    DeliveryStatus.DELIVERED: MealOrderStatus.DELIVERED,
}


def _window_meal(meal_type) -> MealType:
    # a combined delivery is cooked with lunch
    if meal_type in (DeliveryMealType.DINNER, MealType.DINNER, "dinner"):
        return MealType.DINNER
    return MealType.LUNCH


def is_time_to_cook(meal_type, now: Optional[datetime] = None) -> bool:
    """True while ``now`` is inside the meal's preparation window"""
    now = as_local(now or now_local())
    start, end = COOKING_WINDOWS[_window_meal(meal_type)]
    return start <= now.time() < end


def cooking_state(delivery: Delivery, now: Optional[datetime] = None) -> CookingState:
    """Kitchen view of where a delivery stands at ``now``"""
    if delivery.status == DeliveryStatus.DELIVERED:
        return CookingState.DELIVERED
    if delivery.status in (DeliveryStatus.PAUSED, DeliveryStatus.DISABLED):
        return CookingState.SKIPPED
    if delivery.status == DeliveryStatus.ON_THE_WAY:
        return CookingState.DISPATCHED

    now = as_local(now or now_local())
    if now.date() < delivery.delivery_date:
        return CookingState.SCHEDULED
    if now.date() > delivery.delivery_date:
        return CookingState.READY
    start, end = COOKING_WINDOWS[_window_meal(delivery.meal_type)]
    if now.time() < start:
        return CookingState.SCHEDULED
    if now.time() < end:
        return CookingState.COOKING
    return CookingState.READY


def delivery_event(delivery: Delivery) -> Dict[str, Any]:
    return {
        "id": delivery.id,
        "user_id": delivery.user_id,
        "delivery_date": delivery.delivery_date,
        "meal_type": delivery.meal_type.value,
        "status": delivery.status.value,
        "estimated_delivery_time": delivery.estimated_delivery_time,
    }


class DeliveryService:
    @staticmethod
    def create(
        db: Session,
        user_id: UUID,
        delivery_date: date,
        meal_type: DeliveryMealType,
        meals: Optional[Dict[str, Any]] = None,
        notes: Optional[str] = None,
        is_extra_tiffin: bool = False,
        extra_charge: Decimal = Decimal("0"),
        delivery_boy_id: Optional[UUID] = None,
    ) -> Delivery:
        customer = UserRepository(db).get_by_id(user_id)
        if not customer or customer.is_deleted:
            raise NotFoundError(f"Customer not found: {user_id}")
        subscription = SubscriptionRepository(db).get_active_for_user(user_id)
        if not subscription:
            raise ServiceValidationError("Customer has no active subscription")

        delivery = Delivery(
            user_id=user_id,
            subscription_id=subscription.id,
            delivery_date=delivery_date,
            meal_type=meal_type,
            status=DeliveryStatus.PREPARING,
            meals=meals or {},
            notes=notes,
            is_extra_tiffin=is_extra_tiffin,
            extra_charge=extra_charge or Decimal("0"),
            delivery_boy_id=delivery_boy_id,
        )
        try:
            DeliveryRepository(db).add(delivery)
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Error creating delivery for %s", user_id)
            raise
        logger.info("Delivery %s created for %s on %s", delivery.id, customer.user_code, delivery_date)
        NotificationService.publish("delivery_created", delivery_event(delivery), user_id=user_id)
        return delivery

    @staticmethod
    def get(db: Session, delivery_id: UUID, actor: Optional[AppUser] = None) -> Delivery:
        delivery = DeliveryRepository(db).get_by_id(delivery_id)
        if not delivery:
            raise NotFoundError(f"Delivery not found: {delivery_id}")
        if actor is not None and actor.role == UserRole.CUSTOMER and delivery.user_id != actor.id:
            raise ForbiddenError("Not authorized to access this delivery")
        return delivery

    @staticmethod
    def _consume_day(db: Session, delivery: Delivery, today: date) -> bool:
        """
        Use one subscription day for the delivery's date.

        A second delivery on the same date (lunch then dinner) uses nothing.
        Returns True when a day was consumed.
        """
        subscription = delivery.subscription
        if subscription is None or subscription.status != SubscriptionStatus.ACTIVE:
            return False
        siblings = DeliveryRepository(db).list_for_subscription_day(
            subscription.id, delivery.delivery_date
        )
        if any(
            d.id != delivery.id and d.status == DeliveryStatus.DELIVERED for d in siblings
        ):
            return False

        expired = subscription.mark_day_used(today)
        if expired:
            logger.info("Subscription %s used its last day", subscription.id)
            NotificationService.publish(
                "subscription_expired",
                {"id": subscription.id, "user_id": subscription.user_id},
                user_id=subscription.user_id,
            )
        return True

    @staticmethod
    def _sync_orders(db: Session, delivery: Delivery) -> None:
        order_status = ORDER_STATUS_FOR.get(delivery.status)
        if order_status is None:
            return
        if delivery.meal_type == DeliveryMealType.BOTH:
            meal_types = [MealType.LUNCH, MealType.DINNER]
        else:
            meal_types = [MealType(delivery.meal_type.value)]
        repo = MealOrderRepository(db)
        for meal_type in meal_types:
            order = repo.get_for_user_day(delivery.user_id, delivery.delivery_date, meal_type)
            if order and order.status != MealOrderStatus.CANCELLED:
                order.status = order_status
                order.delivery_id = delivery.id

    @staticmethod
    def _apply_status(
        db: Session, delivery: Delivery, status: DeliveryStatus, now: datetime
    ) -> None:
        stamp = to_utc_naive(now)
        delivery.status = status
        if status == DeliveryStatus.PREPARING:
            delivery.preparing_start_time = stamp
        elif status == DeliveryStatus.ON_THE_WAY:
            delivery.out_for_delivery_time = stamp
            delivery.estimated_delivery_time = stamp + DELIVERY_WINDOW
        elif status == DeliveryStatus.DELIVERED:
            delivery.delivered_time = stamp
            DeliveryService._consume_day(db, delivery, as_local(now).date())
        DeliveryService._sync_orders(db, delivery)

        kind = STATUS_SMS.get(status)
        if kind is not None:
            SmsService.notify(db, delivery.user, kind)

    @staticmethod
    def update_status(
        db: Session,
        delivery_id: UUID,
        status: DeliveryStatus,
        delivery_boy_id: Optional[UUID] = None,
        now: Optional[datetime] = None,
    ) -> Delivery:
        now = now or now_local()
        delivery = DeliveryService.get(db, delivery_id)
        if delivery.status == DeliveryStatus.DELIVERED and status != DeliveryStatus.DELIVERED:
            raise ServiceValidationError("Delivered tiffins cannot change status")
        if delivery.status == status:
            return delivery

        try:
            if delivery_boy_id:
                delivery.delivery_boy_id = delivery_boy_id
            DeliveryService._apply_status(db, delivery, status, now)
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Error updating delivery %s", delivery_id)
            raise

        logger.info("Delivery %s is now %s", delivery.id, status.value)
        NotificationService.publish(
            STATUS_EVENTS.get(status, "delivery_status_updated"),
            delivery_event(delivery),
            user_id=delivery.user_id,
        )
        return delivery

    @staticmethod
    def list_for_day(db: Session, day: Optional[date] = None) -> List[Delivery]:
        return DeliveryRepository(db).list_for_day(day or today_local())

    @staticmethod
    def list_for_user(
        db: Session, user_id: UUID, start: Optional[date] = None, end: Optional[date] = None
    ) -> List[Delivery]:
        return DeliveryRepository(db).list_for_user(user_id, start, end)

    @staticmethod
    def my_today(db: Session, user: AppUser, today: Optional[date] = None) -> List[Delivery]:
        today = today or today_local()
        deliveries = DeliveryRepository(db).list_for_user(user.id, today, today)
        if not deliveries:
            raise NotFoundError("No delivery scheduled for today")
        return deliveries

    @staticmethod
    def kitchen_summary(db: Session, day: Optional[date] = None) -> Dict[str, Any]:
        day = day or today_local()
        deliveries = DeliveryRepository(db).list_for_day(day, include_disabled=False)
        by_meal = {meal.value: 0 for meal in DeliveryMealType}
        by_status = {status.value: 0 for status in DeliveryStatus if status != DeliveryStatus.DISABLED}
        for delivery in deliveries:
            by_meal[delivery.meal_type.value] += 1
            by_status[delivery.status.value] += 1
        return {
            "date": day,
            "total": len(deliveries),
            "by_meal_type": by_meal,
            "by_status": by_status,
            "deliveries": deliveries,
        }

    @staticmethod
    def auto_create_deliveries(db: Session, day: Optional[date] = None) -> Dict[str, Any]:
        """One delivery per confirmed meal order of ``day``"""
        day = day or today_local()
        orders = MealOrderRepository(db).list_for_day(day, status=MealOrderStatus.CONFIRMED)
        deliveries = DeliveryRepository(db)
        subscriptions = SubscriptionRepository(db)
        result = {"created": 0, "skipped": 0, "total": len(orders), "errors": []}

        for order in orders:
            meal_type = DeliveryMealType(order.meal_type.value)
            if deliveries.get_for_user_day(order.user_id, day, meal_type):
                result["skipped"] += 1
                continue
            subscription = subscriptions.get_active_covering(order.user_id, day)
            if not subscription:
                result["errors"].append(f"No active subscription for {order.user.name}")
                continue
            try:
                delivery = Delivery(
                    user_id=order.user_id,
                    subscription_id=subscription.id,
                    delivery_date=day,
                    meal_type=meal_type,
                    status=DeliveryStatus.PREPARING,
                    meals={order.meal_type.value: {"name": order.meal_name, "items": order.items or []}},
                )
                deliveries.add(delivery)
                order.delivery_id = delivery.id
                db.commit()
                result["created"] += 1
            except Exception as exc:
                db.rollback()
                logger.exception("Auto delivery failed for order %s", order.id)
                result["errors"].append(f"{order.user.name}: {exc}")

        logger.info(
            "Auto-created deliveries for %s: %d created, %d skipped, %d errors",
            day,
            result["created"],
            result["skipped"],
            len(result["errors"]),
        )
        if result["created"]:
            NotificationService.publish("deliveries_created", {"date": day, "created": result["created"]})
        return result

    @staticmethod
    def auto_mark_delivered(db: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Close out deliveries that have been on the way for over an hour"""
        now = now or now_local()
        threshold = to_utc_naive(now) - DELIVERY_WINDOW
        stale = DeliveryRepository(db).list_out_since_before(threshold)
        result = {"marked": 0, "errors": []}

        for delivery in stale:
            try:
                DeliveryService._apply_status(db, delivery, DeliveryStatus.DELIVERED, now)
                db.commit()
                result["marked"] += 1
            except Exception as exc:
                db.rollback()
                logger.exception("Auto-deliver failed for delivery %s", delivery.id)
                result["errors"].append(f"{delivery.id}: {exc}")
                continue
            NotificationService.publish(
                "delivered", delivery_event(delivery), user_id=delivery.user_id
            )

        if result["marked"]:
            logger.info("Auto-marked %d deliveries as delivered", result["marked"])
        return result
