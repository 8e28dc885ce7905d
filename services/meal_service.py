"""
Meal selection, default meals and weekly menus.
"""

from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from app.clock import format_cutoff, local_datetime, now_local, to_utc_naive
from app.config import settings
from app.exceptions import ForbiddenError, ServiceValidationError
from domain.enums import (
    DietaryPreference,
    MealOrderStatus,
    MealType,
    NotificationPriority,
    PlanType,
)
from domain.models import AppUser, DefaultMeal, MealOrder, Subscription, WeeklyMenu
from repositories import (
    DefaultMealRepository,
    MealOrderRepository,
    PlanRepository,
    SubscriptionRepository,
    WeeklyMenuRepository,
)
from services.notification_service import NotificationService

logger = logging.getLogger("tiffinmate.meals")

NON_VEG_KEYWORDS = (
    "CHICKEN",
    "EGG",
    "MUTTON",
    "FISH",
    "KEEMA",
    "TANDOORI",
    "BIRYANI",
    "KORMA",
    "BUTTER CHICKEN",
    "HYDRABADI",
    "MURADABADI",
)

DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")

FALLBACK_MEAL = "Dal Rice"
UNAVAILABLE = "N/A"

# Day-of-week default menus (index 0 = Sunday)
DEFAULT_MENUS = {
    PlanType.PREMIUM_VEG: {
        MealType.LUNCH: [
            "MIX-VEG, DAL, JEERA RICE, ROTI & SALAD",
            "AALOO SOYABEEN, DAL, FRIED RICE, ROTI & KHEER",
            "RAJMA, AALOO BHUJIYA, JEERA RICE, ROTI & RAITA",
            "MUTAR MUSHROOM, DAL, SOYA RICE, ROTI & SALAD",
            "VEGITABLE, DAL, RICE, ROTI & SALAD",
            "PANEER MASALA, PLAIN PARATHA & HALWA",
            "KHICHDI, AALOO CHOKHA / PICKLE",
        ],
        MealType.DINNER: [
            "VEG BIRYANI, SALAD & RAITA",
            "SEASONAL VEG, DAL, RICE, ROTI & SALAD",
            "KADAI PANEER, LACHHA PARATHA & SALAD",
            "DAL FRY, ROTI & KHEER",
            "MIX-VEG, DAL, FRIED RICE, ROTI & SALAD",
            "BESAN GATTA, JEERA RICE, ROTI & SALAD",
            "CHHOLE MASALA, PURI & SWEETS",
        ],
    },
    PlanType.PREMIUM_NON_VEG: {
        MealType.LUNCH: [
            "CHICKEN CURRY (BIHARI STYLE), JEERA RICE, ROTI & SALAD",
            "EGG CURRY, FRIED RICE, ROTI & KHEER",
            UNAVAILABLE,
            "CHICKEN MASALA, DAL, SOYA RICE, ROTI & SALAD",
            "EGG AALOO DUM, RICE, ROTI & SALAD",
            "HYDRABADI BIRYANI, RAITA & HALWA",
            "KEEMA, DAL, RICE, ROTI & SALAD",
        ],
        MealType.DINNER: [
            "CHICKEN BIRYANI, RAITA & SALAD",
            "TANDOORI CHICKEN, PARATHA (PLAIN) & HALWA",
            UNAVAILABLE,
            "MURADABADI BIRYANI, CHUTNEY & KHEER",
            "CHICKEN KORMA, LACHHA PARATHA & SALAD",
            "EGG BHURJI, DAL, JEERA RICE, ROTI & SALAD",
            "BUTTER CHICKEN, SATTU PARATHA, SWEETS",
        ],
    },
    PlanType.CLASSIC: {
        MealType.LUNCH: [
            "MIX-VEG, DAL, RICE & SALAD",
            "AALOO SOYABEEN, RICE & SALAD",
            "RAJMA, RICE & RAITA",
            "CHICKEN CURRY, RICE & SALAD",
            "VEGITABLE, RICE & SALAD",
            "CHHOLE MASALA, RICE & SALAD",
            "KHICHDI, AALOO CHOKHA / PICKLE",
        ],
        MealType.DINNER: [
            "CHICKEN BIRYANI, SALAD & RAITA",
            "SEASONAL VEG, ROTI & SALAD",
            "KADAI PANEER, ROTI & HALWA",
            "DAL FRY, ROTI & SALAD",
            "MIX-VEG, ROTI & SALAD",
            "EGG CURRY, ROTI & SALAD",
            "CHHOLE MASALA, PURI & SWEETS",
        ],
    },
}


def day_index(day: date) -> int:
    """Weekday with 0 = Sunday"""
    return (day.weekday() + 1) % 7


def meal_cutoff(day: date, meal_type: MealType) -> datetime:
    """Selection cutoff: lunch at 23:00 the day before, dinner at 11:00 the same day"""
    if meal_type == MealType.LUNCH:
        return local_datetime(day - timedelta(days=1), 23)
    return local_datetime(day, 11)


def is_selection_open(day: date, meal_type: MealType, now: Optional[datetime] = None) -> bool:
    now = now or now_local()
    return now < meal_cutoff(day, meal_type)


def is_locked(day: date, meal_type: MealType, now: Optional[datetime] = None) -> bool:
    now = now or now_local()
    return now > meal_cutoff(day, meal_type)


def is_non_veg(*texts: Any) -> bool:
    for text in texts:
        if not text:
            continue
        if isinstance(text, (list, tuple)):
            if is_non_veg(*text):
                return True
            continue
        upper = str(text).upper()
        if any(keyword in upper for keyword in NON_VEG_KEYWORDS):
            return True
    return False


def menu_category_for(plan_type: Optional[PlanType]) -> PlanType:
    if plan_type in (PlanType.PREMIUM_VEG, PlanType.PREMIUM_NON_VEG):
        return plan_type
    return PlanType.CLASSIC


def split_items(name: str) -> List[str]:
    """'DAL FRY, ROTI & KHEER' -> ['DAL FRY', 'ROTI', 'KHEER']"""
    parts = []
    for chunk in name.split(","):
        for piece in chunk.split("&"):
            piece = piece.strip()
            if piece:
                parts.append(piece)
    return parts


def default_meal_name(plan_type: Optional[PlanType], day: date, meal_type: MealType) -> str:
    """Default dish for a plan's menu line; unavailable slots fall back to classic"""
    index = day_index(day)
    for category in (menu_category_for(plan_type), PlanType.CLASSIC):
        names = DEFAULT_MENUS.get(category, {}).get(meal_type)
        if names and names[index] != UNAVAILABLE:
            return names[index]
    return FALLBACK_MEAL


def order_summary(order: Optional[MealOrder]) -> Optional[Dict[str, Any]]:
    if order is None:
        return None
    return {
        "id": order.id,
        "name": order.meal_name,
        "items": order.items or [],
        "is_default": order.is_default,
        "status": order.status.value,
    }


def _filter_by_diet(items: Iterable[str], preference: Optional[DietaryPreference]) -> List[str]:
    items = list(items or [])
    if preference == DietaryPreference.VEG:
        return [item for item in items if not is_non_veg(item)]
    if preference == DietaryPreference.NON_VEG:
        return [item for item in items if is_non_veg(item)]
    return items


class MealService:
    @staticmethod
    def _check_dietary(
        subscription: Subscription,
        selections: Dict[MealType, Dict[str, Any]],
        kept: Optional[Dict[MealType, Dict[str, Any]]] = None,
    ) -> None:
        """``kept`` holds the day's other, unchanged meal for the mixing rule"""
        preference = subscription.dietary_preference
        kinds = {}
        for meal_type, selection in selections.items():
            kinds[meal_type] = is_non_veg(selection.get("name"), selection.get("items"))

        for meal_type, non_veg in kinds.items():
            label = meal_type.value.capitalize()
            if preference == DietaryPreference.VEG and non_veg:
                raise ServiceValidationError(
                    f"{label}: non-veg meals are not available on a veg subscription"
                )
            if preference == DietaryPreference.NON_VEG and not non_veg:
                raise ServiceValidationError(
                    f"{label}: veg meals are not available on a non-veg subscription"
                )
        for meal_type, selection in (kept or {}).items():
            kinds[meal_type] = is_non_veg(selection.get("name"), selection.get("items"))
        if preference == DietaryPreference.BOTH and len(set(kinds.values())) > 1:
            raise ServiceValidationError(
                "Veg and non-veg meals cannot be mixed on the same day"
            )

    @staticmethod
    def select_meal(
        db: Session,
        user: AppUser,
        day: date,
        lunch: Optional[Dict[str, Any]] = None,
        dinner: Optional[Dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Customer chooses lunch and/or dinner for ``day``.

        Raises:
            ServiceValidationError: nothing selected, cutoff passed, meal not in
                the plan, dietary rule broken
            ForbiddenError: no usable subscription
        """
        now = now or now_local()
        if not lunch and not dinner:
            raise ServiceValidationError("Select at least one of lunch or dinner")

        subscription = SubscriptionRepository(db).get_active_for_user(user.id)
        if not subscription:
            raise ForbiddenError("You need an active subscription to select meals")
        if subscription.end_date < now.date():
            raise ForbiddenError("Your subscription has ended. Please renew to select meals")
        if subscription.is_trial and subscription.used_days >= settings.trial_max_days:
            raise ForbiddenError("Your trial period is over. Please choose a plan")

        selections = {}
        if lunch:
            selections[MealType.LUNCH] = lunch
        if dinner:
            selections[MealType.DINNER] = dinner

        for meal_type, selection in selections.items():
            if not (selection.get("name") or "").strip():
                raise ServiceValidationError(f"{meal_type.value.capitalize()} name is required")
            included = (
                subscription.includes_lunch
                if meal_type == MealType.LUNCH
                else subscription.includes_dinner
            )
            if not included:
                raise ServiceValidationError(
                    f"Your plan does not include {meal_type.value}"
                )
            cutoff = meal_cutoff(day, meal_type)
            if not now < cutoff:
                raise ServiceValidationError(
                    f"{meal_type.value.capitalize()} selection closed. "
                    f"Cutoff time was {format_cutoff(cutoff)}",
                    code="CUTOFF_PASSED",
                )

        repo = MealOrderRepository(db)
        # the meal not being changed still counts towards the same-day mix rule
        kept = {}
        for meal_type in (MealType.LUNCH, MealType.DINNER):
            if meal_type not in selections:
                existing = repo.get_for_user_day(user.id, day, meal_type)
                if existing and not existing.is_default and existing.status != MealOrderStatus.CANCELLED:
                    kept[meal_type] = {"name": existing.meal_name, "items": existing.items}
        MealService._check_dietary(subscription, selections, kept)

        saved = {}
        try:
            for meal_type, selection in selections.items():
                order = repo.get_for_user_day(user.id, day, meal_type)
                if order is None:
                    order = MealOrder(user_id=user.id, delivery_date=day, meal_type=meal_type)
                    repo.add(order)
                order.subscription_id = subscription.id
                order.meal_name = selection["name"].strip()
                order.items = list(selection.get("items") or [])
                order.is_default = False
                order.is_after_cutoff = False
                order.cutoff_time = to_utc_naive(meal_cutoff(day, meal_type))
                order.status = MealOrderStatus.CONFIRMED
                order.created_by = "customer"
                order.order_date = datetime.utcnow()
                saved[meal_type.value] = order

            chosen = ", ".join(f"{k}: {o.meal_name}" for k, o in saved.items())
            NotificationService.notify_owner(
                db,
                type="meal_selected",
                title="Meal Selected",
                message=f"{user.name} selected {chosen} for {day.isoformat()}",
                related_user_id=user.id,
                related_model="MealOrder",
                priority=NotificationPriority.LOW,
            )
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Error saving meal selection for %s", user.user_code)
            raise

        logger.info("Meal selection saved for %s on %s", user.user_code, day)
        NotificationService.publish(
            "meal_selected",
            {
                "user_id": user.id,
                "date": day,
                "lunch": order_summary(saved.get("lunch")),
                "dinner": order_summary(saved.get("dinner")),
            },
            user_id=user.id,
        )
        return {
            "date": day,
            "lunch": order_summary(saved.get("lunch")),
            "dinner": order_summary(saved.get("dinner")),
        }

    @staticmethod
    def get_my_selection(
        db: Session, user: AppUser, day: date, now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        now = now or now_local()
        subscription = SubscriptionRepository(db).get_active_for_user(user.id)
        plan_type = subscription.plan_type if subscription else None
        repo = MealOrderRepository(db)

        result = {
            "date": day,
            "dietary_preference": subscription.dietary_preference.value if subscription else None,
            "plan_type": plan_type.value if plan_type else None,
            "default_meals": {},
        }
        for meal_type in (MealType.LUNCH, MealType.DINNER):
            key = meal_type.value
            default_name = default_meal_name(plan_type, day, meal_type)
            default = {
                "id": None,
                "name": default_name,
                "items": split_items(default_name),
                "is_default": True,
                "status": None,
            }
            order = repo.get_for_user_day(user.id, day, meal_type)
            if order is not None and order.status == MealOrderStatus.CANCELLED:
                order = None
            cutoff = meal_cutoff(day, meal_type)

            result[key] = order_summary(order) or default
            result[f"{key}_is_default"] = order is None or order.is_default
            result[f"{key}_locked"] = now > cutoff
            result[f"{key}_cutoff"] = cutoff.isoformat()
            result["default_meals"][key] = default
        return result

    @staticmethod
    def set_default_meal(
        db: Session,
        meal_type: MealType,
        name: str,
        items: Optional[List[str]],
        owner: AppUser,
        is_active: bool = True,
    ) -> DefaultMeal:
        repo = DefaultMealRepository(db)
        default = repo.get_any_for_meal_type(meal_type)
        try:
            if default is None:
                default = DefaultMeal(meal_type=meal_type)
                repo.add(default)
            default.name = name
            default.items = list(items or split_items(name))
            default.is_active = is_active
            default.updated_by = owner.id
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Error saving default %s", meal_type.value)
            raise
        return default

    @staticmethod
    def get_default_meals(db: Session) -> List[DefaultMeal]:
        return DefaultMealRepository(db).list_active()

    @staticmethod
    def list_orders(
        db: Session, day: Optional[date] = None, meal_type: Optional[MealType] = None
    ) -> List[MealOrder]:
        return MealOrderRepository(db).list_filtered(day=day, meal_type=meal_type)

    @staticmethod
    def weekly_menu(
        db: Session,
        plan_type: Optional[PlanType] = None,
        user: Optional[AppUser] = None,
    ) -> Dict[str, Any]:
        """
        Seven-day menu for a menu line, filtered by the customer's diet.

        A customer's own subscription decides the line when ``user`` is given.
        Slots the owner has not filled fall back to the default menus.
        """
        preference = None
        if user is not None:
            subscription = SubscriptionRepository(db).get_active_for_user(user.id)
            if subscription:
                plan_type = subscription.plan_type
                preference = subscription.dietary_preference
        category = menu_category_for(plan_type)

        stored = {
            (row.day_of_week, row.meal_type): row
            for row in WeeklyMenuRepository(db).list_for_category(category)
        }
        days = []
        for index, day_name in enumerate(DAY_NAMES):
            entry = {"day_of_week": index, "day_name": day_name}
            for meal_type in (MealType.LUNCH, MealType.DINNER):
                row = stored.get((index, meal_type))
                if row is not None:
                    items = row.items or []
                else:
                    name = DEFAULT_MENUS[category][meal_type][index]
                    items = [] if name == UNAVAILABLE else [name]
                entry[meal_type.value] = _filter_by_diet(items, preference)
            days.append(entry)

        return {
            "menu_category": category.value,
            "dietary_preference": preference.value if preference else None,
            "days": days,
        }

    @staticmethod
    def set_weekly_menu(
        db: Session,
        day_of_week: int,
        meal_type: MealType,
        menu_category: PlanType,
        items: List[str],
        description: Optional[str] = None,
    ) -> WeeklyMenu:
        if not 0 <= day_of_week <= 6:
            raise ServiceValidationError("day_of_week must be between 0 (Sunday) and 6")
        menu_category = menu_category_for(menu_category)
        repo = WeeklyMenuRepository(db)
        slot = repo.get_slot(day_of_week, meal_type, menu_category)
        try:
            if slot is None:
                slot = WeeklyMenu(
                    day_of_week=day_of_week, meal_type=meal_type, menu_category=menu_category
                )
                repo.add(slot)
            slot.items = list(items)
            slot.description = description
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Error saving weekly menu slot")
            raise
        return slot

    @staticmethod
    def assign_default_meals(
        db: Session,
        day: date,
        meal_type: Optional[MealType] = None,
        created_by: str = "system-cron",
    ) -> Dict[str, Any]:
        """
        Give every active subscription covering ``day`` a default order for
        each included meal it has not chosen. Trials that used up their
        days get nothing.

        Returns a summary with ``assigned``, ``skipped`` and ``errors``.
        """
        meal_types = [meal_type] if meal_type else [MealType.LUNCH, MealType.DINNER]
        subscriptions = SubscriptionRepository(db).list_active_covering(day)
        repo = MealOrderRepository(db)
        summary = {"date": day, "assigned": 0, "skipped": 0, "errors": []}

        for subscription in subscriptions:
            if subscription.is_trial and subscription.used_days >= settings.trial_max_days:
                summary["skipped"] += 1
                continue
            for current in meal_types:
                included = (
                    subscription.includes_lunch
                    if current == MealType.LUNCH
                    else subscription.includes_dinner
                )
                if not included:
                    continue
                if repo.get_for_user_day(subscription.user_id, day, current):
                    summary["skipped"] += 1
                    continue
                name = default_meal_name(subscription.plan_type, day, current)
                try:
                    repo.add(
                        MealOrder(
                            user_id=subscription.user_id,
                            subscription_id=subscription.id,
                            delivery_date=day,
                            meal_type=current,
                            meal_name=name,
                            items=split_items(name),
                            is_default=True,
                            is_after_cutoff=True,
                            cutoff_time=to_utc_naive(meal_cutoff(day, current)),
                            status=MealOrderStatus.CONFIRMED,
                            created_by=created_by,
                        )
                    )
                    db.commit()
                    summary["assigned"] += 1
                except Exception as exc:
                    db.rollback()
                    logger.exception(
                        "Default %s assignment failed for subscription %s",
                        current.value,
                        subscription.id,
                    )
                    summary["errors"].append(f"{subscription.user_id}: {exc}")

        logger.info(
            "Default meals for %s: %d assigned, %d skipped",
            day,
            summary["assigned"],
            summary["skipped"],
        )
        return summary

    @staticmethod
    def ensure_kitchen_ready(
        db: Session, day: date, now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """Assign defaults for every meal of ``day`` whose cutoff has passed"""
        now = now or now_local()
        results = {}
        for meal_type in (MealType.LUNCH, MealType.DINNER):
            if is_locked(day, meal_type, now):
                results[meal_type.value] = MealService.assign_default_meals(
                    db, day, meal_type, created_by="system-kitchen"
                )
        return results

    @staticmethod
    def plans_with_menus(db: Session) -> List[Dict[str, Any]]:
        """Active plans, each with the weekly menu of its menu line"""
        menus = {}
        result = []
        for plan in PlanRepository(db).list():
            category = menu_category_for(plan.menu_category)
            if category not in menus:
                menus[category] = MealService.weekly_menu(db, plan_type=category)
            result.append({"plan": plan, "menu": menus[category]})
        return result
