"""
The one place meals are counted.

Dashboard and kitchen both call ``count_meals_for_day`` with the same
business-day date, so the numbers they show cannot drift apart.
"""

from collections import Counter
from datetime import date
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from domain.enums import MealType
from repositories import MealOrderRepository
from services.meal_service import split_items


def count_meals_for_day(db: Session, day: date) -> Dict[str, Any]:
    orders = MealOrderRepository(db).list_countable_for_day(day)

    seen = Counter((order.user_id, order.meal_type) for order in orders)
    duplicates = [
        {"user_id": user_id, "meal_type": meal_type.value, "count": count}
        for (user_id, meal_type), count in seen.items()
        if count > 1
    ]

    return {
        "date": day,
        "orders": orders,
        "lunch_count": sum(1 for o in orders if o.meal_type == MealType.LUNCH),
        "dinner_count": sum(1 for o in orders if o.meal_type == MealType.DINNER),
        "total_orders": len(orders),
        "unique_customers": len({o.user_id for o in orders}),
        "duplicates": duplicates,
    }


def _meal_counts(orders: List, meal_type: MealType) -> List[Dict[str, Any]]:
    counts = Counter(o.meal_name for o in orders if o.meal_type == meal_type)
    return [
        {"meal_name": name, "count": count}
        for name, count in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    ]


def kitchen_view(db: Session, day: date) -> Dict[str, Any]:
    """Counter result plus what the kitchen needs to plan cooking"""
    counted = count_meals_for_day(db, day)
    orders = counted["orders"]

    customers = [
        {
            "order_id": o.id,
            "user_id": o.user_id,
            "user_code": o.user.user_code,
            "name": o.user.name,
            "mobile": o.user.mobile,
            "address": o.user.address,
            "meal_type": o.meal_type.value,
            "meal_name": o.meal_name,
            "is_default": o.is_default,
            "status": o.status.value,
        }
        for o in orders
    ]

    ingredients = Counter()
    for order in orders:
        for item in order.items or split_items(order.meal_name):
            ingredients[item.strip().upper()] += 1

    return {
        "date": day,
        "lunch_count": counted["lunch_count"],
        "dinner_count": counted["dinner_count"],
        "total_orders": counted["total_orders"],
        "unique_customers": counted["unique_customers"],
        "duplicates": counted["duplicates"],
        "lunch_meals": _meal_counts(orders, MealType.LUNCH),
        "dinner_meals": _meal_counts(orders, MealType.DINNER),
        "customers": customers,
        "order_summary": {
            "lunch": counted["lunch_count"],
            "dinner": counted["dinner_count"],
            "total": counted["total_orders"],
        },
        "ingredient_summary": [
            {"item": item, "count": count}
            for item, count in sorted(ingredients.items(), key=lambda kv: (-kv[1], kv[0]))
        ],
    }
