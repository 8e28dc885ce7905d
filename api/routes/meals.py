"""Meal selection, default meals, weekly menu and kitchen routes"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
import logging

from api.dependencies import get_current_user, get_db, require_customer, require_owner, require_staff
from api.responses import success_response
from app.clock import today_local
from domain.enums import MealType, PlanType, UserRole
from domain.models import AppUser
from domain.schemas import (
    DefaultMealRequest,
    DefaultMealResponse,
    MealCountResponse,
    MealOrderResponse,
    MealSelectionRequest,
    WeeklyMenuRequest,
    WeeklyMenuSlotResponse,
)
from services.meal_counter import count_meals_for_day, kitchen_view
from services.meal_service import MealService

router = APIRouter(prefix="/meals", tags=["Meals"])
logger = logging.getLogger("tiffinmate.api.meals")


@router.post("/select")
def select_meal(
    body: MealSelectionRequest,
    user: AppUser = Depends(require_customer),
    db: Session = Depends(get_db),
):
    """
    Choose lunch and/or dinner for a date.

    Lunch closes at 23:00 the previous day, dinner at 11:00 the same day.
    """
    result = MealService.select_meal(
        db,
        user,
        body.date,
        lunch=body.lunch.model_dump() if body.lunch else None,
        dinner=body.dinner.model_dump() if body.dinner else None,
    )
    return success_response(data=result, message="Meal selection saved")


@router.get("/my-selection")
def my_selection(
    day: Optional[date] = Query(None, alias="date"),
    user: AppUser = Depends(require_customer),
    db: Session = Depends(get_db),
):
    return success_response(data=MealService.get_my_selection(db, user, day or today_local()))


@router.get("/defaults")
def get_default_meals(user: AppUser = Depends(get_current_user), db: Session = Depends(get_db)):
    return success_response(
        data=[DefaultMealResponse.model_validate(m) for m in MealService.get_default_meals(db)]
    )


@router.put("/defaults")
def set_default_meal(
    body: DefaultMealRequest,
    owner: AppUser = Depends(require_owner),
    db: Session = Depends(get_db),
):
    meal = MealService.set_default_meal(
        db, body.meal_type, body.name, body.items, owner, is_active=body.is_active
    )
    return success_response(data=DefaultMealResponse.model_validate(meal), message="Default meal saved")


@router.get("/orders")
def list_orders(
    day: Optional[date] = Query(None, alias="date"),
    meal_type: Optional[MealType] = Query(None),
    owner: AppUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    orders = MealService.list_orders(db, day=day, meal_type=meal_type)
    return success_response(data=[MealOrderResponse.model_validate(o) for o in orders])


@router.get("/count")
def meal_count(
    day: Optional[date] = Query(None, alias="date"),
    owner: AppUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    counts = count_meals_for_day(db, day or today_local())
    return success_response(data=MealCountResponse.model_validate(counts))


@router.get("/weekly-menu")
def weekly_menu(
    plan_type: Optional[PlanType] = Query(None),
    user: AppUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """A customer sees the menu of their own plan, filtered by their diet"""
    customer = user if user.role == UserRole.CUSTOMER else None
    return success_response(data=MealService.weekly_menu(db, plan_type=plan_type, user=customer))


@router.put("/weekly-menu", status_code=status.HTTP_200_OK)
def set_weekly_menu(
    body: WeeklyMenuRequest,
    owner: AppUser = Depends(require_owner),
    db: Session = Depends(get_db),
):
    slot = MealService.set_weekly_menu(
        db, body.day_of_week, body.meal_type, body.menu_category, body.items, body.description
    )
    return success_response(data=WeeklyMenuSlotResponse.model_validate(slot), message="Menu updated")


@router.get("/kitchen")
def kitchen(
    day: Optional[date] = Query(None, alias="date"),
    owner: AppUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """Kitchen board; counts come from the same counter as the dashboard"""
    return success_response(data=kitchen_view(db, day or today_local()))


@router.post("/kitchen/ready")
def kitchen_ready(
    day: Optional[date] = Query(None, alias="date"),
    owner: AppUser = Depends(require_owner),
    db: Session = Depends(get_db),
):
    """Fill in default meals for every meal of the day that is already locked"""
    return success_response(data=MealService.ensure_kitchen_ready(db, day or today_local()))
