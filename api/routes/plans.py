"""Subscription plan catalogue routes"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
import logging

from api.dependencies import get_db, require_owner
from api.responses import success_response
from domain.enums import DurationType, MealType
from domain.models import AppUser
from domain.schemas import (
    DurationTypeSummary,
    PlanCreate,
    PlanResponse,
    PlanUpdate,
    PlanWithMenuResponse,
)
from services.meal_service import MealService
from services.subscription_service import SubscriptionService

router = APIRouter(prefix="/plans", tags=["Plans"])
logger = logging.getLogger("tiffinmate.api.plans")


@router.get("")
def list_plans(
    duration_type: Optional[DurationType] = Query(None, description="daily, weekly or monthly"),
    meal_type: Optional[MealType] = Query(None, description="Plans that include this meal"),
    db: Session = Depends(get_db),
):
    """Active plans, cheapest first within each sort group"""
    plans = SubscriptionService.list_plans(db, duration_type=duration_type, meal_type=meal_type)
    return success_response(data=[PlanResponse.model_validate(p) for p in plans])


@router.get("/duration-types")
def list_duration_types(db: Session = Depends(get_db)):
    return success_response(
        data=[DurationTypeSummary.model_validate(d) for d in SubscriptionService.duration_types(db)]
    )


@router.get("/with-menus")
def plans_with_menus(db: Session = Depends(get_db)):
    rows = MealService.plans_with_menus(db)
    return success_response(
        data=[PlanWithMenuResponse.model_validate(r, from_attributes=True) for r in rows]
    )


@router.get("/{plan_id}")
def get_plan(plan_id: UUID, db: Session = Depends(get_db)):
    return success_response(data=PlanResponse.model_validate(SubscriptionService.get_plan(db, plan_id)))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_plan(
    body: PlanCreate, owner: AppUser = Depends(require_owner), db: Session = Depends(get_db)
):
    plan = SubscriptionService.create_plan(db, body.model_dump(exclude_none=True))
    logger.info("Plan %s created by %s", plan.name, owner.user_code)
    return success_response(data=PlanResponse.model_validate(plan), message="Plan created")


@router.put("/{plan_id}")
def update_plan(
    plan_id: UUID,
    body: PlanUpdate,
    owner: AppUser = Depends(require_owner),
    db: Session = Depends(get_db),
):
    plan = SubscriptionService.update_plan(db, plan_id, body.model_dump(exclude_unset=True))
    return success_response(data=PlanResponse.model_validate(plan), message="Plan updated")
