"""Delivery tracking and kitchen routes"""

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
import logging

from api.dependencies import get_current_user, get_db, require_customer, require_owner, require_staff
from api.responses import success_response
from app.clock import now_local
from domain.models import AppUser, Delivery
from domain.schemas import AutoCreateRequest, DeliveryCreate, DeliveryResponse, DeliveryStatusUpdate
from services.calendar_service import CalendarService
from services.delivery_service import DeliveryService, cooking_state

router = APIRouter(prefix="/deliveries", tags=["Deliveries"])
logger = logging.getLogger("tiffinmate.api.deliveries")


def _view(delivery: Delivery) -> DeliveryResponse:
    response = DeliveryResponse.model_validate(delivery)
    response.cooking_state = cooking_state(delivery, now_local()).value
    return response


@router.post("", status_code=status.HTTP_201_CREATED)
def create_delivery(
    body: DeliveryCreate, owner: AppUser = Depends(require_owner), db: Session = Depends(get_db)
):
    delivery = DeliveryService.create(db, **body.model_dump())
    return success_response(data=_view(delivery), message="Delivery created")


@router.get("/today")
def deliveries_today(
    day: Optional[date] = Query(None, alias="date"),
    staff: AppUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return success_response(data=[_view(d) for d in DeliveryService.list_for_day(db, day)])


@router.get("/kitchen-summary")
def kitchen_summary(
    day: Optional[date] = Query(None, alias="date"),
    staff: AppUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    summary = DeliveryService.kitchen_summary(db, day)
    summary["deliveries"] = [_view(d) for d in summary["deliveries"]]
    return success_response(data=summary)


@router.post("/auto-create")
def auto_create(
    body: Optional[AutoCreateRequest] = None,
    owner: AppUser = Depends(require_owner),
    db: Session = Depends(get_db),
):
    """Create today's deliveries from confirmed meal orders"""
    result = DeliveryService.auto_create_deliveries(db, body.day if body else None)
    return success_response(data=result, message=f"{result['created']} deliveries created")


@router.get("/my")
def my_deliveries(
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    user: AppUser = Depends(require_customer),
    db: Session = Depends(get_db),
):
    deliveries = DeliveryService.list_for_user(db, user.id, start, end)
    return success_response(data=[_view(d) for d in deliveries])


@router.get("/my/today")
def my_today(user: AppUser = Depends(require_customer), db: Session = Depends(get_db)):
    return success_response(data=[_view(d) for d in DeliveryService.my_today(db, user)])


@router.get("/calendar")
def my_calendar(user: AppUser = Depends(require_customer), db: Session = Depends(get_db)):
    """Day-by-day status across the active subscription"""
    return success_response(data=CalendarService.customer_calendar(db, user))


@router.get("/user/{user_id}")
def user_deliveries(
    user_id: UUID,
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    owner: AppUser = Depends(require_owner),
    db: Session = Depends(get_db),
):
    deliveries = DeliveryService.list_for_user(db, user_id, start, end)
    return success_response(data=[_view(d) for d in deliveries])


@router.get("/{delivery_id}")
def get_delivery(
    delivery_id: UUID, user: AppUser = Depends(get_current_user), db: Session = Depends(get_db)
):
    return success_response(data=_view(DeliveryService.get(db, delivery_id, actor=user)))


@router.patch("/{delivery_id}/status")
def update_status(
    delivery_id: UUID,
    body: DeliveryStatusUpdate,
    staff: AppUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    delivery = DeliveryService.update_status(
        db, delivery_id, body.status, delivery_boy_id=body.delivery_boy_id
    )
    return success_response(data=_view(delivery), message="Delivery status updated")
