"""Subscription request, approval and lifecycle routes"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
import logging

from api.dependencies import get_current_user, get_db, require_customer, require_owner
from api.responses import success_response
from domain.enums import PlanType, SubscriptionStatus
from domain.models import AppUser
from domain.schemas import (
    ApproveRequest,
    RejectRequest,
    RenewRequest,
    StatusUpdateRequest,
    SubscriptionRequest,
    SubscriptionResponse,
    TrialCheckResponse,
)
from services.subscription_service import SubscriptionService

router = APIRouter(prefix="/subscriptions", tags=["Subscriptions"])
logger = logging.getLogger("tiffinmate.api.subscriptions")


def _one(subscription):
    return SubscriptionResponse.model_validate(subscription) if subscription else None


def _many(subscriptions):
    return [SubscriptionResponse.model_validate(s) for s in subscriptions]


@router.post("", status_code=status.HTTP_201_CREATED)
def request_subscription(
    body: SubscriptionRequest,
    user: AppUser = Depends(require_customer),
    db: Session = Depends(get_db),
):
    subscription = SubscriptionService.request_subscription(
        db, user, body.plan_id, start_date=body.start_date, payment_mode=body.payment_mode
    )
    return success_response(
        data=_one(subscription), message="Subscription request submitted for approval"
    )


@router.get("/my")
def my_subscriptions(user: AppUser = Depends(require_customer), db: Session = Depends(get_db)):
    return success_response(data=_many(SubscriptionService.list_mine(db, user)))


@router.get("/my/active")
def my_active_subscription(
    user: AppUser = Depends(require_customer), db: Session = Depends(get_db)
):
    return success_response(data=_one(SubscriptionService.get_my_active(db, user)))


@router.get("/trial-check")
def check_trial(user: AppUser = Depends(require_customer), db: Session = Depends(get_db)):
    return success_response(
        data=TrialCheckResponse.model_validate(SubscriptionService.check_trial(db, user))
    )


@router.get("")
def list_subscriptions(
    status_filter: Optional[SubscriptionStatus] = Query(None, alias="status"),
    plan_type: Optional[PlanType] = Query(None),
    owner: AppUser = Depends(require_owner),
    db: Session = Depends(get_db),
):
    return success_response(
        data=_many(SubscriptionService.list_all(db, status=status_filter, plan_type=plan_type))
    )


@router.get("/pending")
def list_pending(owner: AppUser = Depends(require_owner), db: Session = Depends(get_db)):
    return success_response(data=_many(SubscriptionService.list_pending(db)))


@router.get("/expiring")
def list_expiring(
    days: int = Query(7, ge=0, le=60),
    owner: AppUser = Depends(require_owner),
    db: Session = Depends(get_db),
):
    return success_response(data=_many(SubscriptionService.expiring(db, days=days)))


@router.get("/{subscription_id}")
def get_subscription(
    subscription_id: UUID,
    user: AppUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return success_response(data=_one(SubscriptionService.get(db, subscription_id, actor=user)))


@router.post("/{subscription_id}/approve")
def approve_subscription(
    subscription_id: UUID,
    body: Optional[ApproveRequest] = None,
    owner: AppUser = Depends(require_owner),
    db: Session = Depends(get_db),
):
    subscription = SubscriptionService.approve(
        db, subscription_id, owner, start_date=body.start_date if body else None
    )
    return success_response(data=_one(subscription), message="Subscription approved")


@router.post("/{subscription_id}/reject")
def reject_subscription(
    subscription_id: UUID,
    body: RejectRequest,
    owner: AppUser = Depends(require_owner),
    db: Session = Depends(get_db),
):
    subscription = SubscriptionService.reject(db, subscription_id, owner, body.reason)
    return success_response(data=_one(subscription), message="Subscription rejected")


@router.patch("/{subscription_id}/status")
def update_status(
    subscription_id: UUID,
    body: StatusUpdateRequest,
    owner: AppUser = Depends(require_owner),
    db: Session = Depends(get_db),
):
    subscription = SubscriptionService.update_status(db, subscription_id, body.status)
    return success_response(data=_one(subscription), message="Subscription updated")


@router.patch("/{subscription_id}/toggle-pause")
def toggle_pause(
    subscription_id: UUID,
    user: AppUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    subscription = SubscriptionService.toggle_pause(db, subscription_id, user)
    return success_response(data=_one(subscription))


@router.post("/{subscription_id}/renew")
def renew_subscription(
    subscription_id: UUID,
    body: Optional[RenewRequest] = None,
    owner: AppUser = Depends(require_owner),
    db: Session = Depends(get_db),
):
    subscription = SubscriptionService.renew(
        db, subscription_id, owner, plan_id=body.plan_id if body else None
    )
    return success_response(data=_one(subscription), message="Subscription renewed")
