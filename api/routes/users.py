"""Owner customer management and self-service profile routes"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
import logging

from api.dependencies import get_current_user, get_db, require_owner
from api.responses import success_response
from domain.models import AppUser
from domain.schemas import (
    CustomerCreate,
    CustomerCreatedResponse,
    CustomerResponse,
    CustomerUpdate,
    ProfileUpdate,
    UserSummary,
)
from services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])
logger = logging.getLogger("tiffinmate.api.users")


@router.post("", status_code=status.HTTP_201_CREATED)
def create_customer(
    body: CustomerCreate,
    owner: AppUser = Depends(require_owner),
    db: Session = Depends(get_db),
):
    """
    Create a customer with a temporary password sent by SMS.

    When ``plan_id`` is given an active subscription starts at once.
    """
    result = UserService.create_customer(
        db,
        owner,
        name=body.name,
        mobile=body.mobile,
        address=body.address.model_dump() if body.address else None,
        plan_id=body.plan_id,
        start_date=body.start_date,
    )
    return success_response(
        data=CustomerCreatedResponse.model_validate(result, from_attributes=True),
        message="Customer created successfully",
    )


@router.get("")
def list_customers(owner: AppUser = Depends(require_owner), db: Session = Depends(get_db)):
    rows = UserService.list_customers(db)
    data: List[CustomerResponse] = [
        CustomerResponse.model_validate(row, from_attributes=True) for row in rows
    ]
    return success_response(data=data)


@router.get("/profile")
def get_profile(user: AppUser = Depends(get_current_user)):
    return success_response(data=UserSummary.model_validate(user))


@router.put("/profile")
def update_profile(
    body: ProfileUpdate,
    user: AppUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user = UserService.update_profile(db, user, body.model_dump(exclude_unset=True))
    return success_response(data=UserSummary.model_validate(user), message="Profile updated")


@router.get("/{user_id}")
def get_customer(
    user_id: UUID, owner: AppUser = Depends(require_owner), db: Session = Depends(get_db)
):
    user = UserService.get_customer(db, user_id)
    return success_response(
        data=CustomerResponse.model_validate(
            {"user": user, "subscription": UserService.current_subscription(db, user)},
            from_attributes=True,
        )
    )


@router.put("/{user_id}")
def update_customer(
    user_id: UUID,
    body: CustomerUpdate,
    owner: AppUser = Depends(require_owner),
    db: Session = Depends(get_db),
):
    user = UserService.update_customer(db, user_id, body.model_dump(exclude_unset=True))
    return success_response(data=UserSummary.model_validate(user), message="Customer updated")


@router.patch("/{user_id}/toggle-active")
def toggle_active(
    user_id: UUID, owner: AppUser = Depends(require_owner), db: Session = Depends(get_db)
):
    user = UserService.toggle_active(db, user_id)
    state = "activated" if user.is_active else "deactivated"
    return success_response(data=UserSummary.model_validate(user), message=f"Customer {state}")


@router.delete("/{user_id}")
def delete_customer(
    user_id: UUID, owner: AppUser = Depends(require_owner), db: Session = Depends(get_db)
):
    UserService.delete_customer(db, user_id)
    return success_response(message="Customer deleted")
