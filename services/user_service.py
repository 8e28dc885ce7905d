"""
Customer management and self-service profile.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from app.exceptions import ConflictError, NotFoundError, ServiceValidationError
from domain.enums import NotificationPriority, SubscriptionStatus, UserRole
from domain.models import AppUser, Subscription
from repositories import (
    DeliveryRepository,
    MealOrderRepository,
    SubscriptionRepository,
    UserRepository,
)
from services import security
from services.notification_service import NotificationService
from services.sms_service import SmsService
from services.subscription_service import SubscriptionService

logger = logging.getLogger("tiffinmate.users")

CURRENT_SUBSCRIPTION_STATUSES = (
    SubscriptionStatus.ACTIVE,
    SubscriptionStatus.PENDING,
    SubscriptionStatus.PAUSED,
)

# Subscriptions switched off when their customer is deleted
LIVE_STATUSES = (
    SubscriptionStatus.PENDING_APPROVAL,
    SubscriptionStatus.PENDING,
    SubscriptionStatus.ACTIVE,
    SubscriptionStatus.PAUSED,
)


def user_event(user: AppUser) -> Dict[str, Any]:
    return {
        "id": user.id,
        "user_code": user.user_code,
        "name": user.name,
        "mobile": user.mobile,
        "is_active": user.is_active,
    }


class UserService:
    @staticmethod
    def get_customer(db: Session, user_id: UUID) -> AppUser:
        user = UserRepository(db).get_by_id(user_id)
        if not user or user.is_deleted or user.role != UserRole.CUSTOMER:
            raise NotFoundError(f"Customer not found: {user_id}")
        return user

    @staticmethod
    def _ensure_mobile_free(db: Session, mobile: str, exclude_id: Optional[UUID] = None) -> None:
        existing = UserRepository(db).get_by_mobile(mobile)
        if existing and existing.id != exclude_id:
            raise ConflictError("Mobile number already registered", code="MOBILE_EXISTS")

    @staticmethod
    def build_customer(
        db: Session,
        name: str,
        mobile: str,
        address: Optional[Dict[str, Any]],
        created_by: Optional[AppUser],
    ):
        """
        Stage a new active customer with a temporary password.

        Returns ``(user, temporary_password)``; the caller commits and sends
        the credentials.
        """
        UserService._ensure_mobile_free(db, mobile)
        repo = UserRepository(db)
        password = security.generate_temp_password()
        user = AppUser(
            user_code=repo.next_customer_code(),
            password_hash=security.hash_secret(password),
            name=name.strip(),
            mobile=mobile,
            address=address,
            role=UserRole.CUSTOMER,
            is_active=True,
            is_password_changed=False,
            force_password_change=True,
            created_by=created_by.id if created_by else None,
        )
        repo.add(user)
        return user, password

    @staticmethod
    def create_customer(
        db: Session,
        owner: AppUser,
        name: str,
        mobile: str,
        address: Optional[Dict[str, Any]] = None,
        plan_id: Optional[UUID] = None,
        start_date: Optional[date] = None,
        today: Optional[date] = None,
    ) -> Dict[str, Any]:
        """
        Owner onboards a customer, optionally on a plan straight away.

        The temporary password goes out by SMS and is also returned once so
        the owner can hand it over if the SMS fails.
        """
        try:
            user, password = UserService.build_customer(db, name, mobile, address, owner)
            subscription = None
            if plan_id:
                subscription = SubscriptionService.start_for_customer(
                    db, user, plan_id, owner, start_date=start_date, today=today
                )
            sms = SmsService.send_credentials(db, user, password)
            NotificationService.notify_owner(
                db,
                type="user_created",
                title="New Customer",
                message=f"Customer {user.name} ({user.user_code}) created",
                related_user_id=user.id,
                related_model="User",
                related_id=user.id,
                priority=NotificationPriority.LOW,
            )
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Error creating customer %s", mobile)
            raise

        logger.info("Customer %s created by %s", user.user_code, owner.user_code)
        NotificationService.publish("user_created", user_event(user), owner=True)
        return {
            "user": user,
            "temporary_password": password,
            "subscription": subscription,
            "sms_sent": bool(sms.get("success")),
        }

    @staticmethod
    def current_subscription(db: Session, user: AppUser) -> Optional[Subscription]:
        return SubscriptionRepository(db).get_latest_for_user(
            user.id, CURRENT_SUBSCRIPTION_STATUSES
        )

    @staticmethod
    def list_customers(db: Session) -> List[Dict[str, Any]]:
        customers = UserRepository(db).list_customers()
        return [
            {"user": user, "subscription": UserService.current_subscription(db, user)}
            for user in customers
        ]

    @staticmethod
    def update_customer(db: Session, user_id: UUID, changes: Dict[str, Any]) -> AppUser:
        user = UserService.get_customer(db, user_id)
        if "mobile" in changes and changes["mobile"] and changes["mobile"] != user.mobile:
            UserService._ensure_mobile_free(db, changes["mobile"], exclude_id=user.id)
        for field in ("name", "mobile", "address", "is_active"):
            if field in changes and changes[field] is not None:
                setattr(user, field, changes[field])
        try:
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Error updating customer %s", user_id)
            raise
        NotificationService.publish("user_updated", user_event(user))
        return user

    @staticmethod
    def toggle_active(db: Session, user_id: UUID) -> AppUser:
        user = UserService.get_customer(db, user_id)
        try:
            user.is_active = not user.is_active
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Error toggling customer %s", user_id)
            raise
        logger.info("Customer %s is now %s", user.user_code, "active" if user.is_active else "inactive")
        NotificationService.publish("user_updated", user_event(user))
        return user

    @staticmethod
    def delete_customer(db: Session, user_id: UUID) -> AppUser:
        """
        Soft delete: the account is kept for history, its live subscriptions
        are disabled and its meal orders and deliveries removed.
        """
        user = UserService.get_customer(db, user_id)
        try:
            user.deleted_at = datetime.utcnow()
            user.is_active = False
            for subscription in SubscriptionRepository(db).list_for_user(user.id):
                if subscription.status in LIVE_STATUSES:
                    subscription.status = SubscriptionStatus.DISABLED
            orders = MealOrderRepository(db).delete_for_user(user.id)
            deliveries = DeliveryRepository(db).delete_for_user(user.id)
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Error deleting customer %s", user_id)
            raise
        logger.info(
            "Customer %s deleted (%d orders, %d deliveries removed)",
            user.user_code,
            orders,
            deliveries,
        )
        NotificationService.publish("user_deleted", {"id": user.id, "user_code": user.user_code})
        return user

    @staticmethod
    def update_profile(db: Session, user: AppUser, changes: Dict[str, Any]) -> AppUser:
        if "name" in changes and changes["name"] is not None:
            name = changes["name"].strip()
            if not 2 <= len(name) <= 50:
                raise ServiceValidationError("Name must be between 2 and 50 characters")
            user.name = name
        if "address" in changes and changes["address"] is not None:
            address = dict(changes["address"])
            street = (address.get("street") or "").strip()
            if not 5 <= len(street) <= 200:
                raise ServiceValidationError("Street must be between 5 and 200 characters")
            user.address = address
        try:
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Error updating profile of %s", user.user_code)
            raise
        return user
