"""
Subscription lifecycle: plans, requests, approval, status transitions, renewal.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID
import logging

from dateutil.relativedelta import relativedelta
from sqlalchemy.orm import Session

from app.clock import today_local
from app.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ServiceValidationError,
)
from domain.enums import (
    OPEN_SUBSCRIPTION_STATUSES,
    DietaryPreference,
    DurationType,
    FoodType,
    MealType,
    NotificationPriority,
    NotificationType,
    PaymentMode,
    PlanCategory,
    PlanType,
    SubscriptionStatus,
    UserRole,
)
from domain.models import AppUser, Subscription, SubscriptionPlan
from repositories import PlanRepository, SubscriptionRepository
from services.notification_service import NotificationService
from services.payment_service import PaymentService
from services.sms_service import SmsService

logger = logging.getLogger("tiffinmate.subscriptions")

# Statuses an owner may set directly
SETTABLE_STATUSES = (
    SubscriptionStatus.PENDING,
    SubscriptionStatus.ACTIVE,
    SubscriptionStatus.PAUSED,
    SubscriptionStatus.EXPIRED,
    SubscriptionStatus.DISABLED,
)


def calculate_period(
    start: date, duration_type: DurationType, duration_days: int
) -> Tuple[date, int]:
    """
    End date (inclusive) and day count of a subscription starting on ``start``.

    daily: same day; weekly: 7 days; monthly: one calendar month; otherwise
    ``duration_days`` days.
    """
    if duration_type == DurationType.DAILY:
        return start, 1
    if duration_type == DurationType.WEEKLY:
        return start + timedelta(days=6), 7
    if duration_type == DurationType.MONTHLY:
        end = start + relativedelta(months=1) - timedelta(days=1)
        return end, (end - start).days + 1
    days = max(1, int(duration_days or 1))
    return start + timedelta(days=days - 1), days


def plan_type_for(plan: SubscriptionPlan) -> PlanType:
    if plan.plan_category == PlanCategory.TRIAL:
        return PlanType.TRIAL
    return plan.menu_category or PlanType.CLASSIC


def ensure_no_other_open(db: Session, subscription: Subscription) -> None:
    """
    Refuse to (re)open ``subscription`` while the customer has another
    pending-approval, pending or active subscription.
    """
    other = SubscriptionRepository(db).get_open_for_user(
        subscription.user_id, exclude_id=subscription.id
    )
    if other is not None:
        raise ConflictError(
            "Customer already has another active or pending subscription",
            details={"subscription_id": str(other.id), "status": other.status.value},
            code="SUBSCRIPTION_OPEN",
        )


def dietary_preference_for(plan: SubscriptionPlan) -> DietaryPreference:
    if plan.menu_category == PlanType.PREMIUM_VEG or plan.food_type == FoodType.VEG:
        return DietaryPreference.VEG
    if plan.menu_category == PlanType.PREMIUM_NON_VEG or plan.food_type == FoodType.NON_VEG:
        return DietaryPreference.NON_VEG
    return DietaryPreference.BOTH


def subscription_event(subscription: Subscription) -> Dict[str, Any]:
    """Payload sent with subscription socket events"""
    return {
        "id": subscription.id,
        "user_id": subscription.user_id,
        "status": subscription.status.value,
        "plan_type": subscription.plan_type.value,
        "start_date": subscription.start_date,
        "end_date": subscription.end_date,
        "remaining_days": subscription.remaining_days,
    }


class SubscriptionService:
    # ------------------------------------------------------------------
    # Plans
    # ------------------------------------------------------------------

    @staticmethod
    def list_plans(
        db: Session,
        duration_type: Optional[DurationType] = None,
        meal_type: Optional[MealType] = None,
    ) -> List[SubscriptionPlan]:
        return PlanRepository(db).list(duration_type=duration_type, meal_type=meal_type)

    @staticmethod
    def get_plan(db: Session, plan_id: UUID) -> SubscriptionPlan:
        plan = PlanRepository(db).get_by_id(plan_id)
        if not plan:
            raise NotFoundError(f"Subscription plan not found: {plan_id}")
        return plan

    @staticmethod
    def create_plan(db: Session, data: Dict[str, Any]) -> SubscriptionPlan:
        repo = PlanRepository(db)
        if repo.get_by_name(data["name"]):
            raise ConflictError(f"A plan named '{data['name']}' already exists")
        plan = SubscriptionPlan(**data)
        if not plan.total_price and plan.price_per_day is not None:
            plan.total_price = Decimal(plan.price_per_day) * plan.duration_days
        return repo.create(plan)

    @staticmethod
    def update_plan(db: Session, plan_id: UUID, changes: Dict[str, Any]) -> SubscriptionPlan:
        plan = SubscriptionService.get_plan(db, plan_id)
        for field, value in changes.items():
            setattr(plan, field, value)
        return PlanRepository(db).update(plan)

    @staticmethod
    def duration_types(db: Session) -> List[Dict[str, Any]]:
        """Per duration type: number of active plans and the cheapest price"""
        summary: Dict[DurationType, Dict[str, Any]] = {}
        for plan in PlanRepository(db).list():
            entry = summary.setdefault(
                plan.duration_type,
                {"duration_type": plan.duration_type.value, "plan_count": 0, "min_price": None},
            )
            entry["plan_count"] += 1
            price = Decimal(plan.total_price)
            if entry["min_price"] is None or price < entry["min_price"]:
                entry["min_price"] = price
        order = [DurationType.DAILY, DurationType.WEEKLY, DurationType.MONTHLY]
        return [summary[d] for d in order if d in summary]

    # ------------------------------------------------------------------
    # Customer requests and owner approval
    # ------------------------------------------------------------------

    @staticmethod
    def request_subscription(
        db: Session,
        user: AppUser,
        plan_id: UUID,
        start_date: Optional[date] = None,
        payment_mode: PaymentMode = PaymentMode.CASH,
        today: Optional[date] = None,
    ) -> Subscription:
        """
        Customer asks for a subscription; it waits for owner approval.

        Raises:
            ConflictError: the customer already has an open subscription
            ServiceValidationError: trial already used, plan inactive, start in the past
            NotFoundError: unknown plan
        """
        today = today or today_local()
        repo = SubscriptionRepository(db)

        existing = repo.get_open_for_user(user.id)
        if existing:
            raise ConflictError(
                "You already have an active or pending subscription",
                details={"subscription_id": str(existing.id), "status": existing.status.value},
            )

        plan = SubscriptionService.get_plan(db, plan_id)
        if not plan.is_active:
            raise ServiceValidationError("This plan is not available")
        if plan.plan_category == PlanCategory.TRIAL and repo.has_used_trial(user.id):
            raise ServiceValidationError(
                "Trial plan can only be used once", code="TRIAL_ALREADY_USED"
            )

        start = start_date or today
        if start < today:
            raise ServiceValidationError("Start date cannot be in the past")
        end, total_days = calculate_period(start, plan.duration_type, plan.duration_days)

        try:
            subscription = repo.add(
                Subscription(
                    user_id=user.id,
                    plan_id=plan.id,
                    plan_type=plan_type_for(plan),
                    plan_category=plan.plan_category,
                    start_date=start,
                    end_date=end,
                    total_days=total_days,
                    used_days=0,
                    remaining_days=total_days,
                    status=SubscriptionStatus.PENDING_APPROVAL,
                    amount=plan.total_price,
                    payment_mode=payment_mode,
                    includes_lunch=plan.includes_lunch,
                    includes_dinner=plan.includes_dinner,
                    dietary_preference=dietary_preference_for(plan),
                )
            )
            NotificationService.notify_owner(
                db,
                type="subscription_requested",
                title="New Subscription Request",
                message=f"{user.name} ({user.user_code}) requested {plan.display_name}",
                related_user_id=user.id,
                related_model="Subscription",
                related_id=subscription.id,
                priority=NotificationPriority.HIGH,
            )
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Error creating subscription request for %s", user.user_code)
            raise

        NotificationService.publish(
            "subscription_request",
            {**subscription_event(subscription), "user_name": user.name, "plan": plan.display_name},
        )
        logger.info("Subscription %s requested by %s", subscription.id, user.user_code)
        return subscription

    @staticmethod
    def get(db: Session, subscription_id: UUID, actor: Optional[AppUser] = None) -> Subscription:
        subscription = SubscriptionRepository(db).get_by_id(subscription_id)
        if not subscription:
            raise NotFoundError(f"Subscription not found: {subscription_id}")
        if actor is not None and actor.role == UserRole.CUSTOMER and subscription.user_id != actor.id:
            raise ForbiddenError("Not authorized to access this subscription")
        return subscription

    @staticmethod
    def approve(
        db: Session,
        subscription_id: UUID,
        owner: AppUser,
        start_date: Optional[date] = None,
        today: Optional[date] = None,
    ) -> Subscription:
        """
        Owner approves a pending request.

        An optional new start date recomputes the period. The customer is
        activated and a pending payment is raised for the subscription amount
        unless one already exists this month.
        """
        today = today or today_local()
        subscription = SubscriptionService.get(db, subscription_id)
        if subscription.status != SubscriptionStatus.PENDING_APPROVAL:
            raise ServiceValidationError(
                f"Cannot approve a subscription with status {subscription.status.value}"
            )
        ensure_no_other_open(db, subscription)

        try:
            if start_date is not None:
                plan = subscription.plan
                duration_type = plan.duration_type if plan else None
                duration_days = plan.duration_days if plan else subscription.total_days
                end, total_days = calculate_period(start_date, duration_type, duration_days)
                subscription.start_date = start_date
                subscription.end_date = end
                subscription.total_days = total_days
                subscription.recompute_remaining()

            subscription.status = SubscriptionStatus.ACTIVE
            subscription.approved_by = owner.id
            subscription.approved_at = datetime.utcnow()
            subscription.user.is_active = True

            PaymentService.ensure_pending_for_subscription(db, subscription, today=today)
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Error approving subscription %s", subscription_id)
            raise

        SmsService.notify(
            db,
            subscription.user,
            NotificationType.SUBSCRIPTION_APPROVED,
            start=subscription.start_date.strftime("%d %b %Y"),
            end=subscription.end_date.strftime("%d %b %Y"),
        )
        db.commit()
        NotificationService.publish(
            "subscription_approved",
            subscription_event(subscription),
            user_id=subscription.user_id,
        )
        logger.info("Subscription %s approved by %s", subscription.id, owner.user_code)
        return subscription

    @staticmethod
    def reject(db: Session, subscription_id: UUID, owner: AppUser, reason: str) -> Subscription:
        if not reason or not reason.strip():
            raise ServiceValidationError("Rejection reason is required")
        subscription = SubscriptionService.get(db, subscription_id)
        if subscription.status != SubscriptionStatus.PENDING_APPROVAL:
            raise ServiceValidationError(
                f"Cannot reject a subscription with status {subscription.status.value}"
            )
        try:
            subscription.status = SubscriptionStatus.REJECTED
            subscription.rejected_by = owner.id
            subscription.rejected_at = datetime.utcnow()
            subscription.rejection_reason = reason.strip()
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Error rejecting subscription %s", subscription_id)
            raise

        NotificationService.publish(
            "subscription_rejected",
            {**subscription_event(subscription), "reason": subscription.rejection_reason},
            user_id=subscription.user_id,
        )
        return subscription

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    @staticmethod
    def update_status(
        db: Session, subscription_id: UUID, status: SubscriptionStatus
    ) -> Subscription:
        if status not in SETTABLE_STATUSES:
            raise ServiceValidationError(
                f"Status must be one of: {', '.join(s.value for s in SETTABLE_STATUSES)}"
            )
        subscription = SubscriptionService.get(db, subscription_id)
        previous = subscription.status
        if status in OPEN_SUBSCRIPTION_STATUSES:
            ensure_no_other_open(db, subscription)
        try:
            subscription.status = status
            if status == SubscriptionStatus.ACTIVE:
                subscription.user.is_active = True
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Error updating subscription %s", subscription_id)
            raise

        logger.info(
            "Subscription %s status %s -> %s", subscription.id, previous.value, status.value
        )
        NotificationService.publish(
            "subscription_updated", subscription_event(subscription), user_id=subscription.user_id
        )
        return subscription

    @staticmethod
    def toggle_pause(db: Session, subscription_id: UUID, actor: AppUser) -> Subscription:
        """Flip an active subscription to paused and back"""
        subscription = SubscriptionService.get(db, subscription_id, actor=actor)
        if subscription.status == SubscriptionStatus.ACTIVE:
            subscription.status = SubscriptionStatus.PAUSED
        elif subscription.status == SubscriptionStatus.PAUSED:
            ensure_no_other_open(db, subscription)
            subscription.status = SubscriptionStatus.ACTIVE
        else:
            raise ServiceValidationError("Only active or paused subscriptions can be toggled")
        try:
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Error toggling pause for subscription %s", subscription_id)
            raise
        NotificationService.publish(
            "subscription_updated", subscription_event(subscription), user_id=subscription.user_id
        )
        return subscription

    @staticmethod
    def renew(
        db: Session,
        subscription_id: UUID,
        owner: AppUser,
        plan_id: Optional[UUID] = None,
        today: Optional[date] = None,
    ) -> Subscription:
        """Close the old subscription and start a fresh active one today"""
        today = today or today_local()
        old = SubscriptionService.get(db, subscription_id)
        ensure_no_other_open(db, old)
        plan = SubscriptionService.get_plan(db, plan_id or old.plan_id) if (plan_id or old.plan_id) else None

        try:
            old.status = SubscriptionStatus.EXPIRED
            if plan is not None:
                new = SubscriptionService._build_active(old.user, plan, today, owner)
            else:
                end = today + timedelta(days=old.total_days - 1)
                new = Subscription(
                    user_id=old.user_id,
                    plan_type=old.plan_type,
                    plan_category=old.plan_category,
                    start_date=today,
                    end_date=end,
                    total_days=old.total_days,
                    used_days=0,
                    remaining_days=old.total_days,
                    status=SubscriptionStatus.ACTIVE,
                    amount=old.amount,
                    payment_mode=old.payment_mode,
                    includes_lunch=old.includes_lunch,
                    includes_dinner=old.includes_dinner,
                    dietary_preference=old.dietary_preference,
                    approved_by=owner.id,
                    approved_at=datetime.utcnow(),
                )
            SubscriptionRepository(db).add(new)
            old.user.is_active = True
            PaymentService.ensure_pending_for_subscription(db, new, today=today)
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Error renewing subscription %s", subscription_id)
            raise

        NotificationService.publish(
            "subscription_created", subscription_event(new), user_id=new.user_id
        )
        logger.info("Subscription %s renewed as %s", old.id, new.id)
        return new

    @staticmethod
    def _build_active(
        user: AppUser, plan: SubscriptionPlan, start: date, owner: Optional[AppUser]
    ) -> Subscription:
        end, total_days = calculate_period(start, plan.duration_type, plan.duration_days)
        return Subscription(
            user_id=user.id,
            plan_id=plan.id,
            plan_type=plan_type_for(plan),
            plan_category=plan.plan_category,
            start_date=start,
            end_date=end,
            total_days=total_days,
            used_days=0,
            remaining_days=total_days,
            status=SubscriptionStatus.ACTIVE,
            amount=plan.total_price,
            includes_lunch=plan.includes_lunch,
            includes_dinner=plan.includes_dinner,
            dietary_preference=dietary_preference_for(plan),
            approved_by=owner.id if owner else None,
            approved_at=datetime.utcnow(),
        )

    @staticmethod
    def start_for_customer(
        db: Session,
        user: AppUser,
        plan_id: UUID,
        owner: AppUser,
        start_date: Optional[date] = None,
        today: Optional[date] = None,
    ) -> Subscription:
        """Owner-created active subscription (staged; caller commits)"""
        today = today or today_local()
        plan = SubscriptionService.get_plan(db, plan_id)
        if not plan.is_active:
            raise ServiceValidationError("This plan is not available")
        subscription = SubscriptionRepository(db).add(
            SubscriptionService._build_active(user, plan, start_date or today, owner)
        )
        PaymentService.ensure_pending_for_subscription(db, subscription, today=today)
        return subscription

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @staticmethod
    def get_my_active(db: Session, user: AppUser) -> Optional[Subscription]:
        """Newest active or pending subscription of the customer"""
        return SubscriptionRepository(db).get_latest_for_user(
            user.id, [SubscriptionStatus.ACTIVE, SubscriptionStatus.PENDING]
        )

    @staticmethod
    def list_mine(db: Session, user: AppUser) -> List[Subscription]:
        return SubscriptionRepository(db).list_for_user(user.id)

    @staticmethod
    def list_all(
        db: Session,
        status: Optional[SubscriptionStatus] = None,
        plan_type: Optional[PlanType] = None,
    ) -> List[Subscription]:
        return SubscriptionRepository(db).list_filtered(status=status, plan_type=plan_type)

    @staticmethod
    def list_pending(db: Session) -> List[Subscription]:
        return SubscriptionRepository(db).list_by_status(SubscriptionStatus.PENDING_APPROVAL)

    @staticmethod
    def check_trial(db: Session, user: AppUser) -> Dict[str, Any]:
        used = SubscriptionRepository(db).has_used_trial(user.id)
        return {"has_used_trial": used, "can_use_trial": not used}

    @staticmethod
    def expiring(db: Session, days: int = 7, today: Optional[date] = None) -> List[Subscription]:
        today = today or today_local()
        return SubscriptionRepository(db).list_expiring_between(
            today, today + timedelta(days=days)
        )
