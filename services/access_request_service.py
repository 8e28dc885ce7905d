"""
Access requests: prospective customers asking for an account.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from app.exceptions import ConflictError, NotFoundError, ServiceValidationError
from domain.enums import AccessRequestStatus, DurationType, NotificationPriority
from domain.models import AccessRequest, AppUser
from repositories import AccessRequestRepository, UserRepository
from services.notification_service import NotificationService
from services.sms_service import SmsService
from services.user_service import UserService

logger = logging.getLogger("tiffinmate.access_requests")


class AccessRequestService:
    @staticmethod
    def submit(
        db: Session,
        name: str,
        mobile: str,
        plan_type: DurationType = DurationType.MONTHLY,
        wants_lunch: bool = True,
        wants_dinner: bool = False,
    ) -> AccessRequest:
        if not wants_lunch and not wants_dinner:
            raise ServiceValidationError("Choose lunch, dinner or both")
        if UserRepository(db).get_by_mobile(mobile):
            raise ConflictError(
                "This mobile number is already registered. Please login.",
                code="MOBILE_EXISTS",
            )
        repo = AccessRequestRepository(db)
        if repo.get_pending_by_mobile(mobile):
            raise ConflictError(
                "A request for this mobile number is already pending",
                code="REQUEST_PENDING",
            )

        request = AccessRequest(
            name=name.strip(),
            mobile=mobile,
            plan_type=plan_type,
            wants_lunch=wants_lunch,
            wants_dinner=wants_dinner,
        )
        try:
            repo.add(request)
            meals = " & ".join(
                label for label, wanted in (("lunch", wants_lunch), ("dinner", wants_dinner)) if wanted
            )
            NotificationService.notify_owner(
                db,
                type="access_request",
                title="New Access Request",
                message=f"{request.name} ({mobile}) wants a {plan_type.value} plan with {meals}",
                related_model="AccessRequest",
                related_id=request.id,
                priority=NotificationPriority.HIGH,
            )
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Error saving access request for %s", mobile)
            raise
        logger.info("Access request %s submitted", request.id)
        return request

    @staticmethod
    def list(db: Session, status: Optional[AccessRequestStatus] = None) -> List[AccessRequest]:
        return AccessRequestRepository(db).list(status)

    @staticmethod
    def _get_pending(db: Session, request_id: UUID) -> AccessRequest:
        request = AccessRequestRepository(db).get_by_id(request_id)
        if not request:
            raise NotFoundError(f"Access request not found: {request_id}")
        if request.status != AccessRequestStatus.PENDING:
            raise ServiceValidationError(f"Request already {request.status.value}")
        return request

    @staticmethod
    def approve(db: Session, request_id: UUID, owner: AppUser) -> Dict[str, Any]:
        """Create the customer account and SMS its credentials"""
        request = AccessRequestService._get_pending(db, request_id)
        try:
            user, password = UserService.build_customer(
                db, request.name, request.mobile, None, owner
            )
            request.status = AccessRequestStatus.APPROVED
            request.reviewed_by = owner.id
            request.reviewed_at = datetime.utcnow()
            request.user_id = user.id
            sms = SmsService.send_access_approved(db, user, password)
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Error approving access request %s", request_id)
            raise

        logger.info("Access request %s approved as %s", request.id, user.user_code)
        NotificationService.publish(
            "user_created", {"id": user.id, "user_code": user.user_code, "name": user.name}
        )
        return {
            "request": request,
            "user": user,
            "temporary_password": password,
            "sms_sent": bool(sms.get("success")),
        }

    @staticmethod
    def reject(db: Session, request_id: UUID, owner: AppUser, reason: str) -> AccessRequest:
        if not reason or not reason.strip():
            raise ServiceValidationError("Rejection reason is required")
        request = AccessRequestService._get_pending(db, request_id)
        try:
            request.status = AccessRequestStatus.REJECTED
            request.reviewed_by = owner.id
            request.reviewed_at = datetime.utcnow()
            request.rejection_reason = reason.strip()
            SmsService.send_access_rejected(db, request.name, request.mobile, request.rejection_reason)
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Error rejecting access request %s", request_id)
            raise
        logger.info("Access request %s rejected", request.id)
        return request
