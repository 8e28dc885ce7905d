"""
SMS notifications: message templates plus a delivery log entry per send.
"""

from typing import Any, Dict, Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from adapters import sms_adapter
from app.config import settings
from domain.enums import NotificationType, NotificationStatus
from domain.models import NotificationLog

logger = logging.getLogger("tiffinmate.sms_service")

BRAND = settings.business_name

TEMPLATES = {
    NotificationType.OTP: "Your {brand} OTP is {otp}. Valid for {minutes} minutes. Do not share with anyone.",
    NotificationType.CREDENTIALS: "Welcome to {brand}! Your User ID: {user_code}, Temporary Password: {password}. Please change your password on first login.",
    NotificationType.SUBSCRIPTION_REMINDER: "Hi {name}, your {brand} subscription will expire in {days} days. Please renew to continue enjoying our service.",
    NotificationType.SUBSCRIPTION_EXPIRY: "Hi {name}, your {brand} subscription has expired. Please contact us to renew your service.",
    NotificationType.SUBSCRIPTION_DISABLED: "Hi {name}, your {brand} service has been temporarily disabled due to subscription expiry. Please renew to resume service.",
    NotificationType.SUBSCRIPTION_APPROVED: "Hi {name}, your {brand} subscription is active from {start} to {end}. Enjoy your meals!",
    NotificationType.TRIAL_EXPIRED: "Hi {name}, your {brand} trial has ended. Choose a plan to keep enjoying home-cooked meals.",
    NotificationType.DELIVERY_PREPARING: "Hi {name}, your food is being prepared. It will be delivered soon!",
    NotificationType.DELIVERY_ON_WAY: "Hi {name}, your food is on the way! We will deliver within 1 hour. Please stay at your delivery location.",
    NotificationType.DELIVERY_DELIVERED: "Hi {name}, your tiffin has been delivered. Enjoy your meal!",
    NotificationType.PAYMENT_REMINDER: "Hi {name}, reminder: Your payment of Rs.{amount} is pending. Please make the payment at your earliest convenience.",
    NotificationType.PAYMENT_OVERDUE: "Hi {name}, your payment of Rs.{amount} is overdue. Please clear the dues to avoid service interruption.",
    NotificationType.ACCESS_APPROVED: "Hi {name}, your access request has been approved! User ID: {user_code}, Password: {password}. Download {brand} app to login.",
    NotificationType.ACCESS_REJECTED: "Hi {name}, we regret to inform you that your access request has been rejected. Reason: {reason}. Please contact us for more details.",
}


def render(kind: NotificationType, **values: Any) -> str:
    return TEMPLATES[kind].format(brand=BRAND, **values)


class SmsService:
    @staticmethod
    def send(
        db: Session,
        mobile: str,
        message: str,
        kind: NotificationType = NotificationType.OTHER,
        user_id: Optional[UUID] = None,
    ) -> Dict[str, Any]:
        """
        Send one SMS and record the attempt in the notification log.

        Never raises for provider failures; inspect ``result["success"]``.
        """
        result = sms_adapter.send(mobile, message)
        db.add(
            NotificationLog(
                user_id=user_id,
                mobile=mobile,
                type=kind,
                message=message,
                status=NotificationStatus.SENT if result.get("success") else NotificationStatus.FAILED,
                provider=result.get("provider", settings.sms_provider),
                response=result.get("response"),
                error_message=result.get("error"),
            )
        )
        db.flush()
        if not result.get("success"):
            logger.warning("SMS %s to %s failed: %s", kind.value, mobile, result.get("error"))
        return result

    @staticmethod
    def notify(db: Session, user, kind: NotificationType, **values: Any) -> Dict[str, Any]:
        """Render a template for ``user`` and send it"""
        message = render(kind, name=user.name, **values)
        return SmsService.send(db, user.mobile, message, kind, user_id=user.id)

    @staticmethod
    def send_otp(db: Session, user, otp: str) -> Dict[str, Any]:
        message = render(NotificationType.OTP, otp=otp, minutes=settings.otp_expiry_minutes)
        return SmsService.send(db, user.mobile, message, NotificationType.OTP, user_id=user.id)

    @staticmethod
    def send_credentials(db: Session, user, password: str) -> Dict[str, Any]:
        message = render(
            NotificationType.CREDENTIALS, user_code=user.user_code, password=password
        )
        return SmsService.send(
            db, user.mobile, message, NotificationType.CREDENTIALS, user_id=user.id
        )

    @staticmethod
    def send_access_approved(db: Session, user, password: str) -> Dict[str, Any]:
        return SmsService.notify(
            db,
            user,
            NotificationType.ACCESS_APPROVED,
            user_code=user.user_code,
            password=password,
        )

    @staticmethod
    def send_access_rejected(db: Session, name: str, mobile: str, reason: str) -> Dict[str, Any]:
        message = render(NotificationType.ACCESS_REJECTED, name=name, reason=reason)
        return SmsService.send(db, mobile, message, NotificationType.ACCESS_REJECTED)
