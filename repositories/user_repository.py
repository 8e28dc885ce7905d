"""
User Repository - Data access layer for accounts and access requests
"""

import re
from typing import List, Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from repositories.base import BaseRepository
from domain.models import AppUser, AccessRequest
from domain.enums import UserRole, AccessRequestStatus

CUSTOMER_CODE_PREFIX = "CUST"
FIRST_CUSTOMER_NUMBER = 1001

_CODE_PATTERN = re.compile(r"^CUST(\d+)$")


class UserRepository(BaseRepository[AppUser]):
    """Repository for user data access"""

    def __init__(self, db: Session):
        super().__init__(db, AppUser)

    def get_by_code(self, user_code: str) -> Optional[AppUser]:
        return self.db.query(AppUser).filter(AppUser.user_code == user_code).first()

    def get_by_mobile(self, mobile: str, include_deleted: bool = False) -> Optional[AppUser]:
        query = self.db.query(AppUser).filter(AppUser.mobile == mobile)
        if not include_deleted:
            query = query.filter(AppUser.deleted_at.is_(None))
        return query.first()

    def get_by_login(self, identifier: str) -> Optional[AppUser]:
        """Find a user by user code or mobile number"""
        return (
            self.db.query(AppUser)
            .filter(or_(AppUser.user_code == identifier, AppUser.mobile == identifier))
            .order_by(AppUser.deleted_at.isnot(None))
            .first()
        )

    def get_owners(self) -> List[AppUser]:
        return (
            self.db.query(AppUser)
            .filter(AppUser.role == UserRole.OWNER, AppUser.deleted_at.is_(None))
            .all()
        )

    def list_customers(self, include_inactive: bool = True) -> List[AppUser]:
        query = self.db.query(AppUser).filter(
            AppUser.role == UserRole.CUSTOMER, AppUser.deleted_at.is_(None)
        )
        if not include_inactive:
            query = query.filter(AppUser.is_active.is_(True))
        return query.order_by(AppUser.created_at.desc()).all()

    def active_customer_ids(self) -> List[UUID]:
        """IDs of customers that count for kitchen and dashboard figures"""
        rows = (
            self.db.query(AppUser.id)
            .filter(
                AppUser.role == UserRole.CUSTOMER,
                AppUser.is_active.is_(True),
                AppUser.deleted_at.is_(None),
            )
            .all()
        )
        return [r[0] for r in rows]

    def count_customers(self, active_only: bool = False) -> int:
        query = self.db.query(AppUser).filter(
            AppUser.role == UserRole.CUSTOMER, AppUser.deleted_at.is_(None)
        )
        if active_only:
            query = query.filter(AppUser.is_active.is_(True))
        return query.count()

    def next_customer_code(self) -> str:
        """Next sequential CUST#### code (CUST1001 for the first customer)"""
        codes = (
            self.db.query(AppUser.user_code)
            .filter(AppUser.user_code.like(f"{CUSTOMER_CODE_PREFIX}%"))
            .all()
        )
        highest = FIRST_CUSTOMER_NUMBER - 1
        for (code,) in codes:
            match = _CODE_PATTERN.match(code or "")
            if match:
                highest = max(highest, int(match.group(1)))
        return f"{CUSTOMER_CODE_PREFIX}{highest + 1}"


class AccessRequestRepository(BaseRepository[AccessRequest]):
    """Repository for access request data access"""

    def __init__(self, db: Session):
        super().__init__(db, AccessRequest)

    def get_pending_by_mobile(self, mobile: str) -> Optional[AccessRequest]:
        return (
            self.db.query(AccessRequest)
            .filter(
                AccessRequest.mobile == mobile,
                AccessRequest.status == AccessRequestStatus.PENDING,
            )
            .first()
        )

    def list(self, status: Optional[AccessRequestStatus] = None) -> List[AccessRequest]:
        query = self.db.query(AccessRequest)
        if status:
            query = query.filter(AccessRequest.status == status)
        return query.order_by(AccessRequest.created_at.desc()).all()

    def count_pending(self) -> int:
        return (
            self.db.query(AccessRequest)
            .filter(AccessRequest.status == AccessRequestStatus.PENDING)
            .count()
        )
