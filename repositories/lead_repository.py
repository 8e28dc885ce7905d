"""
Lead Repository - Data access layer for sales leads
"""

from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from repositories.base import BaseRepository
from domain.models import Lead
from domain.enums import LeadSource, LeadStatus


class LeadRepository(BaseRepository[Lead]):
    """Repository for lead data access"""

    def __init__(self, db: Session):
        super().__init__(db, Lead)

    def get_by_phone(self, phone: str) -> Optional[Lead]:
        return self.db.query(Lead).filter(Lead.phone == phone).first()

    def list_filtered(
        self,
        status: Optional[LeadStatus] = None,
        source: Optional[LeadSource] = None,
        search: Optional[str] = None,
    ) -> List[Lead]:
        query = self.db.query(Lead)
        if status:
            query = query.filter(Lead.status == status)
        if source:
            query = query.filter(Lead.source == source)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(Lead.name.ilike(pattern), Lead.phone.like(pattern), Lead.area.ilike(pattern))
            )
        return query.order_by(Lead.created_at.desc()).all()

    def count(self, status: Optional[LeadStatus] = None) -> int:
        query = self.db.query(Lead)
        if status:
            query = query.filter(Lead.status == status)
        return query.count()
