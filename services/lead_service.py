"""
Sales leads captured from the app and walk-ins.
"""

from typing import Any, Dict, List, Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from app.exceptions import NotFoundError
from domain.enums import LeadSource, LeadStatus, NotificationPriority
from domain.models import Lead
from repositories import LeadRepository
from services.notification_service import NotificationService

logger = logging.getLogger("tiffinmate.leads")

UPDATABLE_FIELDS = ("name", "location", "area", "message", "source", "status", "notes")


class LeadService:
    @staticmethod
    def submit(db: Session, data: Dict[str, Any]) -> Lead:
        """
        Record a lead. A phone number seen before updates the existing lead
        instead of creating a second one.
        """
        repo = LeadRepository(db)
        lead = repo.get_by_phone(data["phone"])
        created = lead is None
        try:
            if created:
                lead = Lead(phone=data["phone"])
            for field in ("name", "location", "area", "message", "source"):
                if data.get(field) is not None:
                    setattr(lead, field, data[field])
            if created:
                repo.add(lead)
            NotificationService.notify_owner(
                db,
                type="lead",
                title="New Lead" if created else "Lead Updated",
                message=f"{lead.name} ({lead.phone}) from {lead.area or 'unknown area'}",
                related_model="Lead",
                related_id=lead.id,
                priority=NotificationPriority.MEDIUM,
            )
            lead.notification_sent = True
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Error saving lead %s", data.get("phone"))
            raise
        logger.info("Lead %s %s", lead.phone, "created" if created else "updated")
        return lead

    @staticmethod
    def list(
        db: Session,
        status: Optional[LeadStatus] = None,
        source: Optional[LeadSource] = None,
        search: Optional[str] = None,
    ) -> List[Lead]:
        return LeadRepository(db).list_filtered(status=status, source=source, search=search)

    @staticmethod
    def update(db: Session, lead_id: UUID, changes: Dict[str, Any]) -> Lead:
        repo = LeadRepository(db)
        lead = repo.get_by_id(lead_id)
        if not lead:
            raise NotFoundError(f"Lead not found: {lead_id}")
        for field in UPDATABLE_FIELDS:
            if changes.get(field) is not None:
                setattr(lead, field, changes[field])
        return repo.update(lead)

    @staticmethod
    def stats(db: Session) -> Dict[str, Any]:
        repo = LeadRepository(db)
        return {
            "total": repo.count(),
            "by_status": {status.value: repo.count(status) for status in LeadStatus},
        }
