"""Lead capture and follow-up routes"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session
import logging

from api.dependencies import get_db, require_owner
from api.rate_limit import limiter
from api.responses import success_response
from app.config import settings
from domain.enums import LeadSource, LeadStatus
from domain.models import AppUser
from domain.schemas import LeadCreate, LeadResponse, LeadUpdate
from services.lead_service import LeadService

router = APIRouter(prefix="/leads", tags=["Leads"])
logger = logging.getLogger("tiffinmate.api.leads")


@router.post("", status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_login)
def submit_lead(request: Request, body: LeadCreate, db: Session = Depends(get_db)):
    """Public form; a phone number already on file updates that lead"""
    lead = LeadService.submit(db, body.model_dump())
    return success_response(data=LeadResponse.model_validate(lead), message="Thanks! We will call you soon")


@router.get("")
def list_leads(
    status_filter: Optional[LeadStatus] = Query(None, alias="status"),
    source: Optional[LeadSource] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    owner: AppUser = Depends(require_owner),
    db: Session = Depends(get_db),
):
    leads = LeadService.list(db, status=status_filter, source=source, search=search)
    return success_response(data=[LeadResponse.model_validate(lead) for lead in leads])


@router.get("/stats")
def lead_stats(owner: AppUser = Depends(require_owner), db: Session = Depends(get_db)):
    return success_response(data=LeadService.stats(db))


@router.put("/{lead_id}")
def update_lead(
    lead_id: UUID,
    body: LeadUpdate,
    owner: AppUser = Depends(require_owner),
    db: Session = Depends(get_db),
):
    lead = LeadService.update(db, lead_id, body.model_dump(exclude_unset=True))
    return success_response(data=LeadResponse.model_validate(lead), message="Lead updated")
