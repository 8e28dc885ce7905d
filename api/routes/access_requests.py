"""Public access requests and their owner review"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session
import logging

from api.dependencies import get_db, require_owner
from api.rate_limit import limiter
from api.responses import success_response
from app.config import settings
from domain.enums import AccessRequestStatus
from domain.models import AppUser
from domain.schemas import (
    AccessApprovalResponse,
    AccessRequestCreate,
    AccessRequestResponse,
    RejectRequest,
)
from services.access_request_service import AccessRequestService

router = APIRouter(prefix="/access-requests", tags=["Access Requests"])
logger = logging.getLogger("tiffinmate.api.access_requests")


@router.post("", status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_login)
def submit_request(request: Request, body: AccessRequestCreate, db: Session = Depends(get_db)):
    access_request = AccessRequestService.submit(db, **body.model_dump())
    return success_response(
        data=AccessRequestResponse.model_validate(access_request),
        message="Request submitted. You will receive an SMS once it is reviewed",
    )


@router.get("")
def list_requests(
    status_filter: Optional[AccessRequestStatus] = Query(None, alias="status"),
    owner: AppUser = Depends(require_owner),
    db: Session = Depends(get_db),
):
    rows = AccessRequestService.list(db, status=status_filter)
    return success_response(data=[AccessRequestResponse.model_validate(r) for r in rows])


@router.post("/{request_id}/approve")
def approve_request(
    request_id: UUID, owner: AppUser = Depends(require_owner), db: Session = Depends(get_db)
):
    result = AccessRequestService.approve(db, request_id, owner)
    return success_response(
        data=AccessApprovalResponse.model_validate(result, from_attributes=True),
        message="Access approved",
    )


@router.post("/{request_id}/reject")
def reject_request(
    request_id: UUID,
    body: RejectRequest,
    owner: AppUser = Depends(require_owner),
    db: Session = Depends(get_db),
):
    access_request = AccessRequestService.reject(db, request_id, owner, body.reason)
    return success_response(
        data=AccessRequestResponse.model_validate(access_request), message="Access rejected"
    )
