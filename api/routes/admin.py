"""Owner dashboard and scheduled-job routes"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
import logging

from adapters.scheduler import scheduler_manager
from api.dependencies import get_db, require_owner
from api.responses import success_response
from app.exceptions import NotFoundError
from domain.models import AppUser
from domain.schemas import CustomerCreate, CustomerCreatedResponse, SubscriptionResponse
from services.cron_service import JOBS, run_job
from services.dashboard_service import DashboardService
from services.subscription_service import SubscriptionService
from services.user_service import UserService

router = APIRouter(prefix="/admin", tags=["Admin"])
logger = logging.getLogger("tiffinmate.api.admin")


@router.get("/dashboard")
def dashboard(owner: AppUser = Depends(require_owner), db: Session = Depends(get_db)):
    """Headline numbers; today's meals come from the shared meal counter"""
    return success_response(data=DashboardService.stats(db))


@router.get("/expiring-subscriptions")
def expiring_subscriptions(
    days: int = Query(7, ge=0, le=60),
    owner: AppUser = Depends(require_owner),
    db: Session = Depends(get_db),
):
    subscriptions = SubscriptionService.expiring(db, days=days)
    return success_response(data=[SubscriptionResponse.model_validate(s) for s in subscriptions])


@router.post("/create-customer")
def create_customer_with_plan(
    body: CustomerCreate, owner: AppUser = Depends(require_owner), db: Session = Depends(get_db)
):
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


@router.get("/cron/jobs")
def list_jobs(owner: AppUser = Depends(require_owner)):
    return success_response(
        data={"available": sorted(JOBS), "scheduled": scheduler_manager.get_jobs()}
    )


@router.post("/cron/{job}")
def trigger_job(job: str, owner: AppUser = Depends(require_owner), db: Session = Depends(get_db)):
    """Run one scheduled job now"""
    if job not in JOBS:
        raise NotFoundError(f"Unknown job: {job}", details={"available": sorted(JOBS)})
    logger.info("Job %s triggered manually by %s", job, owner.user_code)
    return success_response(data=run_job(job, db=db), message=f"Job {job} completed")
