"""Health check and utility routes"""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session
import logging

from api.dependencies import get_db
from api.responses import HealthResponse
from app.config import settings

router = APIRouter(tags=["Health"])
logger = logging.getLogger("tiffinmate.api.health")


@router.get("/health-check", response_model=HealthResponse)
def health_check(db: Session = Depends(get_db)):
    """Basic health check endpoint; reports a database that does not answer"""
    try:
        db.execute(text("SELECT 1"))
        state = "ok"
    except Exception:
        logger.exception("Database health check failed")
        state = "degraded"
    return HealthResponse(status=state, service=settings.app_name, version=settings.app_version)
