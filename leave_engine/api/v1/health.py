"""
Health check endpoint
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from leave_engine.core.config import settings
from leave_engine.core.deps import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
def health_check(db: Session = Depends(get_db)):
    """
    Health check endpoint

    Returns service status and whether the database answers.
    """
    try:
        db.execute(text("SELECT 1"))
        database = "ok"
    except Exception:
        logger.warning("health check: database unavailable", exc_info=True)
        database = "unavailable"
    return {
        "status": "ok" if database == "ok" else "degraded",
        "service": "leave-engine",
        "version": settings.VERSION or "1.0.0",
        "database": database,
    }
