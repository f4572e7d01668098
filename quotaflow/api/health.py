"""
Health check endpoints.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from quotaflow.config import settings
from quotaflow.db import get_db
from quotaflow.scheduler.jobs import scheduler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health_check():
    """Returns 200 if the service is running."""
    return {"status": "healthy", "service": "quotaflow"}


@router.get("/ready")
async def readiness_check(db: AsyncSession = Depends(get_db)):
    """
    Readiness check.

    Reports database connectivity, whether Attio credentials are present
    and whether the sync scheduler is running.
    """
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning(f"Readiness check: database error: {e}")
        return {
            "status": "not_ready",
            "database": f"error: {e}",
        }

    return {
        "status": "ready",
        "database": "connected",
        "attio_configured": bool(settings.attio_api_key),
        "scheduler_running": scheduler.running,
    }


@router.get("/live")
async def liveness_check():
    """Liveness check."""
    return {"status": "alive"}
