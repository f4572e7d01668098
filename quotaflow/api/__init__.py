"""API router aggregation."""

from fastapi import APIRouter

from quotaflow.api.admin import admin_router
from quotaflow.api.cron import router as cron_router
from quotaflow.api.deals import router as deals_router
from quotaflow.api.health import router as health_router
from quotaflow.api.me import router as me_router
from quotaflow.api.statements import router as statements_router

# Main API router (for /api/* endpoints)
api_router = APIRouter(prefix="/api")

api_router.include_router(health_router)
api_router.include_router(admin_router)
api_router.include_router(cron_router)
api_router.include_router(me_router)
api_router.include_router(deals_router)
api_router.include_router(statements_router)

__all__ = ["api_router"]
