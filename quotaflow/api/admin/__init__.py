"""Admin API router aggregation."""

from fastapi import APIRouter, Depends

from quotaflow.api.admin.attio import router as attio_router
from quotaflow.api.admin.audit import router as audit_router
from quotaflow.api.admin.fx_rates import router as fx_rates_router
from quotaflow.api.admin.reporting import router as reporting_router
from quotaflow.api.dependencies import require_admin_token

admin_router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(require_admin_token)],
)

admin_router.include_router(attio_router)
admin_router.include_router(reporting_router)
admin_router.include_router(fx_rates_router)
admin_router.include_router(audit_router)

__all__ = ["admin_router"]
