"""
Cron-triggered endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from quotaflow.api.dependencies import require_cron_auth
from quotaflow.db import get_db
from quotaflow.services.attio_sync import run_attio_sync

router = APIRouter(prefix="/cron", tags=["Cron"], dependencies=[Depends(require_cron_auth)])


@router.get("/attio/sync")
async def cron_attio_sync(db: AsyncSession = Depends(get_db)):
    """Run an Attio sync for an external scheduler. No acting user is recorded."""
    result = await run_attio_sync(db)
    return {"ok": True, **result.model_dump(by_alias=True)}
