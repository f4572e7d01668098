"""Admin Attio endpoints: manual sync and member linking."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quotaflow.api.dependencies import get_actor_user_id
from quotaflow.db import get_db
from quotaflow.models import AttioWorkspaceMember
from quotaflow.scheduler.jobs import enqueue_attio_sync
from quotaflow.schemas.attio import SyncResult, UserLinkResult
from quotaflow.services.attio_sync import run_attio_sync
from quotaflow.services.deal_assignment import reconcile_deals_to_aes
from quotaflow.services.user_linking import reconcile_users_to_attio_by_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/attio")


@router.post("/sync", response_model=SyncResult)
async def trigger_attio_sync(
    background: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    actor_user_id: Optional[int] = Depends(get_actor_user_id),
):
    """
    Run an Attio sync now.

    With ?background=true the run is queued on the scheduler and 202 is
    returned immediately.
    """
    if background:
        enqueue_attio_sync(actor_user_id)
        return JSONResponse(status_code=status.HTTP_202_ACCEPTED, content={"ok": True, "queued": True})

    return await run_attio_sync(db, actor_user_id=actor_user_id)


@router.post("/link-by-email")
async def link_profiles_by_email(db: AsyncSession = Depends(get_db)):
    """Link active AE profiles to Attio members by email, then reassign deals."""
    link_result: UserLinkResult = await reconcile_users_to_attio_by_email(db)
    reconcile = await reconcile_deals_to_aes(db)
    return {
        "ok": True,
        **link_result.model_dump(),
        "deals_assigned": reconcile.deals_updated,
    }


@router.get("/members")
async def list_workspace_members(db: AsyncSession = Depends(get_db)):
    """Cached Attio workspace members, for the linking picker."""
    result = await db.execute(
        select(AttioWorkspaceMember).order_by(AttioWorkspaceMember.full_name, AttioWorkspaceMember.id)
    )
    return {
        "members": [
            {"id": m.id, "email": m.email, "full_name": m.full_name, "status": m.status}
            for m in result.scalars().all()
        ]
    }
