"""
Endpoints acting on the calling user's own AE profile.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from quotaflow.api.dependencies import require_actor_user_id, require_api_token
from quotaflow.db import get_db
from quotaflow.schemas.attio import AttioLinkRequest
from quotaflow.services.user_linking import (
    MemberAlreadyLinkedError,
    UnknownMemberError,
    link_ae_profile_to_member,
)

router = APIRouter(prefix="/me", tags=["Me"], dependencies=[Depends(require_api_token)])


@router.post("/attio-link")
async def link_attio_member(
    data: AttioLinkRequest,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(require_actor_user_id),
):
    """
    Link the caller's AE profile to an Attio workspace member.

    Creates the AE profile if the user has none, then assigns that
    member's deals to it.
    """
    member_id = data.workspace_member_id.strip()
    try:
        profile, reconcile = await link_ae_profile_to_member(db, user_id, member_id)
    except UnknownMemberError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except MemberAlreadyLinkedError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return {
        "ok": True,
        "ae_profile_id": profile.id,
        "attio_workspace_member_id": profile.attio_workspace_member_id,
        "deals_assigned": reconcile.deals_updated,
    }
