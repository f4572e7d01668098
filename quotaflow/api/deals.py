"""
Deal endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quotaflow.api.dependencies import require_actor_user_id, require_api_token
from quotaflow.db import get_db
from quotaflow.models import AEProfile, Deal, User, UserRole
from quotaflow.schemas.commission import BonusToggleRequest
from quotaflow.services.bonus_toggle import (
    BonusRuleNotFoundError,
    DealNotFoundError,
    set_deal_bonus_rule,
)

router = APIRouter(prefix="/deals", tags=["Deals"], dependencies=[Depends(require_api_token)])


@router.put("/{deal_id}/bonus-rules")
async def toggle_bonus_rule(
    deal_id: int,
    data: BonusToggleRequest,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(require_actor_user_id),
):
    """
    Enable or disable a bonus rule on a deal.

    Admins may edit any deal; AEs only their own.
    """
    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    deal = await db.get(Deal, deal_id)
    if deal is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Deal not found")

    if user.role != UserRole.ADMIN:
        own_profile_id = await db.scalar(select(AEProfile.id).where(AEProfile.user_id == user.id))
        if own_profile_id is None or own_profile_id != deal.ae_profile_id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")

    try:
        deal = await set_deal_bonus_rule(db, deal_id, data.bonus_rule_id, data.enabled, user.id)
    except (DealNotFoundError, BonusRuleNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return {"deal": {"id": deal.id, "applied_bonus_rule_ids": deal.applied_bonus_rule_ids}}
