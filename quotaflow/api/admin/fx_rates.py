"""Admin FX rate endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from quotaflow.api.dependencies import get_actor_user_id
from quotaflow.db import get_db
from quotaflow.schemas.commission import FxRateResponse, FxRateUpdate
from quotaflow.services.fx import list_fx_rates, upsert_fx_rate

router = APIRouter(prefix="/fx-rates")


@router.get("")
async def get_fx_rates(
    year: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """List FX rates, newest year first."""
    rates = await list_fx_rates(db, year)
    return {"rates": [FxRateResponse.model_validate(r) for r in rates]}


@router.put("")
async def put_fx_rate(
    data: FxRateUpdate,
    db: AsyncSession = Depends(get_db),
    actor_user_id: Optional[int] = Depends(get_actor_user_id),
):
    """Create or update the rate for a currency and year."""
    try:
        fx_rate = await upsert_fx_rate(db, data.currency_code, data.year, data.rate, actor_user_id)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    return {"rate": FxRateResponse.model_validate(fx_rate)}
