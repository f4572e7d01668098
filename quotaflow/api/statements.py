"""
Commission statement endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from quotaflow.api.dependencies import require_api_token
from quotaflow.db import get_db
from quotaflow.schemas.commission import CommissionSummary
from quotaflow.services.quarters import VIEWS
from quotaflow.services.statements import build_commission_summary

router = APIRouter(prefix="/statements", tags=["Statements"], dependencies=[Depends(require_api_token)])


@router.get("/{ae_profile_id}", response_model=CommissionSummary)
async def get_statement(
    ae_profile_id: int,
    view: str = Query("qtd"),
    db: AsyncSession = Depends(get_db),
):
    """Commission summary for one AE over a reporting view."""
    if view not in VIEWS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"view must be one of {', '.join(VIEWS)}",
        )

    summary = await build_commission_summary(db, ae_profile_id, view)
    if summary is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="AE profile not found")
    return summary
