"""Admin audit log endpoint."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from quotaflow.db import get_db
from quotaflow.models import AuditAction, AuditLog
from quotaflow.utils.audit import audit_entry_payload

router = APIRouter(prefix="/audit")


@router.get("")
async def list_audit_logs(
    db: AsyncSession = Depends(get_db),
    action: Optional[str] = Query(None),
    entity_type: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=100),
):
    """List audit entries, newest first."""
    query = select(AuditLog)

    if action:
        try:
            query = query.where(AuditLog.action == AuditAction(action))
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unknown action: {action}",
            )

    if entity_type:
        query = query.where(AuditLog.entity_type == entity_type)

    total = await db.scalar(select(func.count()).select_from(query.subquery()))

    query = query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
    query = query.offset((page - 1) * per_page).limit(per_page)
    result = await db.execute(query)

    return {
        "items": [
            {"id": entry.id, "createdAt": entry.created_at, **audit_entry_payload(entry)}
            for entry in result.scalars().all()
        ],
        "total": total or 0,
        "page": page,
        "per_page": per_page,
    }
