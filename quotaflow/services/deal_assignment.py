"""
Deal ownership reconciliation.

Deal.attio_owner_workspace_member_id -> AEProfile.attio_workspace_member_id
-> Deal.ae_profile_id. Runs after every sync and every member link.
"""

import logging
from typing import Optional

from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from quotaflow.models import AEProfile, AEProfileStatus, Deal
from quotaflow.schemas.attio import ReconcileResult

logger = logging.getLogger(__name__)


async def build_member_profile_map(
    db: AsyncSession,
    only_member_id: Optional[str] = None,
) -> dict[str, int]:
    """Map Attio member id -> active AE profile id."""
    query = select(AEProfile.id, AEProfile.attio_workspace_member_id).where(
        AEProfile.status == AEProfileStatus.ACTIVE,
    )
    if only_member_id:
        query = query.where(AEProfile.attio_workspace_member_id == only_member_id)
    else:
        query = query.where(AEProfile.attio_workspace_member_id.is_not(None))

    result = await db.execute(query)
    return {member_id: profile_id for profile_id, member_id in result.all() if member_id}


async def reconcile_deals_to_aes(
    db: AsyncSession,
    only_member_id: Optional[str] = None,
) -> ReconcileResult:
    """
    Assign deals to AE profiles based on the Attio owner.

    Only deals whose ae_profile_id differs from the mapped profile are
    touched, so repeated runs are no-ops.

    Args:
        db: Database session
        only_member_id: Limit to one Attio member (after a link event)

    Returns:
        ReconcileResult with the number of members mapped and deals updated
    """
    await db.flush()
    mapping = await build_member_profile_map(db, only_member_id)

    deals_updated = 0
    for member_id, profile_id in mapping.items():
        result = await db.execute(
            update(Deal)
            .where(
                and_(
                    Deal.attio_owner_workspace_member_id == member_id,
                    or_(Deal.ae_profile_id.is_(None), Deal.ae_profile_id != profile_id),
                )
            )
            .values(ae_profile_id=profile_id)
            .execution_options(synchronize_session="evaluate")
        )
        deals_updated += result.rowcount or 0

    if deals_updated:
        logger.info(f"Reassigned {deals_updated} deals across {len(mapping)} Attio members")

    return ReconcileResult(member_ids_mapped=len(mapping), deals_updated=deals_updated)
