"""
Manual bonus rule toggling on a deal.

Edits Deal.applied_bonus_rule_ids, the allow-list the commission engine
reads. Toggling is idempotent: enabling an applied rule or disabling an
absent one changes nothing.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from quotaflow.models import AuditAction, BonusRule, Deal
from quotaflow.utils.audit import log_action

logger = logging.getLogger(__name__)


class DealNotFoundError(LookupError):
    pass


class BonusRuleNotFoundError(LookupError):
    pass


async def set_deal_bonus_rule(
    db: AsyncSession,
    deal_id: int,
    bonus_rule_id: int,
    enabled: bool,
    actor_user_id: Optional[int] = None,
) -> Deal:
    """
    Add or remove a bonus rule from a deal's allow-list.

    Raises:
        DealNotFoundError: unknown deal
        BonusRuleNotFoundError: unknown rule
    """
    deal = await db.get(Deal, deal_id)
    if deal is None:
        raise DealNotFoundError(f"Deal {deal_id} not found")
    if await db.get(BonusRule, bonus_rule_id) is None:
        raise BonusRuleNotFoundError(f"Bonus rule {bonus_rule_id} not found")

    current = list(deal.applied_bonus_rule_ids or [])
    if enabled and bonus_rule_id not in current:
        updated = current + [bonus_rule_id]
    elif not enabled and bonus_rule_id in current:
        updated = [rule_id for rule_id in current if rule_id != bonus_rule_id]
    else:
        return deal

    # Reassign so the JSON column is marked dirty
    deal.applied_bonus_rule_ids = updated
    await db.flush()

    await log_action(
        db,
        AuditAction.DEAL_BONUS_TOGGLED,
        entity_type="Deal",
        entity_id=deal.id,
        details={"bonusRuleId": bonus_rule_id, "enabled": enabled},
        actor_user_id=actor_user_id,
    )
    logger.info(f"Deal {deal.id}: bonus rule {bonus_rule_id} {'enabled' if enabled else 'disabled'}")
    return deal
