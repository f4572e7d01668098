"""
Tests for manual bonus rule toggling on deals.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from quotaflow.models import AuditAction, AuditLog, BonusRule, Deal
from quotaflow.services.bonus_toggle import (
    BonusRuleNotFoundError,
    DealNotFoundError,
    set_deal_bonus_rule,
)


@pytest_asyncio.fixture
async def deal_and_rule(db_session, plan):
    rule = BonusRule(commission_plan_id=plan.id, name="Multi-year", rate_add=Decimal("0.02"), enabled=True)
    deal = Deal(
        attio_record_id="rec_1",
        deal_name="Acme",
        amount=Decimal("1000"),
        close_date=datetime(2025, 5, 1, tzinfo=timezone.utc),
        status="Won",
    )
    db_session.add_all([rule, deal])
    await db_session.flush()
    return deal, rule


async def _audit_count(db):
    return await db.scalar(select(func.count()).select_from(AuditLog))


class TestSetDealBonusRule:
    @pytest.mark.asyncio
    async def test_enable_then_disable(self, db_session, deal_and_rule):
        deal, rule = deal_and_rule

        updated = await set_deal_bonus_rule(db_session, deal.id, rule.id, True, actor_user_id=None)
        assert updated.applied_bonus_rule_ids == [rule.id]

        updated = await set_deal_bonus_rule(db_session, deal.id, rule.id, False)
        assert updated.applied_bonus_rule_ids == []

        stored = await db_session.scalar(select(Deal.applied_bonus_rule_ids).where(Deal.id == deal.id))
        assert stored == []

    @pytest.mark.asyncio
    async def test_idempotent_and_audited_once(self, db_session, deal_and_rule):
        deal, rule = deal_and_rule

        await set_deal_bonus_rule(db_session, deal.id, rule.id, True)
        await set_deal_bonus_rule(db_session, deal.id, rule.id, True)

        assert deal.applied_bonus_rule_ids == [rule.id]
        assert await _audit_count(db_session) == 1
        entry = await db_session.scalar(select(AuditLog))
        assert entry.action == AuditAction.DEAL_BONUS_TOGGLED
        assert entry.entity_id == str(deal.id)
        assert entry.details_json == {"bonusRuleId": rule.id, "enabled": True}

    @pytest.mark.asyncio
    async def test_disabling_absent_rule_is_no_op(self, db_session, deal_and_rule):
        deal, rule = deal_and_rule
        await set_deal_bonus_rule(db_session, deal.id, rule.id, False)
        assert await _audit_count(db_session) == 0

    @pytest.mark.asyncio
    async def test_unknown_deal(self, db_session, deal_and_rule):
        _, rule = deal_and_rule
        with pytest.raises(DealNotFoundError):
            await set_deal_bonus_rule(db_session, 999, rule.id, True)

    @pytest.mark.asyncio
    async def test_unknown_rule(self, db_session, deal_and_rule):
        deal, _ = deal_and_rule
        with pytest.raises(BonusRuleNotFoundError):
            await set_deal_bonus_rule(db_session, deal.id, 999, True)
