"""
Tests for commission summaries, the team report and the leaderboard.

All tests pin "now" to 2025-08-15 (Q3).
"""

from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest

from quotaflow.models import (
    AEProfileStatus,
    BonusRule,
    CommissionPlan,
    Deal,
    FxRate,
    PerformanceAccelerator,
)
from quotaflow.services.errors import NoActivePlanError
from quotaflow.services.leaderboard import build_leaderboard, compute_ae_leaderboard
from quotaflow.services.statements import build_commission_summary, build_team_report

NOW = datetime(2025, 8, 15, 12, 0, tzinfo=timezone.utc)


def _utc(year, month, day):
    return datetime(year, month, day, tzinfo=timezone.utc)


async def _add_deal(db, ae, record_id, amount, close_date, status="Won"):
    deal = Deal(
        attio_record_id=record_id,
        deal_name=f"Deal {record_id}",
        amount=Decimal(str(amount)),
        close_date=close_date,
        status=status,
        ae_profile_id=ae.id if ae else None,
    )
    db.add(deal)
    await db.flush()
    return deal


@pytest.fixture
def accelerated_plan(db_session, plan):
    """The 2025 plan with a 15% tier above 100% attainment."""

    async def _add():
        db_session.add_all([
            PerformanceAccelerator(
                commission_plan_id=plan.id, min_attainment=Decimal("0"),
                max_attainment=Decimal("100"), commission_rate=Decimal("0.10"),
            ),
            PerformanceAccelerator(
                commission_plan_id=plan.id, min_attainment=Decimal("100"),
                max_attainment=None, commission_rate=Decimal("0.15"),
            ),
        ])
        await db_session.flush()
        return plan

    return _add


async def _ramped_ae(db_session, make_ae, plan, **fields):
    """AE hired in Q2 2025 with a 1M target: adjusted annual target 625k."""
    fields.setdefault("annual_target", Decimal("1000000"))
    fields.setdefault("start_date", _utc(2025, 4, 10))
    return await make_ae("ada@example.com", member_id="wm_1", plan=plan, **fields)


# ── Single AE ────────────────────────────────────────────


class TestCommissionSummary:
    @pytest.mark.asyncio
    async def test_qtd_with_accelerator_and_fx(self, db_session, make_ae, accelerated_plan):
        plan = await accelerated_plan()
        ae = await _ramped_ae(db_session, make_ae, plan, payout_currency="eur")
        db_session.add(FxRate(currency_code="EUR", year=2025, rate=Decimal("0.9")))
        await _add_deal(db_session, ae, "rec_q3", 400000, _utc(2025, 7, 20))
        await _add_deal(db_session, ae, "rec_q2", 300000, _utc(2025, 5, 5))
        await _add_deal(db_session, ae, "rec_lost", 100000, _utc(2025, 7, 21), status="Lost")
        await _add_deal(db_session, ae, "rec_2024", 500000, _utc(2024, 11, 1))

        summary = await build_commission_summary(db_session, ae.id, "qtd", now=NOW)

        assert summary.plan_name == "2025 Plan"
        assert summary.base_rate == pytest.approx(0.1)
        assert (summary.statement.year, summary.statement.quarter) == (2025, 3)
        assert summary.statement.total_closed_won_amount == pytest.approx(400000)
        assert summary.statement.total_commission == pytest.approx(40000)
        assert [item.deal_name for item in summary.statement.line_items] == ["Deal rec_q3"]

        assert summary.target.target == pytest.approx(250000)
        assert summary.target.is_ramp_quarter is False
        assert summary.target.adjusted_annual_target == pytest.approx(625000)

        assert summary.ytd_closed_won_amount == pytest.approx(700000)
        assert summary.quota_attainment == pytest.approx(112.0)
        assert summary.current_tier.commission_rate == pytest.approx(0.15)
        assert summary.annual_accelerator_bonus == pytest.approx(3750)
        assert summary.total_commission_usd == pytest.approx(43750)

        assert summary.payout_currency == "EUR"
        assert summary.fx_rate == pytest.approx(0.9)
        assert summary.total_commission_payout == pytest.approx(39375)

    @pytest.mark.asyncio
    async def test_prevq_uses_previous_quarter(self, db_session, make_ae, plan):
        ae = await _ramped_ae(db_session, make_ae, plan)
        await _add_deal(db_session, ae, "rec_q3", 400000, _utc(2025, 7, 20))
        await _add_deal(db_session, ae, "rec_q2", 300000, _utc(2025, 5, 5))

        summary = await build_commission_summary(db_session, ae.id, "prevq", now=NOW)

        assert (summary.statement.year, summary.statement.quarter) == (2025, 2)
        assert summary.statement.total_commission == pytest.approx(30000)
        assert summary.target.is_ramp_quarter is True
        assert summary.target.target == pytest.approx(125000)
        assert summary.payout_currency == "USD"
        assert summary.fx_rate == 1.0

    @pytest.mark.asyncio
    async def test_below_target_has_no_accelerator(self, db_session, make_ae, accelerated_plan):
        plan = await accelerated_plan()
        ae = await _ramped_ae(db_session, make_ae, plan)
        await _add_deal(db_session, ae, "rec_1", 100000, _utc(2025, 7, 1))

        summary = await build_commission_summary(db_session, ae.id, "ytd", now=NOW)

        assert summary.quota_attainment == pytest.approx(16.0)
        assert summary.current_tier.commission_rate == pytest.approx(0.10)
        assert summary.annual_accelerator_bonus == 0.0

    @pytest.mark.asyncio
    async def test_ae_without_plan_gets_empty_statement(self, db_session, make_ae, plan):
        ae = await make_ae("ada@example.com", annual_target=Decimal("400000"))
        await _add_deal(db_session, ae, "rec_1", 50000, _utc(2025, 8, 1))

        summary = await build_commission_summary(db_session, ae.id, "qtd", now=NOW)

        assert summary.plan_name is None
        assert summary.base_rate == 0.0
        assert summary.statement.total_commission == 0.0
        assert summary.statement.line_items == []
        assert summary.ytd_closed_won_amount == pytest.approx(50000)
        assert summary.current_tier is None
        assert summary.total_commission_usd == 0.0

    @pytest.mark.asyncio
    async def test_uncovered_close_date_raises(self, db_session, make_ae):
        h1_plan = CommissionPlan(
            name="H1 only",
            base_commission_rate=Decimal("0.1"),
            effective_start_date=_utc(2025, 1, 1),
            effective_end_date=_utc(2025, 6, 30),
        )
        db_session.add(h1_plan)
        await db_session.flush()
        ae = await make_ae("ada@example.com", plan=h1_plan)
        await _add_deal(db_session, ae, "rec_1", 1000, _utc(2025, 7, 15))

        with pytest.raises(NoActivePlanError):
            await build_commission_summary(db_session, ae.id, "qtd", now=NOW)

    @pytest.mark.asyncio
    async def test_assigned_plan_wins_over_later_overlapping_plan(self, db_session, make_ae):
        ae_plan = CommissionPlan(
            name="AE plan", base_commission_rate=Decimal("0.10"), effective_start_date=_utc(2025, 1, 1),
        )
        sdr_plan = CommissionPlan(
            name="SDR plan", base_commission_rate=Decimal("0.05"), effective_start_date=_utc(2025, 3, 1),
        )
        db_session.add_all([ae_plan, sdr_plan])
        await db_session.flush()
        rule = BonusRule(commission_plan_id=ae_plan.id, name="Multi-year", rate_add=Decimal("0.02"), enabled=True)
        db_session.add(rule)
        await db_session.flush()
        ae = await make_ae("ada@example.com", plan=ae_plan)
        deal = await _add_deal(db_session, ae, "rec_1", 1000, _utc(2025, 5, 1))
        deal.applied_bonus_rule_ids = [rule.id]
        await db_session.flush()

        summary = await build_commission_summary(db_session, ae.id, "prevq", now=NOW)

        assert summary.plan_name == "AE plan"
        item = summary.statement.line_items[0]
        assert item.plan_id == ae_plan.id
        assert item.applied_base_rate == pytest.approx(0.10)
        assert [b.rule_id for b in item.applied_bonus_breakdown] == [rule.id]
        assert summary.statement.total_commission == pytest.approx(120.0)

    @pytest.mark.asyncio
    async def test_unknown_profile(self, db_session):
        assert await build_commission_summary(db_session, 12345, "qtd", now=NOW) is None

    @pytest.mark.asyncio
    async def test_unknown_view(self, db_session, make_ae):
        ae = await make_ae("ada@example.com")
        with pytest.raises(ValueError):
            await build_commission_summary(db_session, ae.id, "mtd", now=NOW)


# ── Team report ──────────────────────────────────────────


class TestTeamReport:
    @pytest.mark.asyncio
    async def test_active_aes_sorted_by_name(self, db_session, make_ae, plan):
        bob = await make_ae("bob@example.com", plan=plan)
        ada = await make_ae("ada@example.com", plan=plan)
        await make_ae("cyd@example.com", plan=plan, status=AEProfileStatus.INACTIVE)
        await _add_deal(db_session, bob, "rec_1", 20000, _utc(2025, 3, 1))

        report = await build_team_report(db_session, "ytd", now=NOW)

        assert [s.ae_profile_id for s in report] == [ada.id, bob.id]
        assert report[0].statement.total_commission == 0.0
        assert report[1].ytd_closed_won_amount == pytest.approx(20000)

    @pytest.mark.asyncio
    async def test_empty(self, db_session):
        assert await build_team_report(db_session, "ytd", now=NOW) == []


# ── Leaderboard ──────────────────────────────────────────


def _make_ae(ae_id, name):
    return SimpleNamespace(id=ae_id, full_name=name, email=f"{name.lower()}@example.com")


def _make_deal(ae_id, amount, status="Won"):
    return SimpleNamespace(ae_profile_id=ae_id, amount=amount, status=status)


class TestLeaderboard:
    def test_ranks_by_closed_won(self):
        aes = [_make_ae(1, "Ada"), _make_ae(2, "Bob"), _make_ae(3, "Cyd")]
        deals = [
            _make_deal(1, 100),
            _make_deal(2, 300),
            _make_deal(2, Decimal("50.5")),
            _make_deal(1, 1000, status="Lost"),
            _make_deal(99, 500),
        ]

        board = compute_ae_leaderboard(aes, deals)

        assert [r.ae_id for r in board.rows] == [2, 1, 3]
        assert board.rows[0].closed_won_amount == pytest.approx(350.5)
        assert board.rows[0].deal_count == 2
        assert board.rows[2].deal_count == 0
        assert board.deal_count == 3
        assert board.closed_won_amount == pytest.approx(450.5)

    def test_custom_matcher(self):
        board = compute_ae_leaderboard(
            [_make_ae(1, "Ada")],
            [_make_deal(1, 10, status="Signed")],
            closed_won_value=lambda s: s == "Signed",
        )
        assert board.deal_count == 1

    @pytest.mark.asyncio
    async def test_build_from_database(self, db_session, make_ae):
        ada = await make_ae("ada@example.com")
        bob = await make_ae("bob@example.com")
        await _add_deal(db_session, ada, "rec_1", 1000, _utc(2025, 8, 1))
        await _add_deal(db_session, bob, "rec_2", 5000, _utc(2025, 7, 2))
        await _add_deal(db_session, bob, "rec_3", 9000, _utc(2025, 6, 30))

        board = await build_leaderboard(db_session, "qtd", now=NOW)

        assert [(r.ae_id, r.closed_won_amount) for r in board.rows] == [(bob.id, 5000.0), (ada.id, 1000.0)]
        assert board.rows[0].full_name == "Bob"
