"""
HTTP tests for the API routers.

Requests go through httpx's ASGI transport with get_db overridden to the
test session. The lifespan (scheduler) does not run.
"""

from datetime import datetime, timezone
from decimal import Decimal

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import select

from quotaflow.config import settings
from quotaflow.db import get_db
from quotaflow.main import app
from quotaflow.models import AEProfile, AttioWorkspaceMember, BonusRule, Deal, User, UserRole
from quotaflow.services import attio_sync

ADMIN = {"Authorization": "Bearer admin-token"}
USER = {"Authorization": "Bearer api-token"}


@pytest_asyncio.fixture
async def client(db_session, monkeypatch):
    monkeypatch.setattr(settings, "admin_api_token", "admin-token")
    monkeypatch.setattr(settings, "api_token", "api-token")
    monkeypatch.setattr(settings, "cron_secret", "cron-secret")
    monkeypatch.setattr(settings, "attio_api_key", "")

    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def fake_attio(monkeypatch):
    """Replace the Attio client used by the sync with canned data."""

    class _Client:
        def __init__(self, config=None):
            pass

        async def list_workspace_members_raw(self):
            return [{"id": {"workspace_member_id": "wm_1"}, "email": "ada@example.com", "name": "Ada"}]

        async def list_deals_raw(self):
            return [{
                "id": {"record_id": "rec_1"},
                "values": {
                    "name": [{"value": "Acme"}],
                    "stage": [{"status": {"title": "Won"}}],
                    "value": [{"currency_value": 5000}],
                    "owner": [{"referenced_actor_type": "workspace-member", "referenced_actor_id": "wm_1"}],
                    "won_loss_date": [{"value": "2025-05-01"}],
                },
            }]

    monkeypatch.setattr(attio_sync, "AttioClient", _Client)


async def _add_deal(db, ae_profile_id=None, owner=None):
    deal = Deal(
        attio_record_id="rec_x",
        deal_name="Acme",
        amount=Decimal("1000"),
        close_date=datetime(2025, 5, 1, tzinfo=timezone.utc),
        status="Won",
        ae_profile_id=ae_profile_id,
        attio_owner_workspace_member_id=owner,
    )
    db.add(deal)
    await db.flush()
    return deal


# ── Health ───────────────────────────────────────────────


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": "quotaflow"}

    @pytest.mark.asyncio
    async def test_ready(self, client):
        response = await client.get("/api/health/ready")
        body = response.json()
        assert body["status"] == "ready"
        assert body["attio_configured"] is False
        assert body["scheduler_running"] is False

    @pytest.mark.asyncio
    async def test_live(self, client):
        response = await client.get("/api/health/live")
        assert response.json() == {"status": "alive"}


# ── Admin ────────────────────────────────────────────────


class TestAdminAuth:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer wrong"}, {"Authorization": "admin-token"}])
    async def test_rejected(self, client, headers):
        response = await client.get("/api/admin/fx-rates", headers=headers)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_unconfigured_token_rejects_everything(self, client, monkeypatch):
        monkeypatch.setattr(settings, "admin_api_token", None)
        response = await client.get("/api/admin/fx-rates", headers=ADMIN)
        assert response.status_code == 403


class TestAdminFxRates:
    @pytest.mark.asyncio
    async def test_put_then_list(self, client):
        response = await client.put(
            "/api/admin/fx-rates",
            json={"currencyCode": "eur", "year": 2025, "rate": 0.92},
            headers=ADMIN,
        )
        assert response.status_code == 200
        assert response.json()["rate"]["currency_code"] == "EUR"

        response = await client.get("/api/admin/fx-rates", params={"year": 2025}, headers=ADMIN)
        rates = response.json()["rates"]
        assert len(rates) == 1
        assert rates[0]["rate"] == pytest.approx(0.92)

    @pytest.mark.asyncio
    async def test_invalid_rate(self, client):
        response = await client.put(
            "/api/admin/fx-rates",
            json={"currencyCode": "EUR", "year": 2025, "rate": 0},
            headers=ADMIN,
        )
        assert response.status_code == 422


class TestAdminAttio:
    @pytest.mark.asyncio
    async def test_sync_without_key_is_bad_gateway(self, client):
        response = await client.post("/api/admin/attio/sync", headers=ADMIN)
        assert response.status_code == 502
        assert "ATTIO_API_KEY" in response.json()["error"]

    @pytest.mark.asyncio
    async def test_sync_returns_camel_case_counts(self, client, fake_attio, db_session):
        response = await client.post("/api/admin/attio/sync", headers=ADMIN)

        assert response.status_code == 200
        body = response.json()
        assert body["membersFetched"] == 1
        assert body["dealsUpserted"] == 1
        assert await db_session.scalar(select(Deal.attio_record_id)) == "rec_1"

    @pytest.mark.asyncio
    async def test_background_sync_is_queued(self, client, monkeypatch):
        queued = []
        monkeypatch.setattr(
            "quotaflow.api.admin.attio.enqueue_attio_sync",
            lambda actor_user_id=None: queued.append(actor_user_id),
        )

        response = await client.post(
            "/api/admin/attio/sync",
            params={"background": "true"},
            headers={**ADMIN, "X-Actor-User-Id": "7"},
        )

        assert response.status_code == 202
        assert response.json() == {"ok": True, "queued": True}
        assert queued == [7]

    @pytest.mark.asyncio
    async def test_link_by_email_and_members(self, client, db_session, make_ae):
        db_session.add(AttioWorkspaceMember(id="wm_1", email="ada@example.com", full_name="Ada"))
        await db_session.flush()
        profile = await make_ae("ada@example.com")
        await _add_deal(db_session, owner="wm_1")

        response = await client.post("/api/admin/attio/link-by-email", headers=ADMIN)
        body = response.json()
        assert body["ae_profiles_linked"] == 1
        assert body["deals_assigned"] == 1
        linked = await db_session.scalar(
            select(AEProfile.attio_workspace_member_id).where(AEProfile.id == profile.id)
        )
        assert linked == "wm_1"

        response = await client.get("/api/admin/attio/members", headers=ADMIN)
        assert response.json()["members"] == [
            {"id": "wm_1", "email": "ada@example.com", "full_name": "Ada", "status": None}
        ]


class TestAdminReporting:
    @pytest.mark.asyncio
    async def test_reporting_and_leaderboard(self, client, make_ae, plan):
        await make_ae("ada@example.com", plan=plan)

        response = await client.get("/api/admin/reporting", params={"view": "qtd"}, headers=ADMIN)
        assert response.status_code == 200
        assert len(response.json()) == 1

        response = await client.get("/api/admin/leaderboard", headers=ADMIN)
        assert response.json()["rows"][0]["full_name"] == "Ada"

    @pytest.mark.asyncio
    async def test_bad_view(self, client):
        response = await client.get("/api/admin/reporting", params={"view": "mtd"}, headers=ADMIN)
        assert response.status_code == 400


# ── Cron ─────────────────────────────────────────────────


class TestCron:
    @pytest.mark.asyncio
    async def test_forbidden_without_credentials(self, client):
        response = await client.get("/api/cron/attio/sync")
        assert response.status_code == 403

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"headers": {"x-vercel-cron": "1"}},
            {"headers": {"Authorization": "Bearer cron-secret"}},
            {"params": {"token": "cron-secret"}},
        ],
    )
    async def test_accepted_credentials(self, client, fake_attio, kwargs):
        response = await client.get("/api/cron/attio/sync", **kwargs)
        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["dealsWon"] == 1


# ── Self-service ─────────────────────────────────────────


class TestMeAttioLink:
    @pytest.mark.asyncio
    async def test_requires_actor(self, client):
        response = await client.post("/api/me/attio-link", json={"workspaceMemberId": "wm_1"}, headers=USER)
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_links_and_creates_profile(self, client, db_session):
        user = User(email="ada@example.com", role=UserRole.AE)
        db_session.add_all([user, AttioWorkspaceMember(id="wm_1", email="ada@example.com")])
        await db_session.flush()

        response = await client.post(
            "/api/me/attio-link",
            json={"workspaceMemberId": " wm_1 "},
            headers={**USER, "X-Actor-User-Id": str(user.id)},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["attio_workspace_member_id"] == "wm_1"
        assert body["deals_assigned"] == 0

    @pytest.mark.asyncio
    async def test_unknown_member(self, client, make_ae):
        profile = await make_ae("ada@example.com")
        response = await client.post(
            "/api/me/attio-link",
            json={"workspaceMemberId": "wm_nope"},
            headers={**USER, "X-Actor-User-Id": str(profile.user_id)},
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_member_taken(self, client, make_ae):
        await make_ae("ada@example.com", member_id="wm_1")
        bob = await make_ae("bob@example.com")
        response = await client.post(
            "/api/me/attio-link",
            json={"workspaceMemberId": "wm_1"},
            headers={**USER, "X-Actor-User-Id": str(bob.user_id)},
        )
        assert response.status_code == 409


# ── Deals and statements ─────────────────────────────────


class TestUserTokenGuard:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "method,path,body",
        [
            ("put", "/api/deals/1/bonus-rules", {"bonusRuleId": 1, "enabled": True}),
            ("post", "/api/me/attio-link", {"workspaceMemberId": "wm_1"}),
            ("get", "/api/statements/1", None),
        ],
    )
    async def test_spoofed_actor_without_token(self, client, db_session, method, path, body):
        admin = User(email="admin@example.com", role=UserRole.ADMIN)
        db_session.add(admin)
        await db_session.flush()

        kwargs = {"headers": {"X-Actor-User-Id": str(admin.id)}}
        if body is not None:
            kwargs["json"] = body
        response = await client.request(method.upper(), path, **kwargs)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_wrong_token(self, client, make_ae):
        profile = await make_ae("ada@example.com")
        response = await client.get(
            f"/api/statements/{profile.id}", headers={"Authorization": "Bearer wrong"},
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_token_accepted(self, client, make_ae, plan):
        profile = await make_ae("ada@example.com", plan=plan)
        response = await client.get(f"/api/statements/{profile.id}", headers=ADMIN)
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_unconfigured_token_rejects(self, client, make_ae, monkeypatch):
        monkeypatch.setattr(settings, "api_token", None)
        profile = await make_ae("ada@example.com")
        response = await client.get(f"/api/statements/{profile.id}", headers=USER)
        assert response.status_code == 403


class TestDealBonusRules:
    async def _setup(self, db_session, make_ae, plan):
        owner = await make_ae("ada@example.com", plan=plan)
        other = await make_ae("bob@example.com", plan=plan)
        admin = User(email="admin@example.com", role=UserRole.ADMIN)
        rule = BonusRule(commission_plan_id=plan.id, name="Testimonial", rate_add=Decimal("0.01"), enabled=True)
        db_session.add_all([admin, rule])
        await db_session.flush()
        deal = await _add_deal(db_session, owner.id)
        return owner, other, admin, rule, deal

    @pytest.mark.asyncio
    async def test_owner_can_toggle(self, client, db_session, make_ae, plan):
        owner, _, _, rule, deal = await self._setup(db_session, make_ae, plan)
        response = await client.put(
            f"/api/deals/{deal.id}/bonus-rules",
            json={"bonusRuleId": rule.id, "enabled": True},
            headers={**USER, "X-Actor-User-Id": str(owner.user_id)},
        )
        assert response.status_code == 200
        assert response.json() == {"deal": {"id": deal.id, "applied_bonus_rule_ids": [rule.id]}}

    @pytest.mark.asyncio
    async def test_other_ae_forbidden(self, client, db_session, make_ae, plan):
        _, other, _, rule, deal = await self._setup(db_session, make_ae, plan)
        response = await client.put(
            f"/api/deals/{deal.id}/bonus-rules",
            json={"bonusRuleId": rule.id, "enabled": True},
            headers={**USER, "X-Actor-User-Id": str(other.user_id)},
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_unknown_rule(self, client, db_session, make_ae, plan):
        _, _, admin, _, deal = await self._setup(db_session, make_ae, plan)
        response = await client.put(
            f"/api/deals/{deal.id}/bonus-rules",
            json={"bonusRuleId": 999, "enabled": True},
            headers={**USER, "X-Actor-User-Id": str(admin.id)},
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_unknown_actor(self, client):
        response = await client.put(
            "/api/deals/1/bonus-rules",
            json={"bonusRuleId": 1, "enabled": True},
            headers={**USER, "X-Actor-User-Id": "999"},
        )
        assert response.status_code == 401


class TestStatements:
    @pytest.mark.asyncio
    async def test_statement(self, client, make_ae, plan):
        profile = await make_ae("ada@example.com", plan=plan)
        response = await client.get(f"/api/statements/{profile.id}", params={"view": "ytd"}, headers=USER)
        assert response.status_code == 200
        body = response.json()
        assert body["ae_profile_id"] == profile.id
        assert body["view"] == "ytd"

    @pytest.mark.asyncio
    async def test_unknown_profile(self, client):
        response = await client.get("/api/statements/999", headers=USER)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_bad_view(self, client, make_ae):
        profile = await make_ae("ada@example.com")
        response = await client.get(f"/api/statements/{profile.id}", params={"view": "mtd"}, headers=USER)
        assert response.status_code == 400


class TestAdminAudit:
    @pytest.mark.asyncio
    async def test_lists_entries_in_external_format(self, client):
        await client.put(
            "/api/admin/fx-rates",
            json={"currencyCode": "GBP", "year": 2025, "rate": 0.8},
            headers=ADMIN,
        )

        response = await client.get("/api/admin/audit", params={"action": "FX_RATE_UPDATED"}, headers=ADMIN)

        body = response.json()
        assert body["total"] == 1
        item = body["items"][0]
        assert item["action"] == "FX_RATE_UPDATED"
        assert item["actorUserId"] is None
        assert item["entityType"] == "FxRate"
        assert item["detailsJson"] == {"currencyCode": "GBP", "year": 2025, "rate": 0.8}

    @pytest.mark.asyncio
    async def test_unknown_action(self, client):
        response = await client.get("/api/admin/audit", params={"action": "NOPE"}, headers=ADMIN)
        assert response.status_code == 400
