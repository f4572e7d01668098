"""
Pytest configuration and fixtures.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from quotaflow.models import (
    AEProfile,
    AEProfileStatus,
    AttioWorkspaceMember,
    Base,
    CommissionPlan,
    User,
    UserRole,
)


# Test database URL (use SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def db_engine():
    """Create test database engine."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    # Let SQLAlchemy emit BEGIN itself so SAVEPOINTs behave on SQLite
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    """Create test database session."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session


@pytest_asyncio.fixture
async def plan(db_session):
    """A 10% plan covering 2025 with no rules or tiers."""
    plan = CommissionPlan(
        name="2025 Plan",
        base_commission_rate=Decimal("0.1000"),
        effective_start_date=datetime(2025, 1, 1, tzinfo=timezone.utc),
        effective_end_date=datetime(2025, 12, 31, 23, 59, 59, tzinfo=timezone.utc),
    )
    db_session.add(plan)
    await db_session.flush()
    return plan


@pytest_asyncio.fixture
async def make_ae(db_session):
    """Factory: user + active AE profile, optionally linked to a cached Attio member."""

    async def _make(
        email: str,
        member_id: Optional[str] = None,
        plan: Optional[CommissionPlan] = None,
        **profile_fields,
    ) -> AEProfile:
        user = User(email=email, full_name=email.split("@")[0].title(), role=UserRole.AE, is_active=True)
        db_session.add(user)
        await db_session.flush()

        if member_id and await db_session.get(AttioWorkspaceMember, member_id) is None:
            db_session.add(AttioWorkspaceMember(id=member_id, email=email))
            await db_session.flush()

        profile = AEProfile(
            user_id=user.id,
            status=profile_fields.pop("status", AEProfileStatus.ACTIVE),
            attio_workspace_member_id=member_id,
            commission_plan_id=plan.id if plan else None,
            **profile_fields,
        )
        db_session.add(profile)
        await db_session.flush()
        return profile

    return _make
