"""
Seed demo data for Quotaflow.

Usage:
    python scripts/seed_demo_data.py

Uses DATABASE_URL from the environment / .env like the app does.

This script creates:
- An admin user and two AE users with profiles
- A commission plan for the current year with bonus rules and accelerators
- A EUR FX rate for the current year

Running it twice leaves existing rows alone.
"""

import asyncio
import logging
import os
import sys
from datetime import datetime, timezone
from decimal import Decimal

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quotaflow.db import dispose_engine, get_db_context
from quotaflow.models import (
    AEProfile,
    AEProfileStatus,
    BonusRule,
    CommissionPlan,
    FxRate,
    PerformanceAccelerator,
    User,
    UserRole,
)
from quotaflow.services.fx import upsert_fx_rate

logging.basicConfig(level=logging.INFO, format="%(levelname)s - %(message)s")
logger = logging.getLogger("seed")

YEAR = datetime.now(timezone.utc).year

DEMO_USERS = [
    {"email": "admin@example.com", "full_name": "Demo Admin", "role": UserRole.ADMIN},
    {"email": "ada@example.com", "full_name": "Ada Seller", "role": UserRole.AE,
     "annual_target": Decimal("1000000"), "start_date": datetime(YEAR - 1, 9, 1, tzinfo=timezone.utc)},
    {"email": "bo@example.com", "full_name": "Bo Ramp", "role": UserRole.AE,
     "annual_target": Decimal("800000"), "start_date": datetime(YEAR, 4, 15, tzinfo=timezone.utc),
     "payout_currency": "EUR"},
]

DEMO_BONUS_RULES = [
    {"name": "Multi-year contract", "rate_add": Decimal("0.0200"), "predicate": "multi_year"},
    {"name": "Customer testimonial", "rate_add": Decimal("0.0100"), "predicate": "testimonial",
     "attio_attribute_slug": "testimonial_commitment"},
    {"name": "Marketing case study", "rate_add": Decimal("0.0100"), "predicate": "marketing",
     "attio_attribute_slug": "marketing_commitment"},
]

DEMO_ACCELERATORS = [
    (Decimal("0"), Decimal("100"), Decimal("0.1000")),
    (Decimal("100"), Decimal("150"), Decimal("0.1500")),
    (Decimal("150"), None, Decimal("0.2000")),
]


async def get_or_create_plan(db: AsyncSession) -> CommissionPlan:
    """Create the current-year demo plan."""
    name = f"{YEAR} Standard Plan"
    plan = await db.scalar(select(CommissionPlan).where(CommissionPlan.name == name))
    if plan:
        logger.info(f"Plan exists: {name}")
        return plan

    plan = CommissionPlan(
        name=name,
        base_commission_rate=Decimal("0.1000"),
        effective_start_date=datetime(YEAR, 1, 1, tzinfo=timezone.utc),
        effective_end_date=datetime(YEAR, 12, 31, 23, 59, 59, tzinfo=timezone.utc),
        bonus_rules=[BonusRule(enabled=True, **rule) for rule in DEMO_BONUS_RULES],
        performance_accelerators=[
            PerformanceAccelerator(min_attainment=lo, max_attainment=hi, commission_rate=rate)
            for lo, hi, rate in DEMO_ACCELERATORS
        ],
    )
    db.add(plan)
    await db.flush()
    logger.info(f"Created plan: {name} ({len(DEMO_BONUS_RULES)} bonus rules)")
    return plan


async def get_or_create_user(db: AsyncSession, data: dict, plan: CommissionPlan) -> User:
    """Create a demo user and, for AEs, their profile."""
    user = await db.scalar(select(User).where(User.email == data["email"]))
    if user:
        logger.info(f"User exists: {data['email']}")
        return user

    user = User(email=data["email"], full_name=data["full_name"], role=data["role"], is_active=True)
    db.add(user)
    await db.flush()

    if data["role"] == UserRole.AE:
        db.add(
            AEProfile(
                user_id=user.id,
                status=AEProfileStatus.ACTIVE,
                annual_target=data["annual_target"],
                start_date=data["start_date"],
                commission_plan_id=plan.id,
                payout_currency=data.get("payout_currency", "USD"),
            )
        )
    logger.info(f"Created {data['role'].value} user: {data['email']}")
    return user


async def seed() -> None:
    async with get_db_context() as db:
        plan = await get_or_create_plan(db)
        for data in DEMO_USERS:
            await get_or_create_user(db, data, plan)

        existing_rate = await db.scalar(
            select(FxRate).where(FxRate.currency_code == "EUR", FxRate.year == YEAR)
        )
        if existing_rate is None:
            await upsert_fx_rate(db, "EUR", YEAR, 0.92)

    await dispose_engine()
    logger.info("Demo data seeded. Link AEs to Attio members via POST /api/me/attio-link.")


if __name__ == "__main__":
    asyncio.run(seed())
