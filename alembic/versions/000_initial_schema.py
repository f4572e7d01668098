"""Initial database schema

Revision ID: 000_initial_schema
Revises:
Create Date: 2026-10-18

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "000_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Create all tables."""

    # Users
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(200), nullable=True),
        sa.Column("role", sa.Enum("admin", "ae", name="userrole"), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # Attio workspace member cache (email intentionally not unique)
    op.create_table(
        "attio_workspace_members",
        sa.Column("id", sa.String(100), primary_key=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("full_name", sa.String(200), nullable=True),
        sa.Column("status", sa.String(50), nullable=True),
        sa.Column("raw_attio_payload", sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_attio_workspace_members_email", "attio_workspace_members", ["email"])

    # Commission plans
    op.create_table(
        "commission_plans",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("base_commission_rate", sa.Numeric(6, 4), nullable=False),
        sa.Column("effective_start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("effective_end_date", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "bonus_rules",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "commission_plan_id",
            sa.Integer(),
            sa.ForeignKey("commission_plans.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("rate_add", sa.Numeric(6, 4), nullable=False),
        sa.Column("enabled", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("effective_start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("effective_end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("attio_attribute_slug", sa.String(100), nullable=True),
        sa.Column("predicate", sa.String(50), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_bonus_rules_commission_plan_id", "bonus_rules", ["commission_plan_id"])

    op.create_table(
        "performance_accelerators",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "commission_plan_id",
            sa.Integer(),
            sa.ForeignKey("commission_plans.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("min_attainment", sa.Numeric(7, 2), nullable=False),
        sa.Column("max_attainment", sa.Numeric(7, 2), nullable=True),
        sa.Column("commission_rate", sa.Numeric(6, 4), nullable=False),
        *_timestamps(),
    )
    op.create_index(
        "ix_performance_accelerators_commission_plan_id",
        "performance_accelerators",
        ["commission_plan_id"],
    )

    op.create_table(
        "fx_rates",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("currency_code", sa.String(3), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("rate", sa.Numeric(14, 6), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("currency_code", "year", name="uq_fx_rates_currency_year"),
    )
    op.create_index("ix_fx_rates_year", "fx_rates", ["year"])

    # AE profiles
    op.create_table(
        "ae_profiles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("status", sa.Enum("active", "inactive", name="aeprofilestatus"), nullable=False),
        sa.Column("annual_target", sa.Numeric(14, 2), nullable=True),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "commission_plan_id",
            sa.Integer(),
            sa.ForeignKey("commission_plans.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("payout_currency", sa.String(3), server_default="USD", nullable=False),
        sa.Column(
            "attio_workspace_member_id",
            sa.String(100),
            sa.ForeignKey("attio_workspace_members.id"),
            nullable=True,
            unique=True,
        ),
        *_timestamps(),
    )
    op.create_index("ix_ae_profiles_status", "ae_profiles", ["status"])

    # Deals
    op.create_table(
        "deals",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("attio_record_id", sa.String(100), nullable=False),
        sa.Column("deal_name", sa.String(500), nullable=False),
        sa.Column("account_name", sa.String(500), nullable=True),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("commissionable_amount", sa.Numeric(14, 2), nullable=True),
        sa.Column("close_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(100), nullable=False),
        sa.Column("term_length_months", sa.Integer(), nullable=True),
        sa.Column("is_multi_year", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("has_testimonial_commitment", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("has_marketing_commitment", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column(
            "ae_profile_id",
            sa.Integer(),
            sa.ForeignKey("ae_profiles.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("attio_owner_workspace_member_id", sa.String(100), nullable=True),
        sa.Column("applied_bonus_rule_ids", sa.JSON(), nullable=False),
        sa.Column("rev_ops_approved", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("raw_attio_payload", sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_deals_attio_record_id", "deals", ["attio_record_id"], unique=True)
    op.create_index("ix_deals_close_date", "deals", ["close_date"])
    op.create_index("ix_deals_status", "deals", ["status"])
    op.create_index("ix_deals_ae_profile_id", "deals", ["ae_profile_id"])
    op.create_index(
        "ix_deals_attio_owner_workspace_member_id",
        "deals",
        ["attio_owner_workspace_member_id"],
    )

    # Audit logs
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "actor_user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "action",
            sa.Enum(
                "ATTIO_SYNC",
                "AE_ATTIO_LINKED",
                "DEAL_BONUS_TOGGLED",
                "FX_RATE_UPDATED",
                name="auditaction",
            ),
            nullable=False,
        ),
        sa.Column("entity_type", sa.String(50), nullable=True),
        sa.Column("entity_id", sa.String(100), nullable=True),
        sa.Column("details_json", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_audit_logs_actor_user_id", "audit_logs", ["actor_user_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])


def downgrade() -> None:
    """Drop all tables in reverse order."""
    op.drop_table("audit_logs")
    op.drop_table("deals")
    op.drop_table("ae_profiles")
    op.drop_table("fx_rates")
    op.drop_table("performance_accelerators")
    op.drop_table("bonus_rules")
    op.drop_table("commission_plans")
    op.drop_table("attio_workspace_members")
    op.drop_table("users")

    # Drop enums
    op.execute("DROP TYPE IF EXISTS auditaction")
    op.execute("DROP TYPE IF EXISTS aeprofilestatus")
    op.execute("DROP TYPE IF EXISTS userrole")
