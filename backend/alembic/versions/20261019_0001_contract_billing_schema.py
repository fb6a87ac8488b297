"""Contracts, value adjustments and monthly revenue overrides.

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import context, op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None

PLAN_TYPES = ("monthly", "semiannual", "annual")
ADJUSTMENT_TYPES = ("percentage", "fixed_value")


def _dialect_name() -> str:
    bind = op.get_bind()
    if bind is not None:
        return bind.dialect.name
    ctx = context.get_context()
    return ctx.dialect.name if ctx is not None else ""


def upgrade() -> None:
    uuid_type = sa.String(length=36)
    if _dialect_name() == "postgresql":
        uuid_type = postgresql.UUID(as_uuid=True)

    op.create_table(
        "contracts",
        sa.Column("contract_id", uuid_type, primary_key=True),
        sa.Column("contract_number", sa.String(length=60), nullable=True, unique=True),
        sa.Column("customer_name", sa.String(length=200), nullable=False),
        sa.Column("base_value", sa.Numeric(18, 6), nullable=False),
        sa.Column(
            "plan_type",
            sa.Enum(*PLAN_TYPES, name="contract_plan_type_enum", native_enum=False),
            nullable=False,
            server_default="monthly",
        ),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("trial_days", sa.Integer(), nullable=True),
        sa.Column("renewal_date", sa.Date(), nullable=True),
        sa.Column("payment_day", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.CheckConstraint("base_value >= 0", name="ck_contracts_base_value_non_negative"),
        sa.CheckConstraint(
            "trial_days IS NULL OR trial_days >= 0", name="ck_contracts_trial_days_non_negative"
        ),
        sa.CheckConstraint(
            "payment_day IS NULL OR (payment_day BETWEEN 1 AND 31)",
            name="ck_contracts_payment_day_range",
        ),
    )

    op.create_table(
        "contract_adjustments",
        sa.Column("adjustment_id", uuid_type, primary_key=True),
        sa.Column(
            "contract_id",
            uuid_type,
            sa.ForeignKey("contracts.contract_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "adjustment_type",
            sa.Enum(*ADJUSTMENT_TYPES, name="contract_adjustment_type_enum", native_enum=False),
            nullable=False,
        ),
        sa.Column("adjustment_value", sa.Numeric(18, 6), nullable=False),
        sa.Column("previous_value", sa.Numeric(18, 6), nullable=False),
        sa.Column("new_value", sa.Numeric(18, 6), nullable=False),
        sa.Column("effective_date", sa.Date(), nullable=False),
        sa.Column("renewal_date_used", sa.Date(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_contract_adjustments_contract_id", "contract_adjustments", ["contract_id"]
    )
    op.create_index(
        "ix_contract_adjustments_effective_date", "contract_adjustments", ["effective_date"]
    )

    op.create_table(
        "contract_monthly_revenue_overrides",
        sa.Column("override_id", uuid_type, primary_key=True),
        sa.Column(
            "contract_id",
            uuid_type,
            sa.ForeignKey("contracts.contract_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("value", sa.Numeric(18, 6), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.UniqueConstraint(
            "contract_id", "year", "month", name="uq_contract_revenue_override_month"
        ),
        sa.CheckConstraint(
            "month BETWEEN 1 AND 12", name="ck_contract_revenue_overrides_month_range"
        ),
        sa.CheckConstraint("value >= 0", name="ck_contract_revenue_overrides_value_non_negative"),
    )
    op.create_index(
        "ix_contract_monthly_revenue_overrides_contract_id",
        "contract_monthly_revenue_overrides",
        ["contract_id"],
    )


def downgrade() -> None:
    op.drop_index(
        "ix_contract_monthly_revenue_overrides_contract_id",
        table_name="contract_monthly_revenue_overrides",
    )
    op.drop_table("contract_monthly_revenue_overrides")
    op.drop_index("ix_contract_adjustments_effective_date", table_name="contract_adjustments")
    op.drop_index("ix_contract_adjustments_contract_id", table_name="contract_adjustments")
    op.drop_table("contract_adjustments")
    op.drop_table("contracts")
