"""Per renewal-year adjustment locks.

Revision ID: 20261019_0002
Revises: 20261019_0001
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import context, op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "20261019_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None


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
        "contract_adjustment_locks",
        sa.Column("lock_id", uuid_type, primary_key=True),
        sa.Column(
            "contract_id",
            uuid_type,
            sa.ForeignKey("contracts.contract_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("renewal_year", sa.Integer(), nullable=False),
        sa.Column("is_locked", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.UniqueConstraint(
            "contract_id", "renewal_year", name="uq_contract_adjustment_lock_year"
        ),
    )
    op.create_index(
        "ix_contract_adjustment_locks_contract_id",
        "contract_adjustment_locks",
        ["contract_id"],
    )


def downgrade() -> None:
    op.drop_index(
        "ix_contract_adjustment_locks_contract_id", table_name="contract_adjustment_locks"
    )
    op.drop_table("contract_adjustment_locks")
