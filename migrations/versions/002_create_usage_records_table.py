"""Create usage_records ledger table.

One row per (org_id, user_id, resource, period, date). The composite
unique constraint is the ON CONFLICT target of the usage upsert.

Revision ID: 002_usage_records
Revises: 001_tenancy
Create Date: 2026-10-12

Rollback: alembic downgrade -1
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "002_usage_records"
down_revision = "001_tenancy"
branch_labels = None
depends_on = None

_NOW = sa.text("now()")


def upgrade() -> None:
    op.create_table(
        "usage_records",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("org_id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("resource", sa.String(32), nullable=False),
        sa.Column("period", sa.String(16), nullable=False, server_default="monthly"),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("count", sa.Integer, nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=_NOW,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=_NOW,
        ),
        sa.UniqueConstraint(
            "org_id",
            "user_id",
            "resource",
            "period",
            "date",
            name="uq_usage_records_key",
        ),
        sa.CheckConstraint("count >= 0", name="ck_usage_records_count_nonneg"),
    )
    op.create_index(
        "ix_usage_records_org_resource_date",
        "usage_records",
        ["org_id", "resource", "date"],
    )


def downgrade() -> None:
    op.drop_index("ix_usage_records_org_resource_date", table_name="usage_records")
    op.drop_table("usage_records")
