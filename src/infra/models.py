"""SQLAlchemy ORM models for the Quotaguard gateway.

Maps to migration DDL in migrations/versions/:
  001_create_tenancy_tables.py      -> Organization, OrgMember
  002_create_usage_records_table.py -> UsageRecord

The gateway only reads organizations and memberships; rows are written by
the team management and billing parts of the application.
"""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 -- SQLAlchemy resolves Mapped[] annotations at runtime
from uuid import uuid4

import sqlalchemy as sa
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

_NOW = sa.text("now()")


def _new_id() -> str:
    return uuid4().hex


class Base(DeclarativeBase):
    """Declarative base for all Quotaguard ORM models."""


class Organization(Base):
    """Tenant. ``plan`` is nullable; readers treat NULL as 'free'."""

    __tablename__ = "organizations"

    id: Mapped[str] = mapped_column(sa.String(64), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    plan: Mapped[str | None] = mapped_column(
        sa.String(32),
        nullable=True,
        server_default="free",
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=_NOW,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=_NOW,
    )

    members: Mapped[list[OrgMember]] = relationship(
        "OrgMember",
        back_populates="organization",
        lazy="select",
    )


class OrgMember(Base):
    """Organization membership (user <-> org join with role)."""

    __tablename__ = "org_members"

    id: Mapped[str] = mapped_column(sa.String(64), primary_key=True, default=_new_id)
    org_id: Mapped[str] = mapped_column(
        sa.String(64),
        sa.ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    role: Mapped[str] = mapped_column(
        sa.String(32),
        nullable=False,
        server_default="member",
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=_NOW,
    )

    organization: Mapped[Organization] = relationship(
        "Organization",
        back_populates="members",
        lazy="select",
    )

    __table_args__ = (
        sa.UniqueConstraint("org_id", "user_id", name="uq_org_members_org_user"),
        sa.Index("ix_org_members_user_id", "user_id"),
    )


class UsageRecord(Base):
    """Usage ledger row: one user's count of one resource on one day.

    The composite unique key is the conflict target of the atomic upsert.
    """

    __tablename__ = "usage_records"

    id: Mapped[str] = mapped_column(sa.String(64), primary_key=True, default=_new_id)
    # No foreign key: an organization without a row still meters as free.
    org_id: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    user_id: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    resource: Mapped[str] = mapped_column(sa.String(32), nullable=False)
    period: Mapped[str] = mapped_column(
        sa.String(16),
        nullable=False,
        server_default="monthly",
    )
    date: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)
    count: Mapped[int] = mapped_column(
        sa.Integer,
        sa.CheckConstraint("count >= 0", name="ck_usage_records_count_nonneg"),
        nullable=False,
        server_default="0",
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=_NOW,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=_NOW,
    )

    __table_args__ = (
        sa.UniqueConstraint(
            "org_id",
            "user_id",
            "resource",
            "period",
            "date",
            name="uq_usage_records_key",
        ),
        sa.Index("ix_usage_records_org_resource_date", "org_id", "resource", "date"),
    )
