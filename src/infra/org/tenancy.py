"""Membership and organization lookup adapters implementing TenancyPort.

Both adapters are read-only from the gateway's point of view. The
in-memory store exposes add_* helpers so tests and local runs can seed it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import sqlalchemy as sa

from src.infra.models import Organization as OrganizationModel
from src.infra.models import OrgMember
from src.ports.tenancy_port import TenancyPort
from src.shared.types import Membership, Organization

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


class InMemoryTenancyStore(TenancyPort):
    """In-memory tenancy store for unit testing."""

    def __init__(self) -> None:
        self._memberships: dict[tuple[str, str], Membership] = {}
        self._organizations: dict[str, Organization] = {}

    def add_organization(
        self,
        organization_id: str,
        *,
        plan: str | None = "free",
        name: str = "",
    ) -> Organization:
        org = Organization(id=organization_id, name=name or organization_id, plan=plan)
        self._organizations[organization_id] = org
        return org

    def add_membership(
        self,
        *,
        user_id: str,
        organization_id: str,
        role: str = "member",
    ) -> Membership:
        """Add or replace the (user, org) membership. At most one per pair."""
        membership = Membership(user_id=user_id, organization_id=organization_id, role=role)
        self._memberships[(user_id, organization_id)] = membership
        return membership

    async def get_membership(
        self,
        user_id: str,
        organization_id: str,
    ) -> Membership | None:
        return self._memberships.get((user_id, organization_id))

    async def get_organization(self, organization_id: str) -> Organization | None:
        return self._organizations.get(organization_id)


class PgTenancyStore(TenancyPort):
    """PostgreSQL-backed tenancy lookups (org_members, organizations)."""

    def __init__(self, *, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_membership(
        self,
        user_id: str,
        organization_id: str,
    ) -> Membership | None:
        stmt = sa.select(OrgMember).where(
            OrgMember.user_id == user_id,
            OrgMember.org_id == organization_id,
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            row = result.scalar_one_or_none()

        if row is None:
            return None
        return Membership(user_id=row.user_id, organization_id=row.org_id, role=row.role)

    async def get_organization(self, organization_id: str) -> Organization | None:
        stmt = sa.select(OrganizationModel).where(OrganizationModel.id == organization_id)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            row = result.scalar_one_or_none()

        if row is None:
            return None
        return Organization(id=row.id, name=row.name, plan=row.plan)
