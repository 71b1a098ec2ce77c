"""TenancyPort - Membership and organization lookup interface.

Read-only. Memberships and organizations are created by the team
management and billing parts of the surrounding application; the gateway
only looks them up.

Day-1 implementation: InMemoryTenancyStore.
Real implementation: PgTenancyStore (org_members + organizations tables).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.shared.types import Membership, Organization


class TenancyPort(ABC):
    """Port: membership and organization point lookups."""

    @abstractmethod
    async def get_membership(
        self,
        user_id: str,
        organization_id: str,
    ) -> Membership | None:
        """Look up the membership for (user_id, organization_id).

        Returns:
            The Membership, or None when the user has no access.
        """

    @abstractmethod
    async def get_organization(self, organization_id: str) -> Organization | None:
        """Look up an organization by id.

        Returns:
            The Organization, or None if it does not exist.
        """
