"""UsagePort - Usage ledger interface.

The ledger holds one row per (organization_id, user_id, resource, period,
date). Implementations MUST make ``increment`` a single atomic
insert-or-increment: two concurrent calls on the same key both land.

Day-1 implementation: InMemoryUsageStore.
Real implementation: PgUsageStore (usage_records table, ON CONFLICT upsert).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from src.shared.types import UsageKey


class UsagePort(ABC):
    """Port: usage ledger aggregation and atomic increment."""

    @abstractmethod
    async def sum_usage(
        self,
        organization_id: str,
        resource: str,
        since: datetime,
    ) -> int:
        """Sum ``count`` over all users' rows for (org, resource) dated >= since."""

    @abstractmethod
    async def increment(self, key: UsageKey, count: int) -> int:
        """Create the row with ``count`` or add ``count`` to it, atomically.

        Returns:
            The row's count after the increment.
        """

    @abstractmethod
    async def usage_totals(
        self,
        organization_id: str,
        since: datetime,
    ) -> dict[str, int]:
        """Per-resource totals for an organization dated >= since."""
