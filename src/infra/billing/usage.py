"""Usage ledger adapters implementing UsagePort.

- InMemoryUsageStore: dict-backed, for unit tests and local runs
- PgUsageStore: usage_records table, increment is one
  INSERT ... ON CONFLICT (key) DO UPDATE SET count = count + excluded.count

Neither adapter retries or reads-then-writes inside increment; the
conflict-target upsert is the only thing that keeps concurrent increments
on the same key from losing updates.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from uuid import uuid4

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import insert as pg_insert

from src.infra.models import UsageRecord
from src.ports.usage_port import UsagePort

if TYPE_CHECKING:
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from src.shared.types import UsageKey

logger = logging.getLogger(__name__)


class InMemoryUsageStore(UsagePort):
    """In-memory usage ledger.

    increment() never awaits between reading and writing a row, so on a
    single event loop it is atomic with respect to other coroutines.
    """

    def __init__(self) -> None:
        self._rows: dict[UsageKey, int] = {}

    async def sum_usage(
        self,
        organization_id: str,
        resource: str,
        since: datetime,
    ) -> int:
        return sum(
            count
            for key, count in self._rows.items()
            if key.organization_id == organization_id
            and key.resource == resource
            and key.date >= since
        )

    async def increment(self, key: UsageKey, count: int) -> int:
        if count < 0:
            msg = f"count must be >= 0, got {count}"
            raise ValueError(msg)
        new_count = self._rows.get(key, 0) + count
        self._rows[key] = new_count
        return new_count

    async def usage_totals(
        self,
        organization_id: str,
        since: datetime,
    ) -> dict[str, int]:
        totals: dict[str, int] = {}
        for key, count in self._rows.items():
            if key.organization_id == organization_id and key.date >= since:
                totals[key.resource] = totals.get(key.resource, 0) + count
        return totals

    def get_count(self, key: UsageKey) -> int | None:
        """Stored count of one row, or None if the row does not exist."""
        return self._rows.get(key)

    def row_count(self) -> int:
        return len(self._rows)


class PgUsageStore(UsagePort):
    """PostgreSQL-backed usage ledger using SQLAlchemy.

    All methods are async. Uses async_sessionmaker for DB access.
    """

    def __init__(self, *, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def sum_usage(
        self,
        organization_id: str,
        resource: str,
        since: datetime,
    ) -> int:
        stmt = sa.select(sa.func.coalesce(sa.func.sum(UsageRecord.count), 0)).where(
            UsageRecord.org_id == organization_id,
            UsageRecord.resource == resource,
            UsageRecord.date >= since,
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return int(result.scalar_one() or 0)

    async def increment(self, key: UsageKey, count: int) -> int:
        if count < 0:
            msg = f"count must be >= 0, got {count}"
            raise ValueError(msg)

        insert_stmt = pg_insert(UsageRecord).values(
            id=uuid4().hex,
            org_id=key.organization_id,
            user_id=key.user_id,
            resource=key.resource,
            period=key.period,
            date=key.date,
            count=count,
        )
        stmt = insert_stmt.on_conflict_do_update(
            constraint="uq_usage_records_key",
            set_={
                "count": UsageRecord.count + insert_stmt.excluded.count,
                "updated_at": sa.func.now(),
            },
        ).returning(UsageRecord.count)

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            new_count = int(result.scalar_one())
            await session.commit()

        logger.debug(
            "Usage upsert: org=%s user=%s resource=%s date=%s count=%d",
            key.organization_id,
            key.user_id,
            key.resource,
            key.date.date().isoformat(),
            new_count,
        )
        return new_count

    async def usage_totals(
        self,
        organization_id: str,
        since: datetime,
    ) -> dict[str, int]:
        stmt = (
            sa.select(UsageRecord.resource, sa.func.sum(UsageRecord.count))
            .where(
                UsageRecord.org_id == organization_id,
                UsageRecord.date >= since,
            )
            .group_by(UsageRecord.resource)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            rows = result.fetchall()
        return {resource: int(total or 0) for resource, total in rows}
