"""Plan-aware usage metering: monthly ceilings per organization and resource.

- Window: first day of the current UTC month; totals span all users of the org
- current + count > limit -> UsageLimitExceededError, nothing recorded
- Otherwise one atomic upsert on (org, user, resource, "monthly", today)
- Any lookup/upsert failure -> UsageEnforcementFailedError (fail-closed)

Usage is charged on attempt: the increment commits before the business
handler runs and is not refunded if the handler later fails.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from src.infra.billing.periods import (
    LEDGER_PERIOD,
    UsagePeriod,
    day_start,
    month_start,
    utc_now,
    window_start,
)
from src.infra.billing.plans import (
    DEFAULT_PLAN_LIMITS,
    Plan,
    PlanLimits,
    Resource,
    limit_for,
    plan_row,
    resolve_plan,
)
from src.shared.errors import UsageEnforcementFailedError, UsageLimitExceededError
from src.shared.logging.error_handler import log_structured_error
from src.shared.trace_context import get_trace_id
from src.shared.types import UsageKey

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from src.ports.tenancy_port import TenancyPort
    from src.ports.usage_port import UsagePort

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UsageSnapshot:
    """Read-only view of one resource's consumption in the current window."""

    organization_id: str
    resource: Resource
    plan: Plan
    limit: int
    current: int
    window_start: datetime

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.current)

    def can_consume(self, count: int) -> bool:
        return self.current + count <= self.limit


@dataclass(frozen=True)
class UsageReceipt:
    """Receipt for a recorded increment."""

    organization_id: str
    user_id: str
    resource: Resource
    plan: Plan
    limit: int
    count: int
    total: int
    row_count: int
    recorded_at: datetime

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.total)


@dataclass(frozen=True)
class UsageReport:
    """Per-resource totals alongside the plan's ceilings."""

    organization_id: str
    plan: Plan
    period: UsagePeriod
    usage: dict[str, int]
    limits: dict[str, int]


class UsageMeter:
    """Checks and records usage against an injected plan limits table.

    Holds no mutable state of its own; all counters live in the UsagePort.
    """

    def __init__(
        self,
        *,
        tenancy: TenancyPort,
        usage: UsagePort,
        limits: PlanLimits = DEFAULT_PLAN_LIMITS,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._tenancy = tenancy
        self._usage = usage
        self._limits = limits
        self._clock = clock

    @property
    def limits(self) -> PlanLimits:
        return self._limits

    async def plan_for(self, organization_id: str) -> Plan:
        """The organization's plan; FREE if it is missing, unset, or unknown."""
        org = await self._tenancy.get_organization(organization_id)
        if org is None:
            return Plan.FREE
        return resolve_plan(org.plan, self._limits)

    async def snapshot(self, organization_id: str, resource: Resource) -> UsageSnapshot:
        """Current-month consumption of ``resource`` across the whole org.

        Raises:
            UsageEnforcementFailedError: Plan or usage lookup failed.
        """
        now = self._clock()
        try:
            return await self._snapshot(organization_id, resource, now)
        except Exception as exc:
            self._log_failure(exc, organization_id=organization_id, resource=resource)
            raise UsageEnforcementFailedError() from exc

    async def consume(
        self,
        *,
        organization_id: str,
        user_id: str,
        resource: Resource,
        count: int,
    ) -> UsageReceipt:
        """Reject or record ``count`` units of ``resource`` for ``user_id``.

        Raises:
            ValueError: count < 1.
            UsageLimitExceededError: current + count would pass the plan limit.
            UsageEnforcementFailedError: Lookup or upsert failed.
        """
        if count < 1:
            msg = f"count must be >= 1, got {count}"
            raise ValueError(msg)

        now = self._clock()
        try:
            snap = await self._snapshot(organization_id, resource, now)
        except Exception as exc:
            self._log_failure(exc, organization_id=organization_id, resource=resource)
            raise UsageEnforcementFailedError() from exc

        if not snap.can_consume(count):
            logger.info(
                "Usage limit reached: org=%s resource=%s plan=%s current=%d limit=%d requested=%d",
                organization_id,
                resource.value,
                snap.plan.value,
                snap.current,
                snap.limit,
                count,
            )
            raise UsageLimitExceededError(
                plan=snap.plan.value,
                resource=resource.value,
                limit=snap.limit,
                current=snap.current,
            )

        key = UsageKey(
            organization_id=organization_id,
            user_id=user_id,
            resource=resource.value,
            period=LEDGER_PERIOD,
            date=day_start(now),
        )
        try:
            row_count = await self._usage.increment(key, count)
        except Exception as exc:
            self._log_failure(exc, organization_id=organization_id, resource=resource)
            raise UsageEnforcementFailedError() from exc

        logger.debug(
            "Recorded usage: org=%s user=%s resource=%s +%d (%d/%d)",
            organization_id,
            user_id,
            resource.value,
            count,
            snap.current + count,
            snap.limit,
        )
        return UsageReceipt(
            organization_id=organization_id,
            user_id=user_id,
            resource=resource,
            plan=snap.plan,
            limit=snap.limit,
            count=count,
            total=snap.current + count,
            row_count=row_count,
            recorded_at=now,
        )

    async def report(
        self,
        organization_id: str,
        period: UsagePeriod = UsagePeriod.MONTHLY,
    ) -> UsageReport:
        """Totals of every resource since the start of ``period``.

        Raises:
            UsageEnforcementFailedError: Plan or usage lookup failed.
        """
        since = window_start(period, self._clock())
        try:
            plan = await self.plan_for(organization_id)
            totals = await self._usage.usage_totals(organization_id, since)
        except Exception as exc:
            self._log_failure(exc, organization_id=organization_id)
            raise UsageEnforcementFailedError("Failed to get usage") from exc

        return UsageReport(
            organization_id=organization_id,
            plan=plan,
            period=period,
            usage=totals,
            limits=plan_row(plan, self._limits),
        )

    async def _snapshot(
        self,
        organization_id: str,
        resource: Resource,
        now: datetime,
    ) -> UsageSnapshot:
        plan = await self.plan_for(organization_id)
        since = month_start(now)
        current = await self._usage.sum_usage(organization_id, resource.value, since)
        return UsageSnapshot(
            organization_id=organization_id,
            resource=resource,
            plan=plan,
            limit=limit_for(plan, resource, self._limits),
            current=current,
            window_start=since,
        )

    def _log_failure(
        self,
        exc: Exception,
        *,
        organization_id: str,
        resource: Resource | None = None,
    ) -> None:
        log_structured_error(
            logger,
            exc,
            error_code="USAGE_ENFORCEMENT_FAILED",
            trace_id=get_trace_id(),
            org_id=organization_id,
            context={"resource": resource.value if resource else ""},
        )
