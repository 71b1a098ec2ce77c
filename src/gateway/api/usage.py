"""Usage endpoints: per-org totals, read-only limit check, explicit record.

All routes require a membership in the target organization. Recording goes
through the same check-then-upsert as UsageEnforcer, so the plan ceiling
holds no matter which door the increment comes through.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, Request
from pydantic import AliasChoices, BaseModel, Field

from src.gateway.middleware.org_access import OrgAccessGuard, require_identity
from src.gateway.middleware.usage import consume_usage, metered
from src.infra.billing.periods import UsagePeriod
from src.infra.billing.plans import Resource, resolve_resource
from src.shared.errors import InvalidResourceError

if TYPE_CHECKING:
    from src.infra.billing.meter import UsageMeter
    from src.ports.tenancy_port import TenancyPort

logger = logging.getLogger(__name__)


# -- Request / Response models --


class UsageRequest(BaseModel):
    """Body of /usage/check and /usage/record."""

    organization_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("organization_id", "organizationId"),
    )
    resource: str
    count: int = Field(default=1, ge=1)


class UsageStatsResponse(BaseModel):
    usage: dict[str, int]
    limits: dict[str, int]
    plan: str
    period: str


class UsageCheckResponse(BaseModel):
    can_proceed: bool
    current_usage: int
    limit: int
    remaining: int
    plan: str


class UsageRecordResponse(BaseModel):
    success: bool
    # Organization-wide total for the month, and the caller's row for today.
    total: int
    today_count: int


def _resource(value: str) -> Resource:
    resource = resolve_resource(value)
    if resource is None:
        raise InvalidResourceError(value)
    return resource


def create_usage_router(*, tenancy: TenancyPort, meter: UsageMeter) -> APIRouter:
    """Create the usage router.

    Args:
        tenancy: Membership lookups for the access guard.
        meter: Shared UsageMeter (holds the plan limits table).
    """
    router = APIRouter(prefix="/api/v1/usage", tags=["usage"])
    member_guard = OrgAccessGuard(tenancy=tenancy)

    @router.get(
        "/{organization_id}",
        response_model=UsageStatsResponse,
        dependencies=metered(member_guard),
    )
    async def get_usage(
        organization_id: str,
        period: UsagePeriod = UsagePeriod.MONTHLY,
    ) -> UsageStatsResponse:
        """Per-resource totals for the period alongside the plan's limits."""
        report = await meter.report(organization_id, period)
        return UsageStatsResponse(
            usage=report.usage,
            limits=report.limits,
            plan=report.plan.value,
            period=report.period.value,
        )

    @router.post(
        "/check",
        response_model=UsageCheckResponse,
        dependencies=metered(member_guard),
    )
    async def check_usage(body: UsageRequest) -> UsageCheckResponse:
        """Would ``count`` more units fit under the ceiling? Records nothing."""
        snap = await meter.snapshot(body.organization_id, _resource(body.resource))
        return UsageCheckResponse(
            can_proceed=snap.can_consume(body.count),
            current_usage=snap.current,
            limit=snap.limit,
            remaining=snap.remaining,
            plan=snap.plan.value,
        )

    @router.post(
        "/record",
        response_model=UsageRecordResponse,
        dependencies=metered(member_guard),
    )
    async def record_usage(body: UsageRequest, request: Request) -> UsageRecordResponse:
        """Record ``count`` units for the caller, enforcing the plan ceiling."""
        identity = require_identity(request)
        receipt = await consume_usage(
            meter,
            organization_id=body.organization_id,
            user_id=identity.user_id,
            resource=_resource(body.resource),
            count=body.count,
        )
        return UsageRecordResponse(
            success=True, total=receipt.total, today_count=receipt.row_count
        )

    return router
