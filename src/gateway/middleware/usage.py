"""Usage enforcement stage: plan-aware quota check + atomic record.

- Runs after OrgAccessGuard; reads request.state.organization_id
- Standalone: falls back to path params / JSON body for organization_id
- Over the ceiling -> 402 with {plan, limit, current}, nothing recorded
- Lookup/upsert failure -> 500 USAGE_ENFORCEMENT_FAILED, handler never runs

Constructed once per route:

    guard = OrgAccessGuard(tenancy=store)
    enforcer = UsageEnforcer(meter=meter, resource=Resource.TASKS)

    @router.post("/orgs/{organization_id}/tasks", dependencies=metered(guard, enforcer))
"""

# No postponed annotations here: FastAPI reads the signature of
# UsageEnforcer.__call__ from an instance, which has no __globals__.

import logging
from collections.abc import Callable
from typing import Any

from fastapi import Depends, Request

from src.gateway.metrics.metering import (
    USAGE_ERROR,
    USAGE_RECORDED,
    USAGE_REJECTED,
    record_usage,
)
from src.gateway.middleware.org_access import require_identity, resolve_organization_id
from src.infra.billing.meter import UsageMeter, UsageReceipt
from src.infra.billing.plans import Resource
from src.shared.errors import (
    MissingOrganizationError,
    UsageEnforcementFailedError,
    UsageLimitExceededError,
)

logger = logging.getLogger(__name__)


async def consume_usage(
    meter: UsageMeter,
    *,
    organization_id: str,
    user_id: str,
    resource: Resource,
    count: int,
) -> UsageReceipt:
    """Consume through ``meter`` and count the decision in metrics."""
    try:
        receipt = await meter.consume(
            organization_id=organization_id,
            user_id=user_id,
            resource=resource,
            count=count,
        )
    except UsageLimitExceededError as exc:
        record_usage(plan=exc.plan, resource=resource.value, outcome=USAGE_REJECTED)
        raise
    except UsageEnforcementFailedError:
        record_usage(plan="unknown", resource=resource.value, outcome=USAGE_ERROR)
        raise

    record_usage(plan=receipt.plan.value, resource=resource.value, outcome=USAGE_RECORDED)
    return receipt


class UsageEnforcer:
    """Per-route quota stage for one resource and a fixed increment."""

    def __init__(self, *, meter: UsageMeter, resource: Resource | str, count: int = 1) -> None:
        if not isinstance(resource, Resource):
            resource = Resource(resource)
        if count < 1:
            msg = f"count must be >= 1, got {count}"
            raise ValueError(msg)
        self._meter = meter
        self._resource = resource
        self._count = count

    @property
    def resource(self) -> Resource:
        return self._resource

    @property
    def count(self) -> int:
        return self._count

    async def __call__(self, request: Request) -> UsageReceipt:
        """FastAPI dependency entry point.

        Returns the UsageReceipt and also stores it on request.state.usage.
        """
        identity = require_identity(request)
        organization_id: str | None = getattr(request.state, "organization_id", None)
        if organization_id is None:
            organization_id = await resolve_organization_id(request)
        if organization_id is None:
            raise MissingOrganizationError()

        receipt = await consume_usage(
            self._meter,
            organization_id=organization_id,
            user_id=identity.user_id,
            resource=self._resource,
            count=self._count,
        )
        request.state.usage = receipt
        return receipt


def metered(*stages: Callable[..., Any]) -> list[Any]:
    """Route ``dependencies=`` list running ``stages`` in the given order.

    FastAPI resolves a route's dependency list sequentially, so
    metered(guard, enforcer) always checks access before touching usage.
    """
    return [Depends(stage) for stage in stages]
