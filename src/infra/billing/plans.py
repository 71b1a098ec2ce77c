"""Plan tiers and their monthly resource ceilings.

- 3 plans x 4 resources, compiled-in (not configuration)
- Missing or unrecognized plan degrades to FREE, never to unlimited
- The table is immutable; callers inject alternatives instead of mutating it
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum, unique
from types import MappingProxyType


@unique
class Plan(Enum):
    """Billing tiers."""

    FREE = "free"
    PRO = "pro"
    ENTERPRISE = "enterprise"


@unique
class Resource(Enum):
    """Countable consumable kinds."""

    TASKS = "tasks"
    POSTS = "posts"
    EMAILS = "emails"
    LEADS = "leads"


PlanLimits = Mapping[Plan, Mapping[Resource, int]]


def freeze_limits(table: Mapping[Plan, Mapping[Resource, int]]) -> PlanLimits:
    """Return a read-only copy of a plan x resource table.

    Raises:
        ValueError: If FREE is missing (it is the fallback tier) or a limit is negative.
    """
    if Plan.FREE not in table:
        msg = "limits table must define the free plan"
        raise ValueError(msg)
    frozen: dict[Plan, Mapping[Resource, int]] = {}
    for plan, row in table.items():
        for resource, limit in row.items():
            if limit < 0:
                msg = f"limit for {plan.value}/{resource.value} must be >= 0, got {limit}"
                raise ValueError(msg)
        frozen[plan] = MappingProxyType(dict(row))
    return MappingProxyType(frozen)


DEFAULT_PLAN_LIMITS: PlanLimits = freeze_limits(
    {
        Plan.FREE: {
            Resource.TASKS: 10,
            Resource.POSTS: 5,
            Resource.EMAILS: 3,
            Resource.LEADS: 20,
        },
        Plan.PRO: {
            Resource.TASKS: 100,
            Resource.POSTS: 50,
            Resource.EMAILS: 25,
            Resource.LEADS: 200,
        },
        Plan.ENTERPRISE: {
            Resource.TASKS: 1000,
            Resource.POSTS: 500,
            Resource.EMAILS: 250,
            Resource.LEADS: 2000,
        },
    }
)


def resolve_plan(plan_str: str | None, limits: PlanLimits = DEFAULT_PLAN_LIMITS) -> Plan:
    """Parse a stored plan value, falling back to FREE.

    A plan that parses but has no row in ``limits`` also falls back to FREE.
    """
    if not plan_str:
        return Plan.FREE
    try:
        plan = Plan(plan_str)
    except ValueError:
        return Plan.FREE
    return plan if plan in limits else Plan.FREE


def resolve_resource(resource_str: str) -> Resource | None:
    """Parse a resource string into a Resource enum, returning None if invalid."""
    try:
        return Resource(resource_str)
    except ValueError:
        return None


def limit_for(plan: Plan, resource: Resource, limits: PlanLimits = DEFAULT_PLAN_LIMITS) -> int:
    """Ceiling for (plan, resource). A resource missing from the row allows nothing."""
    return limits.get(plan, limits[Plan.FREE]).get(resource, 0)


def plan_row(plan: Plan, limits: PlanLimits = DEFAULT_PLAN_LIMITS) -> dict[str, int]:
    """The plan's limits keyed by resource value, for JSON responses."""
    return {resource.value: limit for resource, limit in limits.get(plan, limits[Plan.FREE]).items()}
