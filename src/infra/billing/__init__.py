"""Plan limits and usage metering infrastructure."""

from .meter import UsageMeter, UsageReceipt, UsageReport, UsageSnapshot
from .periods import LEDGER_PERIOD, UsagePeriod, day_start, month_start, window_start
from .plans import (
    DEFAULT_PLAN_LIMITS,
    Plan,
    PlanLimits,
    Resource,
    freeze_limits,
    limit_for,
    resolve_plan,
    resolve_resource,
)
from .usage import InMemoryUsageStore, PgUsageStore

__all__ = [
    "DEFAULT_PLAN_LIMITS",
    "LEDGER_PERIOD",
    "InMemoryUsageStore",
    "PgUsageStore",
    "Plan",
    "PlanLimits",
    "Resource",
    "UsageMeter",
    "UsagePeriod",
    "UsageReceipt",
    "UsageReport",
    "UsageSnapshot",
    "day_start",
    "freeze_limits",
    "limit_for",
    "month_start",
    "resolve_plan",
    "resolve_resource",
    "window_start",
]
