"""Access and usage decision counters.

- Access: one increment per OrgAccessGuard decision
- Usage: one increment per UsageEnforcer decision, labelled by plan/resource

Exported through GET /metrics by the app factory.
"""

from __future__ import annotations

from prometheus_client import Counter

ACCESS_DECISIONS = Counter(
    "access_decisions_total",
    "Organization access checks by outcome",
    ["outcome"],
)

USAGE_DECISIONS = Counter(
    "usage_decisions_total",
    "Usage enforcement decisions",
    ["plan", "resource", "outcome"],
)

ACCESS_ALLOWED = "allowed"
ACCESS_DENIED = "access_denied"
ACCESS_INSUFFICIENT_ROLE = "insufficient_role"
ACCESS_ERROR = "error"

USAGE_RECORDED = "recorded"
USAGE_REJECTED = "rejected"
USAGE_ERROR = "error"


def record_access(outcome: str) -> None:
    ACCESS_DECISIONS.labels(outcome=outcome).inc()


def record_usage(*, plan: str, resource: str, outcome: str) -> None:
    USAGE_DECISIONS.labels(plan=plan, resource=resource, outcome=outcome).inc()
