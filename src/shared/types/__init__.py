"""Shared domain types used across layers.

These types flow through Port interfaces and must remain stable.
Identifiers are opaque strings assigned by the surrounding application.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True)
class Identity:
    """Authenticated principal decoded from a bearer token.

    Lives for one request; never persisted by the gateway.
    """

    user_id: str
    email: str


@dataclass(frozen=True)
class Membership:
    """A user's role inside one organization."""

    user_id: str
    organization_id: str
    role: str = "member"


@dataclass(frozen=True)
class Organization:
    """Tenant record. ``plan`` may be None or an unknown value."""

    id: str
    name: str = ""
    plan: str | None = None


@dataclass(frozen=True)
class UsageKey:
    """Composite key of one usage ledger row.

    (organization_id, user_id, resource, period, date) is unique in the store.
    ``date`` is the canonical start-of-day marker in UTC.
    """

    organization_id: str
    user_id: str
    resource: str
    period: str
    date: datetime
