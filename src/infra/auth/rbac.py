"""Organization role hierarchy: member < admin < owner.

- 3 roles, totally ordered by rank
- "At least this privileged" checks compare ranks
- Role definitions are immutable at runtime
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique


@unique
class Role(Enum):
    """Membership roles inside an organization."""

    MEMBER = "member"
    ADMIN = "admin"
    OWNER = "owner"

    @property
    def rank(self) -> int:
        return ROLE_RANKS[self]


# Frozen ordering. Changing it requires a migration of existing memberships.
ROLE_RANKS: dict[Role, int] = {
    Role.MEMBER: 1,
    Role.ADMIN: 2,
    Role.OWNER: 3,
}


@dataclass(frozen=True)
class RoleCheckResult:
    """Result of a rank comparison."""

    allowed: bool
    role: Role | None
    required: Role


def resolve_role(role_str: str | None) -> Role | None:
    """Parse a role string into a Role enum, returning None if invalid."""
    if role_str is None:
        return None
    try:
        return Role(role_str)
    except ValueError:
        return None


def role_rank(role_str: str | None) -> int:
    """Rank of a role string; unknown roles rank 0 and satisfy nothing."""
    role = resolve_role(role_str)
    return role.rank if role is not None else 0


def check_role(*, actual: str | None, required: Role) -> RoleCheckResult:
    """Check whether ``actual`` ranks at least as high as ``required``."""
    role = resolve_role(actual)
    allowed = role is not None and role.rank >= required.rank
    return RoleCheckResult(allowed=allowed, role=role, required=required)
