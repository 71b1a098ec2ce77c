"""Organization access guard: membership and minimum-role check.

- organization_id from path params; JSON body only when the path has none
- No organization_id anywhere -> MissingOrganizationError (400)
- No membership for (user, org) -> AccessDeniedError (403)
- Role ranks below required_role -> InsufficientRoleError (403)
- Lookup blows up -> RbacCheckFailedError (500), never allow-through

Constructed once per route and used as a FastAPI dependency:

    guard = OrgAccessGuard(tenancy=store, required_role=Role.ADMIN)

    @router.post("/orgs/{organization_id}/settings", dependencies=[Depends(guard)])
"""

# No postponed annotations here: FastAPI reads the signature of
# OrgAccessGuard.__call__ from an instance, which has no __globals__.

import json
import logging
from typing import Any

from fastapi import Request

from src.gateway.metrics.metering import (
    ACCESS_ALLOWED,
    ACCESS_DENIED,
    ACCESS_ERROR,
    ACCESS_INSUFFICIENT_ROLE,
    record_access,
)
from src.infra.auth.rbac import Role, check_role
from src.ports.tenancy_port import TenancyPort
from src.shared.errors import (
    AccessDeniedError,
    InsufficientRoleError,
    MissingCredentialError,
    MissingOrganizationError,
    RbacCheckFailedError,
)
from src.shared.logging.error_handler import log_structured_error
from src.shared.trace_context import get_trace_id
from src.shared.types import Identity, Membership

logger = logging.getLogger(__name__)

# snake_case for this API, camelCase for clients of the legacy backend.
_ORG_KEYS = ("organization_id", "organizationId")


def _pick_org_id(source: Any) -> str | None:
    if not hasattr(source, "get"):
        return None
    for key in _ORG_KEYS:
        value = source.get(key)
        if isinstance(value, str) and value:
            return value
    return None


async def _json_body(request: Request) -> Any:
    raw = await request.body()
    if not raw:
        return None
    try:
        return json.loads(raw)
    except (ValueError, RecursionError):
        return None


async def resolve_organization_id(request: Request) -> str | None:
    """organization_id from path params, falling back to the JSON body."""
    from_path = _pick_org_id(request.path_params)
    if from_path is not None:
        return from_path
    return _pick_org_id(await _json_body(request))


def require_identity(request: Request) -> Identity:
    """Identity attached by the JWT middleware. Fails closed if absent."""
    identity: Identity | None = getattr(request.state, "user", None)
    if identity is None:
        raise MissingCredentialError()
    return identity


class OrgAccessGuard:
    """Per-route membership/role check.

    Stateless apart from its configuration; safe to share across requests.
    """

    def __init__(self, *, tenancy: TenancyPort, required_role: Role | None = None) -> None:
        self._tenancy = tenancy
        self._required_role = required_role

    @property
    def required_role(self) -> Role | None:
        return self._required_role

    async def __call__(self, request: Request) -> str:
        """FastAPI dependency entry point.

        Sets request.state.organization_id and request.state.role for the
        stages that follow, and returns the organization_id.
        """
        identity = require_identity(request)
        organization_id = await resolve_organization_id(request)
        if organization_id is None:
            raise MissingOrganizationError()

        membership = await self.check(user_id=identity.user_id, organization_id=organization_id)

        request.state.organization_id = organization_id
        request.state.role = membership.role
        return organization_id

    async def check(self, *, user_id: str, organization_id: str) -> Membership:
        """Check membership and rank. Read-only.

        Raises:
            AccessDeniedError: No membership row.
            InsufficientRoleError: Membership rank below required_role.
            RbacCheckFailedError: The lookup itself failed.
        """
        try:
            membership = await self._tenancy.get_membership(user_id, organization_id)
        except Exception as exc:
            record_access(ACCESS_ERROR)
            log_structured_error(
                logger,
                exc,
                error_code="RBAC_CHECK_FAILED",
                trace_id=get_trace_id(),
                org_id=organization_id,
                context={"user_id": user_id},
            )
            raise RbacCheckFailedError() from exc

        if membership is None:
            record_access(ACCESS_DENIED)
            logger.info("Access denied: user=%s org=%s (no membership)", user_id, organization_id)
            raise AccessDeniedError(organization_id)

        if self._required_role is not None:
            result = check_role(actual=membership.role, required=self._required_role)
            if not result.allowed:
                record_access(ACCESS_INSUFFICIENT_ROLE)
                logger.info(
                    "Insufficient role: user=%s org=%s role=%s required=%s",
                    user_id,
                    organization_id,
                    membership.role,
                    self._required_role.value,
                )
                raise InsufficientRoleError(self._required_role.value, membership.role)

        record_access(ACCESS_ALLOWED)
        return membership
