"""Unified error hierarchy for the Quotaguard gateway.

All domain errors inherit from QuotaguardError. Each pipeline stage raises
the subclasses below; the app factory maps every family to one HTTP status
with a uniform {error, message} envelope.
"""

from __future__ import annotations


class QuotaguardError(Exception):
    """Base error for all Quotaguard exceptions."""

    def __init__(self, message: str, code: str = "QUOTAGUARD_ERROR") -> None:
        self.code = code
        super().__init__(message)


# -- Authentication (401) --


class AuthenticationError(QuotaguardError):
    """Authentication failed (missing, invalid, expired token)."""

    def __init__(
        self,
        message: str = "Authentication failed",
        code: str = "AUTH_FAILED",
    ) -> None:
        super().__init__(message, code=code)


class MissingCredentialError(AuthenticationError):
    """No bearer token supplied."""

    def __init__(self, message: str = "No token provided") -> None:
        super().__init__(message, code="MISSING_CREDENTIAL")


class InvalidCredentialError(AuthenticationError):
    """Token malformed, expired, or signed with another secret."""

    def __init__(self, message: str = "Invalid token") -> None:
        super().__init__(message, code="INVALID_CREDENTIAL")


# -- Authorization (403) --


class AuthorizationError(QuotaguardError):
    """Authorization denied."""

    def __init__(self, message: str = "Permission denied", code: str = "AUTH_DENIED") -> None:
        super().__init__(message, code=code)


class AccessDeniedError(AuthorizationError):
    """Caller has no membership in the target organization."""

    def __init__(self, organization_id: str) -> None:
        self.organization_id = organization_id
        super().__init__(
            f"Access denied to organization {organization_id}",
            code="ACCESS_DENIED",
        )


class InsufficientRoleError(AuthorizationError):
    """Membership exists but its role ranks below the required one."""

    def __init__(self, required_role: str, actual_role: str) -> None:
        self.required_role = required_role
        self.actual_role = actual_role
        super().__init__(
            f"Role '{required_role}' required, caller has '{actual_role}'",
            code="INSUFFICIENT_ROLE",
        )


# -- Request validation (400) --


class ValidationError(QuotaguardError):
    """Input validation failed."""

    def __init__(self, message: str, field: str = "", code: str = "VALIDATION") -> None:
        self.field = field
        super().__init__(message, code=code)


class MissingOrganizationError(ValidationError):
    """No organization_id in path parameters or request body."""

    def __init__(self) -> None:
        super().__init__(
            "Missing organizationId parameter",
            field="organization_id",
            code="MISSING_ORGANIZATION",
        )


class InvalidResourceError(ValidationError):
    """Resource kind is not part of the plan limits table."""

    def __init__(self, resource: str) -> None:
        self.resource = resource
        super().__init__(
            f"Invalid resource: {resource}",
            field="resource",
            code="INVALID_RESOURCE",
        )


# -- Quota (402) --


class QuotaExceededError(QuotaguardError):
    """Usage quota exceeded."""

    def __init__(self, resource: str, limit: int, current: int, code: str = "QUOTA_EXCEEDED") -> None:
        self.resource = resource
        self.limit = limit
        self.current = current
        super().__init__(
            f"Quota exceeded for {resource}: {current}/{limit}",
            code=code,
        )


class UsageLimitExceededError(QuotaExceededError):
    """Requested increment would push the organization past its plan ceiling."""

    def __init__(self, *, plan: str, resource: str, limit: int, current: int) -> None:
        self.plan = plan
        super().__init__(resource, limit, current, code="USAGE_LIMIT_EXCEEDED")


# -- Fail-closed infrastructure errors (500) --


class RbacCheckFailedError(QuotaguardError):
    """Unexpected error during the membership/role check."""

    def __init__(self, message: str = "Failed to verify organization access") -> None:
        super().__init__(message, code="RBAC_CHECK_FAILED")


class UsageEnforcementFailedError(QuotaguardError):
    """Unexpected error during usage lookup or upsert."""

    def __init__(self, message: str = "Failed to enforce usage limits") -> None:
        super().__init__(message, code="USAGE_ENFORCEMENT_FAILED")


__all__ = [
    "AccessDeniedError",
    "AuthenticationError",
    "AuthorizationError",
    "InsufficientRoleError",
    "InvalidCredentialError",
    "InvalidResourceError",
    "MissingCredentialError",
    "MissingOrganizationError",
    "QuotaExceededError",
    "QuotaguardError",
    "RbacCheckFailedError",
    "UsageEnforcementFailedError",
    "UsageLimitExceededError",
    "ValidationError",
]
