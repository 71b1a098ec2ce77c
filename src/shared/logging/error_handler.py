"""Structured error logging for fail-closed conversions.

When a pipeline stage turns an unexpected exception into a 500
(RBAC_CHECK_FAILED, USAGE_ENFORCEMENT_FAILED), the underlying exception is
logged here with its stack, the request's trace id, and the tenant.
Credential-like and personal fields in the context are redacted.
"""

from __future__ import annotations

import logging
import traceback
from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(frozen=True)
class StructuredError:
    """Structured representation of an error for logging."""

    error_code: str
    message: str
    exception_type: str
    stack_trace: str
    context: dict[str, Any] = field(default_factory=dict)
    trace_id: str = ""
    org_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict suitable for JSON logging, with context redacted."""
        d = asdict(self)
        d["context"] = _redact_sensitive(d["context"])
        return d


_SENSITIVE_KEYS = frozenset(
    {
        "authorization",
        "token",
        "jwt",
        "secret",
        "password",
        "email",
    }
)


def _redact_sensitive(data: dict[str, Any]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, value in data.items():
        if key.lower() in _SENSITIVE_KEYS:
            result[key] = "[REDACTED]"
        elif isinstance(value, dict):
            result[key] = _redact_sensitive(value)
        else:
            result[key] = value
    return result


def create_structured_error(
    exc: BaseException,
    *,
    error_code: str = "",
    trace_id: str = "",
    org_id: str = "",
    context: dict[str, Any] | None = None,
) -> StructuredError:
    """Build a StructuredError; ``error_code`` defaults to ``exc.code`` or the type name."""
    code = error_code or getattr(exc, "code", type(exc).__name__)
    stack = traceback.format_exception(type(exc), exc, exc.__traceback__)
    return StructuredError(
        error_code=code,
        message=str(exc),
        exception_type=type(exc).__name__,
        stack_trace="".join(stack),
        context=context or {},
        trace_id=trace_id,
        org_id=org_id,
    )


def log_structured_error(
    logger: logging.Logger,
    exc: BaseException,
    *,
    error_code: str = "",
    trace_id: str = "",
    org_id: str = "",
    context: dict[str, Any] | None = None,
    level: int = logging.ERROR,
) -> StructuredError:
    """Log an exception as a structured error and return it."""
    structured = create_structured_error(
        exc,
        error_code=error_code,
        trace_id=trace_id,
        org_id=org_id,
        context=context,
    )
    logger.log(
        level,
        "%s: %s (%s)",
        structured.error_code,
        structured.message,
        structured.exception_type,
        extra={"structured_error": structured.to_dict()},
    )
    return structured
