"""Per-request trace id via contextvars.

The app middleware opens a trace_context() for each request, seeded from
the X-Request-ID header when the caller sends one. Fail-closed error logs
read it back through get_trace_id().
"""

from __future__ import annotations

from collections.abc import Generator  # noqa: TC003 -- used at runtime by contextmanager
from contextlib import contextmanager
from contextvars import ContextVar
from uuid import uuid4

_MAX_TRACE_ID_LEN = 128

current_trace_id: ContextVar[str] = ContextVar("current_trace_id", default="")


def get_trace_id() -> str:
    """Return the current trace id (empty string outside a request)."""
    return current_trace_id.get()


@contextmanager
def trace_context(trace_id: str | None = None) -> Generator[str, None, None]:
    """Scope a trace id to the ``with`` block, restoring the previous one on exit.

    Missing, blank, or oversized ids are replaced by a fresh uuid4 hex.
    """
    candidate = (trace_id or "").strip()
    effective_id = candidate if 0 < len(candidate) <= _MAX_TRACE_ID_LEN else uuid4().hex
    token = current_trace_id.set(effective_id)
    try:
        yield effective_id
    finally:
        current_trace_id.reset(token)
