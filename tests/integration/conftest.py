"""Integration test conftest.

Integration tests drive the full FastAPI stack through httpx's ASGI
transport with in-memory adapters; no live services are required.

Usage:
    pytest tests/integration/ -m integration
"""

from __future__ import annotations

import logging

import pytest


@pytest.fixture(autouse=True)
def _quiet_structured_errors(caplog: pytest.LogCaptureFixture) -> None:
    """Silence stack traces from the fail-closed RBAC path."""
    caplog.set_level(logging.CRITICAL, logger="src.gateway.middleware.org_access")
