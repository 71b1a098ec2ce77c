"""Root conftest - shared fixtures for all test layers.

Markers:
    @pytest.mark.unit        - No external deps
    @pytest.mark.smoke       - Fast subset
    @pytest.mark.integration - Full app wiring through the HTTP stack
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from src.gateway.middleware.auth import encode_token
from src.infra.billing.meter import UsageMeter
from src.infra.billing.usage import InMemoryUsageStore
from src.infra.org.tenancy import InMemoryTenancyStore
from src.shared.types import Identity

JWT_SECRET = "test-secret-key-for-unit-tests-only"  # noqa: S105

# Mid-month, so "today" and "this month" windows differ.
FIXED_NOW = datetime(2024, 3, 15, 12, 30, tzinfo=UTC)


@pytest.fixture
def jwt_secret() -> str:
    return JWT_SECRET


@pytest.fixture
def sample_identity() -> Identity:
    return Identity(user_id="user-1", email="alice@example.com")


@pytest.fixture
def sample_org_id() -> str:
    return "org123"


@pytest.fixture
def tenancy(sample_identity: Identity, sample_org_id: str) -> InMemoryTenancyStore:
    """Free-plan org with the sample identity as a plain member."""
    store = InMemoryTenancyStore()
    store.add_organization(sample_org_id, plan="free", name="Acme")
    store.add_membership(user_id=sample_identity.user_id, organization_id=sample_org_id)
    return store


@pytest.fixture
def usage_store() -> InMemoryUsageStore:
    return InMemoryUsageStore()


@pytest.fixture
def clock():
    """Mutable clock: tests move time by assigning clock.now."""

    class _Clock:
        now = FIXED_NOW

        def __call__(self) -> datetime:
            return self.now

    return _Clock()


@pytest.fixture
def meter(tenancy: InMemoryTenancyStore, usage_store: InMemoryUsageStore, clock) -> UsageMeter:
    return UsageMeter(tenancy=tenancy, usage=usage_store, clock=clock)


@pytest.fixture
def auth_headers(jwt_secret: str):
    """Build an Authorization header for a user id."""

    def _make(user_id: str = "user-1", email: str = "alice@example.com") -> dict[str, str]:
        token = encode_token(user_id=user_id, email=email, secret=jwt_secret)
        return {"Authorization": f"Bearer {token}"}

    return _make
