"""Shared Fake adapters for testing without unittest.mock.

All Fake implementations follow the Port DI adapter pattern:
real Python classes with preset return values, no AsyncMock/MagicMock.
"""

from tests.fakes.session import (
    FakeAsyncSession,
    FakeOrmRow,
    FakeResult,
    FakeSessionFactory,
)
from tests.fakes.stores import (
    CountingTenancyStore,
    FailingTenancyStore,
    FailingUsageStore,
    YieldingUsageStore,
)

__all__ = [
    "CountingTenancyStore",
    "FailingTenancyStore",
    "FailingUsageStore",
    "FakeAsyncSession",
    "FakeOrmRow",
    "FakeResult",
    "FakeSessionFactory",
    "YieldingUsageStore",
]
