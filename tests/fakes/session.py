"""Fake SQLAlchemy async session and session factory for testing.

Lets the PostgreSQL adapters (PgTenancyStore, PgUsageStore) run without a
database:
- session.execute() -> FakeResult with scalar_one / scalar_one_or_none / fetchall
- session.commit() counted, async context manager protocol
- session_factory() callable returning a session (or a sequence of them)
- raise_on_execute to exercise the fail-closed paths

Usage:
    session = FakeAsyncSession()
    session.set_execute_result(scalar_value=7)
    store = PgUsageStore(session_factory=FakeSessionFactory(session))
"""

from __future__ import annotations

from typing import Any

_UNSET = object()


class FakeResult:
    """Fake result from session.execute()."""

    def __init__(
        self,
        *,
        scalar_value: Any = None,
        scalar_one_or_none_value: Any = _UNSET,
        fetchall_rows: list[Any] | None = None,
    ) -> None:
        self._scalar_value = scalar_value
        self._scalar_one_or_none_value = scalar_one_or_none_value
        self._fetchall_rows = fetchall_rows or []

    def scalar_one(self) -> Any:
        return self._scalar_value

    def scalar_one_or_none(self) -> Any:
        if self._scalar_one_or_none_value is _UNSET:
            return None
        return self._scalar_one_or_none_value

    def fetchall(self) -> list[Any]:
        return list(self._fetchall_rows)


class FakeAsyncSession:
    """Records executed statements and commits; returns preset results."""

    def __init__(self, *, raise_on_execute: Exception | None = None) -> None:
        self.statements: list[Any] = []
        self.commit_count: int = 0
        self.entered: int = 0
        self.exited: int = 0
        self._raise_on_execute = raise_on_execute
        self._execute_result: FakeResult | None = None

    def set_execute_result(
        self,
        *,
        scalar_value: Any = None,
        scalar_one_or_none_value: Any = _UNSET,
        fetchall_rows: list[Any] | None = None,
    ) -> None:
        """Configure what session.execute() returns."""
        self._execute_result = FakeResult(
            scalar_value=scalar_value,
            scalar_one_or_none_value=scalar_one_or_none_value,
            fetchall_rows=fetchall_rows,
        )

    @property
    def committed(self) -> bool:
        return self.commit_count > 0

    async def execute(self, statement: Any, params: Any = None) -> FakeResult:
        self.statements.append(statement)
        if self._raise_on_execute is not None:
            raise self._raise_on_execute
        return self._execute_result or FakeResult()

    async def commit(self) -> None:
        self.commit_count += 1

    async def __aenter__(self) -> FakeAsyncSession:
        self.entered += 1
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.exited += 1


class FakeSessionFactory:
    """Fake async_sessionmaker.

    Returns the same session on every call, or successive sessions when
    built with sequence().
    """

    def __init__(self, session: FakeAsyncSession) -> None:
        self._session = session
        self._sequence: list[FakeAsyncSession] = []
        self.calls = 0

    @classmethod
    def sequence(cls, sessions: list[FakeAsyncSession]) -> FakeSessionFactory:
        factory = cls(sessions[-1])
        factory._sequence = list(sessions)
        return factory

    def __call__(self) -> FakeAsyncSession:
        self.calls += 1
        if self._sequence:
            return self._sequence.pop(0)
        return self._session


class FakeOrmRow:
    """Attribute bag standing in for an ORM instance."""

    def __init__(self, **kwargs: Any) -> None:
        for k, v in kwargs.items():
            setattr(self, k, v)
