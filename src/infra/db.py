"""Async database engine and session factory.

Provides:
- create_db_engine(): AsyncEngine factory (asyncpg)
- create_session_factory(): async_sessionmaker bound to engine

Adapters open one short-lived session per operation; the usage upsert is a
single statement, so no explicit transaction spans more than one call.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)


def create_db_engine(
    url: str,
    *,
    pool_size: int = 10,
    max_overflow: int = 20,
    echo: bool = False,
) -> AsyncEngine:
    """Create an async SQLAlchemy engine.

    Args:
        url: Database URL (postgresql+asyncpg:// scheme; the usage upsert
            relies on PostgreSQL ON CONFLICT).
        pool_size: Connection pool size.
        max_overflow: Max overflow connections beyond pool_size.
        echo: Whether to log SQL statements.
    """
    return create_async_engine(
        url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        echo=echo,
        pool_pre_ping=True,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to the given engine.

    expire_on_commit=False lets adapters read returned rows after commit.
    """
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
