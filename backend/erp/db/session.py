"""Async Session Factory — DB sessions for scripts and test fixtures outside FastAPI.

Invariants:
    - Same session options as DatabaseSessionManager (expire_on_commit=False)
    - SQLite URLs get a StaticPool so one in-memory database is shared by all sessions
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker,
)
from sqlalchemy.pool import StaticPool


def create_engine_for(database_url: str) -> AsyncEngine:
    """Create an async engine; in-memory SQLite shares one connection."""
    if database_url.startswith("sqlite"):
        return create_async_engine(
            database_url, echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_async_engine(database_url, echo=False)


def create_session_factory(
    engine: AsyncEngine,
) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to the given engine."""
    return async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False,
    )
