"""
Engine and session management.

One process-wide engine and session factory are created lazily from
settings. Tests and tools build their own with create_engine_from_url()
and make_session_factory() instead.
"""
from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from order_placement.config import get_settings
from order_placement.database.models import Base

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine_from_url(url: str, **kwargs: Any) -> AsyncEngine:
    """
    Create an async engine for a database URL.

    SQLite connections get foreign key enforcement switched on so that
    cascades and references behave as on PostgreSQL.

    Args:
        url: SQLAlchemy async URL (postgresql+asyncpg://, sqlite+aiosqlite://)
        **kwargs: Passed through to create_async_engine

    Returns:
        AsyncEngine: New engine
    """
    engine = create_async_engine(url, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory whose objects stay readable after commit."""
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


def get_engine() -> AsyncEngine:
    """Return the process-wide engine, creating it on first use."""
    global _engine
    if _engine is None:
        settings = get_settings()
        pool_options: dict[str, Any] = {}
        if not settings.is_sqlite:
            pool_options = {
                "pool_size": settings.database_pool_size,
                "max_overflow": settings.database_max_overflow,
                "pool_pre_ping": True,
                "pool_recycle": 3600,
            }
        _engine = create_engine_from_url(
            settings.database_url, echo=settings.database_echo, **pool_options
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the process-wide session factory bound to get_engine()."""
    global _session_factory
    if _session_factory is None:
        _session_factory = make_session_factory(get_engine())
    return _session_factory


async def get_db() -> AsyncGenerator[AsyncSession, Any]:
    """
    FastAPI dependency yielding a session for read-only request handling.

    Writes go through the unit of work, which owns its own session.
    """
    async with get_session_factory()() as session:
        yield session


async def init_db(engine: AsyncEngine | None = None) -> None:
    """Create any missing tables."""
    async with (engine or get_engine()).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose of the process-wide engine."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
