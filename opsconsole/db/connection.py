"""Engine and session handling for the catalog store.

One engine per process, created on first use from ``DATABASE_URL``. SQLite
(the default) is used for local runs and tests; any async SQLAlchemy URL
works in production.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from opsconsole.config import DBConfig, get_config
from opsconsole.db.models import Base

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _is_sqlite(url: str) -> bool:
    return url.lower().startswith("sqlite")


def _engine_options(db: DBConfig) -> dict[str, Any]:
    options: dict[str, Any] = {"echo": db.echo}
    if not _is_sqlite(db.url):
        options.update(
            pool_size=db.pool_size,
            max_overflow=db.pool_max_overflow,
            pool_timeout=db.pool_timeout,
            pool_pre_ping=True,
            pool_recycle=3600,
        )
    return options


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # Off by default per connection; variants cascade with their product
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_engine() -> AsyncEngine:
    """The process-wide async engine."""
    global _engine

    if _engine is None:
        db = get_config().db
        _engine = create_async_engine(db.url, **_engine_options(db))
        if _is_sqlite(db.url):
            event.listen(_engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory

    if _session_factory is None:
        _session_factory = async_sessionmaker(get_engine(), expire_on_commit=False)

    return _session_factory


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """One unit of work against the catalog store.

    Usage:
        async with get_session() as session:
            variants = await CatalogRepository(session).list_active_variants()

    Commits when the block exits cleanly; rolls back and re-raises otherwise.
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db(drop: bool = False) -> None:
    """Create the catalog tables. Schema migrations are handled outside this tool."""
    async with get_engine().begin() as conn:
        if drop:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose the engine so the next call builds a fresh one."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
