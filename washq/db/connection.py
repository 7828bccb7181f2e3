"""
Database engine and session lifecycle.

One engine per process, created lazily from settings. Sessions come from a
factory built by `make_session_factory`, which API requests, maintenance
commands and tests all share.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from washq.config import get_settings

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
AsyncSessionLocal: async_sessionmaker[AsyncSession] | None = None


def _engine_options(database_url: str) -> dict[str, Any]:
    """Pool sizing only applies to server databases."""
    settings = get_settings()
    options: dict[str, Any] = {
        "echo": settings.log_level.upper() == "DEBUG",
        "pool_pre_ping": True,
    }
    if make_url(database_url).get_backend_name() != "sqlite":
        options["pool_size"] = settings.database_pool_size
        options["max_overflow"] = settings.database_max_overflow
    return options


def get_engine() -> AsyncEngine:
    """Return the process-wide engine, creating it on first use."""
    global _engine
    if _engine is None:
        database_url = get_settings().database_url
        _engine = create_async_engine(database_url, **_engine_options(database_url))
    return _engine


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Build a session factory bound to `engine`.

    Objects stay readable after commit and nothing is flushed implicitly;
    the job orchestrator relies on both.
    """
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_db() -> None:
    """Create the session factory. Call once at process startup."""
    global AsyncSessionLocal
    AsyncSessionLocal = make_session_factory(get_engine())
    logger.info("Database connection initialized")


async def close_db() -> None:
    """Dispose of the engine. Call once at process shutdown."""
    global _engine, AsyncSessionLocal
    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    AsyncSessionLocal = None
    logger.info("Database connection closed")


@asynccontextmanager
async def get_session_context() -> AsyncGenerator[AsyncSession]:
    """
    Open a session that commits on success and rolls back on error.

    Raises:
        RuntimeError: If init_db() has not run.
    """
    if AsyncSessionLocal is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")

    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """FastAPI dependency wrapping `get_session_context`."""
    async with get_session_context() as session:
        yield session
