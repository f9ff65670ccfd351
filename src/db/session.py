"""Async SQLAlchemy session factory."""
from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from core.config import get_settings


def _unicode_lower(value: Any) -> Any:
    return value.lower() if isinstance(value, str) else value


def _register_sqlite_functions(dbapi_connection: Any, connection_record: Any) -> None:  # noqa: ARG001
    # SQLite's built-in lower() folds ASCII only; ILIKE compiles to lower() LIKE lower()
    dbapi_connection.create_function("lower", 1, _unicode_lower, deterministic=True)


def configure_engine(engine: AsyncEngine) -> AsyncEngine:
    """
    Apply per-dialect connection setup to an engine.

    On SQLite, `lower()` is replaced with Python's Unicode-aware `str.lower`
    so case-insensitive search folds "Über" and "über" together, the same
    way the client-side filter does.
    """
    if engine.dialect.name == "sqlite":
        event.listen(engine.sync_engine, "connect", _register_sqlite_functions)
    return engine


settings = get_settings()

engine = configure_engine(
    create_async_engine(
        settings.database_url,
        echo=False,
        pool_pre_ping=True,
    ),
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """
    Yield an async database session.

    Uses unit-of-work pattern: services use flush() for refreshing objects,
    commit happens once here at request end. This ensures atomic transactions
    per request - if anything fails, all changes are rolled back.

    Change events recorded by services during the request are published to the
    live feed only once the commit succeeds (see services.change_feed).
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
