"""Pytest fixtures for testing."""
import os

# Must be set before any app imports that trigger Settings validation.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
# Ensure tests run in dev mode (bypasses auth) regardless of local .env
os.environ["DEV_MODE"] = "true"

from collections.abc import AsyncGenerator, Generator  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from db.session import configure_engine  # noqa: E402
from models.base import Base  # noqa: E402
from services.change_feed import ChangeFeed, set_change_feed  # noqa: E402


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """
    Create a fresh in-memory SQLite database for each test.

    StaticPool keeps the single connection (and with it the database) alive
    for the lifetime of the engine.
    """
    engine = configure_engine(
        create_async_engine(
            "sqlite+aiosqlite://",
            echo=False,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        ),
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(async_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Create an async session on the test database."""
    session_factory = async_sessionmaker(
        bind=async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session


@pytest.fixture
def change_feed() -> Generator[ChangeFeed]:
    """Install a fresh change feed so published events don't leak between tests."""
    feed = ChangeFeed()
    set_change_feed(feed)
    yield feed
    set_change_feed(ChangeFeed())


@pytest.fixture
async def client(
    db_session: AsyncSession,
    change_feed: ChangeFeed,  # noqa: ARG001
) -> AsyncGenerator[AsyncClient]:
    """Create a test client with database session override."""
    # Clear the settings cache so it picks up DATABASE_URL from environment
    from core.config import get_settings

    get_settings.cache_clear()

    from api.main import app
    from db.session import get_async_session

    async def override_get_async_session() -> AsyncGenerator[AsyncSession]:
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_async_session] = override_get_async_session

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()
