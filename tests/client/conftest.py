"""Shared fixtures for client-side state tests."""
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from client.gateway import BookmarkGateway
from core.identity import Identity, IdentityProvider
from schemas.bookmark import BookmarkResponse

BASE_TIME = datetime(2026, 10, 19, 9, 30, tzinfo=UTC)


def make_bookmark(
    bookmark_id: int,
    *,
    url: str | None = None,
    title: str | None = None,
    description: str | None = None,
    tags: list[str] | None = None,
    minutes: int | None = None,
) -> BookmarkResponse:
    """
    Build a bookmark record.

    `minutes` offsets created_at from a fixed base time; by default a higher
    id is created later.
    """
    url = url or f"https://example.com/{bookmark_id}"
    created_at = BASE_TIME + timedelta(minutes=bookmark_id if minutes is None else minutes)
    return BookmarkResponse(
        id=bookmark_id,
        url=url,
        title=title or url,
        description=description,
        tags=tags or [],
        created_at=created_at,
        updated_at=created_at,
    )


@pytest.fixture
def bookmark_factory() -> Callable[..., BookmarkResponse]:
    """Factory for bookmark records."""
    return make_bookmark


@pytest.fixture
def mock_gateway() -> AsyncMock:
    """Gateway double whose calls succeed with empty results by default."""
    gateway = AsyncMock(spec=BookmarkGateway)
    gateway.list_bookmarks.return_value = []
    gateway.list_distinct_tags.return_value = []
    return gateway


@pytest.fixture
def mock_identity_provider() -> MagicMock:
    """Identity provider double that accepts every token."""
    provider = MagicMock(spec=IdentityProvider)
    provider.get_user.return_value = Identity(subject="auth0|user-1", email="user@example.com")
    provider.authorization_url.return_value = "https://tenant.auth0.com/authorize?state=x"
    provider.logout_url.return_value = "https://tenant.auth0.com/v2/logout"
    return provider
