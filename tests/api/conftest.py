"""Shared fixtures for API tests."""
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from unittest.mock import patch

from httpx import ASGITransport, AsyncClient

from api.main import app
from core.config import Settings, get_settings


def _claims_from_token(token: str, _settings: Settings) -> dict:
    """Treat the bearer token as the subject; stands in for JWKS validation."""
    return {"sub": token, "email": f"{token.split('|')[-1]}@example.com"}


@asynccontextmanager
async def create_user_client(auth0_id: str | None) -> AsyncGenerator[AsyncClient]:
    """
    Create an AsyncClient for a non-dev-mode caller.

    Overrides settings to disable dev_mode and replaces JWT validation so the
    bearer token is taken as the caller's subject. `auth0_id=None` yields an
    anonymous client that sends no credentials. The database session override
    installed by the `client` fixture stays in place, so use this inside tests
    that request `client`.
    """
    get_settings.cache_clear()

    def override_get_settings() -> Settings:
        return Settings(database_url="sqlite+aiosqlite://", dev_mode=False)

    app.dependency_overrides[get_settings] = override_get_settings
    headers = {"Authorization": f"Bearer {auth0_id}"} if auth0_id else {}

    try:
        with patch("core.auth.decode_jwt", side_effect=_claims_from_token):
            async with AsyncClient(
                transport=ASGITransport(app=app),
                base_url="http://test",
                headers=headers,
            ) as user_client:
                yield user_client
    finally:
        app.dependency_overrides.pop(get_settings, None)


# Id no bookmark is ever assigned in tests
MISSING_ID = 999999
