"""FastAPI dependencies for injection."""
from collections.abc import AsyncGenerator

from fastapi import Depends

from core.auth import get_current_user, get_optional_user
from core.config import Settings, get_settings
from core.identity import IdentityProvider
from db.session import get_async_session
from services.change_feed import get_change_feed


async def get_identity_provider(
    settings: Settings = Depends(get_settings),
) -> AsyncGenerator[IdentityProvider]:
    """Yield an identity-provider client for the duration of a request."""
    provider = IdentityProvider.from_settings(settings)
    try:
        yield provider
    finally:
        await provider.aclose()


__all__ = [
    "get_async_session",
    "get_change_feed",
    "get_current_user",
    "get_identity_provider",
    "get_optional_user",
    "get_settings",
]
