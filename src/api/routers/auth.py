"""
Sign-in and sign-out endpoints for the redirect-based OAuth flow.

The provider redirects back to /auth/callback with a one-time code. A failed
exchange never creates a partial session: the user is sent back to the
landing page with an `error` query parameter that the page shows as a banner.
"""
import logging
import secrets
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import RedirectResponse
from pydantic import BaseModel

from api.dependencies import get_identity_provider, get_settings
from core.auth import SESSION_COOKIE_NAME
from core.config import Settings
from core.identity import IdentityProvider, IdentityProviderError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

STATE_COOKIE_NAME = "oauth_state"

AUTH_FAILED_MESSAGE = "Authentication failed. Please try again."
AUTH_ERROR_MESSAGE = "An error occurred during sign in. Please try again."
INVALID_REQUEST_MESSAGE = "Invalid authentication request."


class LogoutResponse(BaseModel):
    """Where to send the user agent to end the provider-side session."""

    logout_url: str


def _landing_redirect(settings: Settings, error: str | None = None) -> RedirectResponse:
    url = f"{settings.frontend_url.rstrip('/')}/"
    if error:
        url = f"{url}?{urlencode({'error': error})}"
    return RedirectResponse(url, status_code=303)


@router.get("/login")
async def login(
    settings: Settings = Depends(get_settings),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> RedirectResponse:
    """Redirect the user agent to the identity provider's sign-in page."""
    state = secrets.token_urlsafe(24)
    response = RedirectResponse(
        provider.authorization_url(settings.oauth_redirect_uri, state),
        status_code=307,
    )
    response.set_cookie(
        STATE_COOKIE_NAME,
        state,
        max_age=600,
        httponly=True,
        samesite="lax",
        secure=settings.api_url.startswith("https://"),
    )
    return response


@router.get("/callback")
async def callback(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    settings: Settings = Depends(get_settings),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> RedirectResponse:
    """Exchange the one-time code for a session and return to the landing page."""
    if not code:
        return _landing_redirect(settings, INVALID_REQUEST_MESSAGE)

    expected_state = request.cookies.get(STATE_COOKIE_NAME)
    if not expected_state or state != expected_state:
        logger.warning("OAuth callback state mismatch")
        return _landing_redirect(settings, AUTH_FAILED_MESSAGE)

    try:
        tokens = await provider.exchange_code(code, settings.oauth_redirect_uri)
    except IdentityProviderError as e:
        logger.warning("OAuth session exchange error: %s", e)
        return _landing_redirect(settings, AUTH_FAILED_MESSAGE)
    except Exception:
        logger.exception("OAuth callback error")
        return _landing_redirect(settings, AUTH_ERROR_MESSAGE)

    response = _landing_redirect(settings)
    response.set_cookie(
        SESSION_COOKIE_NAME,
        tokens.access_token,
        max_age=tokens.expires_in,
        httponly=True,
        samesite="lax",
        secure=settings.api_url.startswith("https://"),
    )
    response.delete_cookie(STATE_COOKIE_NAME)
    return response


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    response: Response,
    settings: Settings = Depends(get_settings),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> LogoutResponse:
    """Clear the session cookie and return the provider logout URL."""
    response.delete_cookie(SESSION_COOKIE_NAME)
    return LogoutResponse(
        logout_url=provider.logout_url(f"{settings.frontend_url.rstrip('/')}/"),
    )
