"""
OAuth client for the external identity provider (Auth0-style endpoints).

Used by the API's sign-in callback and by the client-side session store. The
provider handles the redirect-based sign-in; this module only builds the
authorize/logout URLs and performs the code exchange, token refresh and
userinfo lookups.
"""
import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

import httpx

from core.config import Settings

logger = logging.getLogger(__name__)


class IdentityProviderError(Exception):
    """Raised when the identity provider rejects a request or is unreachable."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


@dataclass(frozen=True)
class TokenSet:
    """Tokens returned by a successful code exchange or refresh."""

    access_token: str
    refresh_token: str | None = None
    id_token: str | None = None
    expires_in: int | None = None

    @classmethod
    def from_response(cls, payload: dict[str, Any]) -> "TokenSet":
        """Build a TokenSet from a token endpoint response body."""
        access_token = payload.get("access_token")
        if not access_token:
            raise IdentityProviderError("Token response did not include an access token")
        return cls(
            access_token=access_token,
            refresh_token=payload.get("refresh_token"),
            id_token=payload.get("id_token"),
            expires_in=payload.get("expires_in"),
        )


@dataclass(frozen=True)
class Identity:
    """The authenticated user as reported by the identity provider."""

    subject: str
    email: str | None = None
    name: str | None = None


class IdentityProvider:
    """Async client for the provider's authorize, token, userinfo and logout endpoints."""

    def __init__(
        self,
        domain: str,
        client_id: str,
        client_secret: str = "",
        audience: str = "",
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = f"https://{domain}"
        self.client_id = client_id
        self.client_secret = client_secret
        self.audience = audience
        self._client = http_client or httpx.AsyncClient()
        self._owns_client = http_client is None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        http_client: httpx.AsyncClient | None = None,
    ) -> "IdentityProvider":
        """Create a provider client from application settings."""
        return cls(
            domain=settings.auth0_domain,
            client_id=settings.auth0_client_id,
            client_secret=settings.auth0_client_secret,
            audience=settings.auth0_audience,
            http_client=http_client,
        )

    def authorization_url(self, redirect_uri: str, state: str) -> str:
        """URL the user agent is redirected to in order to sign in."""
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": redirect_uri,
            "scope": "openid profile email offline_access",
            "state": state,
        }
        if self.audience:
            params["audience"] = self.audience
        return f"{self.base_url}/authorize?{urlencode(params)}"

    def logout_url(self, return_to: str) -> str:
        """URL that ends the provider-side session and returns to `return_to`."""
        params = {"client_id": self.client_id, "returnTo": return_to}
        return f"{self.base_url}/v2/logout?{urlencode(params)}"

    async def exchange_code(self, code: str, redirect_uri: str) -> TokenSet:
        """
        Exchange a one-time authorization code for a token set.

        Raises:
            IdentityProviderError: If the provider rejects the code or is unreachable.
        """
        payload = await self._post_token({
            "grant_type": "authorization_code",
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "code": code,
            "redirect_uri": redirect_uri,
        })
        return TokenSet.from_response(payload)

    async def refresh(self, refresh_token: str) -> TokenSet:
        """
        Obtain a fresh token set using a refresh token.

        Providers may omit the refresh token from the response, in which case
        the one that was used stays valid and is carried over.
        """
        payload = await self._post_token({
            "grant_type": "refresh_token",
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "refresh_token": refresh_token,
        })
        tokens = TokenSet.from_response(payload)
        if tokens.refresh_token is None:
            tokens = TokenSet(
                access_token=tokens.access_token,
                refresh_token=refresh_token,
                id_token=tokens.id_token,
                expires_in=tokens.expires_in,
            )
        return tokens

    async def get_user(self, access_token: str) -> Identity:
        """
        Look up the user an access token belongs to.

        Raises:
            IdentityProviderError: If the token is rejected or the provider is unreachable.
        """
        try:
            response = await self._client.get(
                f"{self.base_url}/userinfo",
                headers={"Authorization": f"Bearer {access_token}"},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise IdentityProviderError(
                f"User lookup failed with status {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise IdentityProviderError(f"Identity provider unreachable: {e}") from e

        claims = response.json()
        subject = claims.get("sub")
        if not subject:
            raise IdentityProviderError("User info did not include a subject")
        return Identity(subject=subject, email=claims.get("email"), name=claims.get("name"))

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def _post_token(self, form: dict[str, str]) -> dict[str, Any]:
        try:
            response = await self._client.post(f"{self.base_url}/oauth/token", data=form)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Token request (%s) rejected with status %s",
                form.get("grant_type"),
                e.response.status_code,
            )
            raise IdentityProviderError(
                f"Token request failed with status {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise IdentityProviderError(f"Identity provider unreachable: {e}") from e
        return response.json()
