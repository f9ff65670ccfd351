"""Tests for the identity provider OAuth client."""
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
import respx
from httpx import Response

from core.identity import Identity, IdentityProvider, IdentityProviderError, TokenSet

BASE_URL = "https://tenant.auth0.com"


@pytest.fixture
def mock_provider() -> respx.MockRouter:
    """Mock the identity provider's endpoints."""
    with respx.mock(base_url=BASE_URL, assert_all_called=False) as respx_mock:
        yield respx_mock


@pytest.fixture
async def provider() -> IdentityProvider:
    """Identity provider client with its own HTTP client."""
    provider = IdentityProvider(
        domain="tenant.auth0.com",
        client_id="client-id",
        client_secret="client-secret",
        audience="https://api.example.com",
    )
    yield provider
    await provider.aclose()


def test__authorization_url__contains_flow_parameters() -> None:
    """The authorize URL carries the client, callback, scopes and state."""
    provider = IdentityProvider(domain="tenant.auth0.com", client_id="client-id")

    url = urlparse(provider.authorization_url("http://localhost:8000/auth/callback", "xyz"))

    assert url.netloc == "tenant.auth0.com"
    assert url.path == "/authorize"
    params = parse_qs(url.query)
    assert params["client_id"] == ["client-id"]
    assert params["redirect_uri"] == ["http://localhost:8000/auth/callback"]
    assert params["state"] == ["xyz"]
    assert "offline_access" in params["scope"][0]
    assert "audience" not in params


async def test__exchange_code__success(
    provider: IdentityProvider, mock_provider: respx.MockRouter,
) -> None:
    """A valid code yields the provider's token set."""
    route = mock_provider.post("/oauth/token").mock(
        return_value=Response(
            200,
            json={"access_token": "at", "refresh_token": "rt", "expires_in": 60},
        ),
    )

    tokens = await provider.exchange_code("code-1", "http://localhost/cb")

    assert tokens == TokenSet(access_token="at", refresh_token="rt", expires_in=60)
    form = parse_qs(route.calls.last.request.content.decode())
    assert form["grant_type"] == ["authorization_code"]
    assert form["client_secret"] == ["client-secret"]


async def test__exchange_code__rejected(
    provider: IdentityProvider, mock_provider: respx.MockRouter,
) -> None:
    """A rejected code raises with the provider's status."""
    mock_provider.post("/oauth/token").mock(return_value=Response(403))

    with pytest.raises(IdentityProviderError) as exc_info:
        await provider.exchange_code("bad", "http://localhost/cb")

    assert exc_info.value.status_code == 403


async def test__exchange_code__unreachable(
    provider: IdentityProvider, mock_provider: respx.MockRouter,
) -> None:
    """Network failures surface as IdentityProviderError."""
    mock_provider.post("/oauth/token").mock(side_effect=httpx.ConnectError("refused"))

    with pytest.raises(IdentityProviderError, match="unreachable"):
        await provider.exchange_code("code", "http://localhost/cb")


async def test__exchange_code__missing_access_token(
    provider: IdentityProvider, mock_provider: respx.MockRouter,
) -> None:
    """A token response without an access token is an error."""
    mock_provider.post("/oauth/token").mock(return_value=Response(200, json={}))

    with pytest.raises(IdentityProviderError):
        await provider.exchange_code("code", "http://localhost/cb")


async def test__refresh__keeps_refresh_token_when_not_rotated(
    provider: IdentityProvider, mock_provider: respx.MockRouter,
) -> None:
    """The old refresh token is carried over when the provider doesn't rotate it."""
    mock_provider.post("/oauth/token").mock(
        return_value=Response(200, json={"access_token": "new-at"}),
    )

    tokens = await provider.refresh("old-rt")

    assert tokens.access_token == "new-at"
    assert tokens.refresh_token == "old-rt"


async def test__get_user__success(
    provider: IdentityProvider, mock_provider: respx.MockRouter,
) -> None:
    """User info is mapped to an Identity."""
    route = mock_provider.get("/userinfo").mock(
        return_value=Response(
            200, json={"sub": "auth0|123", "email": "a@example.com", "name": "A"},
        ),
    )

    identity = await provider.get_user("at")

    assert identity == Identity(subject="auth0|123", email="a@example.com", name="A")
    assert route.calls.last.request.headers["Authorization"] == "Bearer at"


async def test__get_user__expired_token(
    provider: IdentityProvider, mock_provider: respx.MockRouter,
) -> None:
    """A rejected access token raises with status 401."""
    mock_provider.get("/userinfo").mock(return_value=Response(401))

    with pytest.raises(IdentityProviderError) as exc_info:
        await provider.get_user("expired")

    assert exc_info.value.status_code == 401


def test__logout_url() -> None:
    """The logout URL returns the user agent to the given page."""
    provider = IdentityProvider(domain="tenant.auth0.com", client_id="client-id")

    url = urlparse(provider.logout_url("http://localhost:3000/"))

    assert url.path == "/v2/logout"
    assert parse_qs(url.query) == {
        "client_id": ["client-id"],
        "returnTo": ["http://localhost:3000/"],
    }
