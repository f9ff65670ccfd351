"""
Session store: the client's view of who is signed in.

The store wraps the identity provider's redirect-based sign-in. Consumers
subscribe to auth changes instead of polling, and the store is constructed
explicitly and passed to whatever needs it.
"""
import logging
import secrets
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum

from core.identity import Identity, IdentityProvider, IdentityProviderError, TokenSet

logger = logging.getLogger(__name__)

AUTH_FAILED_MESSAGE = "Authentication failed. Please try again."


class SessionStatus(StrEnum):
    """Whether the first status check has resolved, and to what."""

    UNKNOWN = "unknown"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


class AuthEvent(StrEnum):
    """Kinds of auth change delivered to subscribers."""

    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"


@dataclass(frozen=True)
class AuthChange:
    """A single auth change and the identity it left behind."""

    event: AuthEvent
    identity: Identity | None


AuthListener = Callable[[AuthChange], Awaitable[None]]


class TokenStorage:
    """In-memory token storage; subclass to persist tokens elsewhere."""

    def __init__(self, tokens: TokenSet | None = None) -> None:
        self._tokens = tokens

    def load(self) -> TokenSet | None:
        """Return the stored token set, if any."""
        return self._tokens

    def save(self, tokens: TokenSet) -> None:
        """Store a token set, replacing any previous one."""
        self._tokens = tokens

    def clear(self) -> None:
        """Forget the stored token set."""
        self._tokens = None


class SessionStore:
    """Current identity plus a subscription channel for auth changes."""

    def __init__(
        self,
        provider: IdentityProvider,
        redirect_uri: str,
        storage: TokenStorage | None = None,
    ) -> None:
        self._provider = provider
        self._redirect_uri = redirect_uri
        self._storage = storage or TokenStorage()
        self._listeners: list[AuthListener] = []
        self._identity: Identity | None = None
        self._status = SessionStatus.UNKNOWN
        self._is_authenticating = False
        self._error: str | None = None
        self._pending_state: str | None = None

    @property
    def identity(self) -> Identity | None:
        return self._identity

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def is_authenticating(self) -> bool:
        return self._is_authenticating

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def access_token(self) -> str | None:
        """Access token for gateway calls, None while signed out."""
        if self._identity is None:
            return None
        tokens = self._storage.load()
        return tokens.access_token if tokens else None

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        """
        Register a listener for every subsequent auth change.

        Listeners are called in subscription order. Returns a function that
        removes the listener; calling it more than once is harmless.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def initialize(self) -> Identity | None:
        """
        Resolve the initial session from stored tokens.

        An expired access token is refreshed once; if that fails too the
        stored tokens are discarded and the session starts anonymous.
        """
        tokens = self._storage.load()
        identity = None
        if tokens is not None:
            identity = await self._lookup_identity(tokens)
            if identity is None:
                self._storage.clear()

        self._set_identity(identity)
        await self._emit(AuthEvent.INITIAL_SESSION)
        return identity

    def sign_in(self) -> str:
        """Start sign-in; returns the URL the user agent must be sent to."""
        self._pending_state = secrets.token_urlsafe(16)
        self._is_authenticating = True
        self._error = None
        return self._provider.authorization_url(self._redirect_uri, self._pending_state)

    async def complete_sign_in(self, code: str | None, state: str | None = None) -> bool:
        """
        Finish sign-in with the one-time code from the provider redirect.

        Failures are reported through `error` and leave the session anonymous;
        this method does not raise.
        """
        self._is_authenticating = True
        try:
            if not code:
                raise IdentityProviderError("Missing authorization code")
            if self._pending_state is not None and state != self._pending_state:
                raise IdentityProviderError("Sign-in state mismatch")
            tokens = await self._provider.exchange_code(code, self._redirect_uri)
            identity = await self._provider.get_user(tokens.access_token)
        except (IdentityProviderError, ValueError) as e:
            logger.warning("Sign-in failed: %s", e)
            self._error = AUTH_FAILED_MESSAGE
            if self._status == SessionStatus.UNKNOWN:
                self._status = SessionStatus.ANONYMOUS
            return False
        finally:
            self._is_authenticating = False
            self._pending_state = None

        self._error = None
        self._storage.save(tokens)
        self._set_identity(identity)
        await self._emit(AuthEvent.SIGNED_IN)
        return True

    async def refresh(self) -> bool:
        """Swap the stored tokens for fresh ones using the refresh token."""
        tokens = self._storage.load()
        if tokens is None or not tokens.refresh_token:
            return False
        try:
            refreshed = await self._provider.refresh(tokens.refresh_token)
        except IdentityProviderError as e:
            logger.warning("Token refresh failed: %s", e)
            return False

        self._storage.save(refreshed)
        await self._emit(AuthEvent.TOKEN_REFRESHED)
        return True

    async def sign_out(self, return_to: str) -> str:
        """
        End the local session and return the provider logout URL.

        Subscribers learn about completion through SIGNED_OUT.
        """
        self._storage.clear()
        self._set_identity(None)
        self._error = None
        await self._emit(AuthEvent.SIGNED_OUT)
        return self._provider.logout_url(return_to)

    def close(self) -> None:
        """Drop every listener."""
        self._listeners.clear()

    async def _lookup_identity(self, tokens: TokenSet) -> Identity | None:
        try:
            return await self._provider.get_user(tokens.access_token)
        except IdentityProviderError as e:
            if e.status_code != 401 or not tokens.refresh_token:
                logger.info("Stored session is no longer valid: %s", e)
                return None

        try:
            refreshed = await self._provider.refresh(tokens.refresh_token)
            identity = await self._provider.get_user(refreshed.access_token)
        except IdentityProviderError as e:
            logger.info("Stored session could not be refreshed: %s", e)
            return None
        self._storage.save(refreshed)
        return identity

    def _set_identity(self, identity: Identity | None) -> None:
        self._identity = identity
        self._status = (
            SessionStatus.AUTHENTICATED if identity is not None else SessionStatus.ANONYMOUS
        )

    async def _emit(self, event: AuthEvent) -> None:
        change = AuthChange(event=event, identity=self._identity)
        for listener in list(self._listeners):
            try:
                await listener(change)
            except Exception:
                logger.exception("Auth listener failed handling %s", event)
