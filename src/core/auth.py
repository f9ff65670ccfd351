"""Authentication module for identity-provider JWT validation."""
import logging

import httpx
import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWKClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings, get_settings
from db.session import get_async_session
from models.user import User

logger = logging.getLogger(__name__)

# Cookie set by the OAuth callback; browsers send it instead of a bearer header
SESSION_COOKIE_NAME = "session"

DEV_USER_AUTH0_ID = "dev|local-development-user"

# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)

# Cache for JWKS client (reuse across requests)
_jwks_clients: dict[str, PyJWKClient] = {}


def get_jwks_client(settings: Settings) -> PyJWKClient:
    """Get or create a cached JWKS client for the given settings."""
    if settings.auth0_jwks_url not in _jwks_clients:
        _jwks_clients[settings.auth0_jwks_url] = PyJWKClient(
            settings.auth0_jwks_url,
            cache_jwk_set=True,
            lifespan=3600,  # Cache keys for 1 hour
        )
    return _jwks_clients[settings.auth0_jwks_url]


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_jwt(token: str, settings: Settings) -> dict:
    """
    Decode and validate a JWT issued by the identity provider.

    Raises:
        HTTPException: If token is invalid, expired, or has wrong audience/issuer.
    """
    try:
        jwks_client = get_jwks_client(settings)
        signing_key = jwks_client.get_signing_key_from_jwt(token)

        return jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            audience=settings.auth0_audience,
            issuer=settings.auth0_issuer,
        )

    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidAudienceError:
        raise _unauthorized("Invalid audience")
    except jwt.InvalidIssuerError:
        raise _unauthorized("Invalid issuer")
    except jwt.PyJWTError as e:
        raise _unauthorized(f"Invalid token: {e}")
    except httpx.HTTPError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Could not validate credentials: {e}",
        )


def extract_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None,
) -> str | None:
    """Return the bearer token, falling back to the session cookie."""
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(SESSION_COOKIE_NAME) or None


async def get_or_create_user(
    db: AsyncSession,
    auth0_id: str,
    email: str | None = None,
) -> User:
    """
    Get existing user or create new one from identity-provider claims.

    Note: Uses flush(), not commit. Session generator handles commit at request end.
    """
    result = await db.execute(select(User).where(User.auth0_id == auth0_id))
    user = result.scalar_one_or_none()

    if user is None:
        user = User(auth0_id=auth0_id, email=email)
        db.add(user)
        await db.flush()
        logger.info("Created user for subject %s", auth0_id)
    elif email and user.email != email:
        # Update email if changed at the provider
        user.email = email
        await db.flush()

    return user


async def get_or_create_dev_user(db: AsyncSession) -> User:
    """Get or create a development user for DEV_MODE."""
    return await get_or_create_user(
        db,
        auth0_id=DEV_USER_AUTH0_ID,
        email="dev@localhost",
    )


async def _resolve_user(
    token: str,
    db: AsyncSession,
    settings: Settings,
) -> User:
    payload = decode_jwt(token, settings)

    auth0_id = payload.get("sub")
    if not auth0_id:
        raise _unauthorized("Invalid token: missing sub claim")

    return await get_or_create_user(db, auth0_id=auth0_id, email=payload.get("email"))


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> User:
    """
    Dependency that validates the token and returns the current user.

    Used by every write and by single-record reads. In DEV_MODE, bypasses
    auth and returns a test user.

    Raises:
        HTTPException: 401 when no identity can be resolved.
    """
    if settings.dev_mode:
        return await get_or_create_dev_user(db)

    token = extract_token(request, credentials)
    if token is None:
        raise _unauthorized("Unauthorized")

    return await _resolve_user(token, db, settings)


async def get_optional_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> User | None:
    """
    Like get_current_user but returns None instead of failing.

    List-style reads use this so an anonymous caller gets an empty result
    rather than an error.
    """
    if settings.dev_mode:
        return await get_or_create_dev_user(db)

    token = extract_token(request, credentials)
    if token is None:
        return None

    try:
        return await _resolve_user(token, db, settings)
    except HTTPException as e:
        logger.debug("Ignoring unusable credentials on optional auth: %s", e.detail)
        return None
