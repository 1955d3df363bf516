"""
Authentication: Auth0 JWT validation and user provisioning.

Every bookmark query and feed subscription is scoped to the User resolved
here, so this module is the only place an identity is established.
"""
import logging

import httpx
import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWKClient
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings, get_settings
from db.session import get_async_session
from models.user import User

logger = logging.getLogger(__name__)

# HTTP Bearer token scheme; missing credentials are reported by get_current_user
security = HTTPBearer(auto_error=False)

DEV_AUTH0_ID = "dev|local-development-user"
DEV_EMAIL = "dev@localhost"

# Client-facing messages for specific JWT failures; anything else is "Invalid token"
_JWT_ERROR_DETAILS: tuple[tuple[type[jwt.PyJWTError], str], ...] = (
    (jwt.ExpiredSignatureError, "Token has expired"),
    (jwt.InvalidAudienceError, "Invalid audience"),
    (jwt.InvalidIssuerError, "Invalid issuer"),
)

_jwks_clients: dict[str, PyJWKClient] = {}


def get_jwks_client(settings: Settings) -> PyJWKClient:
    """Get or create a JWKS client for the configured Auth0 tenant (keys cached 1 hour)."""
    url = settings.auth0_jwks_url
    client = _jwks_clients.get(url)
    if client is None:
        client = PyJWKClient(url, cache_jwk_set=True, lifespan=3600)
        _jwks_clients[url] = client
    return client


def unauthorized(detail: str) -> HTTPException:
    """401 carrying the Bearer challenge header."""
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_jwt(token: str, settings: Settings) -> dict:
    """
    Verify an Auth0 RS256 token and return its claims.

    Raises:
        HTTPException: 401 if the token is invalid, expired, or has the wrong
            audience/issuer; 503 if the signing keys can't be fetched.
    """
    try:
        signing_key = get_jwks_client(settings).get_signing_key_from_jwt(token)
        return jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            audience=settings.auth0_audience,
            issuer=settings.auth0_issuer,
        )
    except jwt.PyJWTError as e:
        for error_type, detail in _JWT_ERROR_DETAILS:
            if isinstance(e, error_type):
                raise unauthorized(detail) from e
        logger.warning("JWT validation failed: %s", e)
        raise unauthorized("Invalid token") from e
    except httpx.HTTPError as e:
        logger.error("Failed to fetch JWKS from Auth0: %s", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not validate credentials",
        ) from e


async def _find_user(db: AsyncSession, auth0_id: str) -> User | None:
    result = await db.execute(select(User).where(User.auth0_id == auth0_id))
    return result.scalar_one_or_none()


async def get_or_create_user(
    db: AsyncSession,
    auth0_id: str,
    email: str | None = None,
) -> User:
    """
    Return the user for an Auth0 subject, creating it on first sight.

    A concurrent request may insert the same subject between the lookup and
    the insert; the unique constraint then fails and the existing row is used.
    A non-empty email from the token replaces the stored one.

    Note: Uses flush(), not commit. Session generator handles commit at request end.
    Called before any other work in the request, so rolling back is safe.
    """
    user = await _find_user(db, auth0_id)
    if user is None:
        user = User(auth0_id=auth0_id, email=email)
        db.add(user)
        try:
            await db.flush()
            logger.info("Created user for %s", auth0_id)
        except IntegrityError:
            await db.rollback()
            user = await _find_user(db, auth0_id)
            if user is None:
                raise

    if email and user.email != email:
        user.email = email
        await db.flush()
    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> User:
    """
    Dependency resolving the authenticated user.

    In DEV_MODE authentication is skipped and a fixed local user is returned.
    """
    if settings.dev_mode:
        return await get_or_create_user(db, auth0_id=DEV_AUTH0_ID, email=DEV_EMAIL)

    if credentials is None:
        raise unauthorized("Not authenticated")

    claims = decode_jwt(credentials.credentials, settings)
    auth0_id = claims.get("sub")
    if not auth0_id:
        raise unauthorized("Invalid token: missing sub claim")

    return await get_or_create_user(db, auth0_id=auth0_id, email=claims.get("email"))
