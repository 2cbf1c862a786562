"""Shared API dependencies for authentication and common functionality."""

import logging
from typing import Annotated, Any, NoReturn

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from noa_api.core.errors import (
    ConflictError,
    InvalidInputError,
    NoaError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitedError,
    UpstreamError,
)
from noa_api.core.settings import settings
from noa_api.db.session import get_db
from noa_api.models import Profile
from noa_api.services.home_feed_cache import HomeFeedCache
from noa_api.services.rate_limit import RateLimiter
from noa_api.services.suggestions import SuggestionIndex

logger = logging.getLogger(__name__)

# Bearer credentials are optional so public endpoints can personalise responses
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]
CredentialsDep = Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)]

_ERROR_STATUS: tuple[tuple[type[NoaError], int], ...] = (
    (InvalidInputError, status.HTTP_400_BAD_REQUEST),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (RateLimitedError, status.HTTP_429_TOO_MANY_REQUESTS),
    (UpstreamError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def raise_http_error(exc: NoaError) -> NoReturn:
    """Translate a domain error into the matching ``HTTPException``.

    Args:
        exc: Error raised by the service layer

    Raises:
        HTTPException: Always
    """
    headers = None
    if isinstance(exc, RateLimitedError):
        headers = {"Retry-After": str(max(1, exc.retry_after))}
    for error_type, status_code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            raise HTTPException(status_code=status_code, detail=str(exc), headers=headers) from exc
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal server error",
    ) from exc


def _credentials_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode a Supabase-issued access token.

    Args:
        token: Raw bearer token

    Returns:
        The verified JWT claims

    Raises:
        HTTPException: If the signature, audience or expiry is invalid
    """
    try:
        return jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
        )
    except JWTError as err:
        raise _credentials_error() from err


def _profile_for_claims(db: Session, claims: dict[str, Any]) -> Profile:
    subject = claims.get("sub")
    if not subject:
        raise _credentials_error()

    profile = db.get(Profile, subject)
    if profile is None:
        metadata = claims.get("user_metadata") or {}
        profile = Profile(
            id=subject,
            username=metadata.get("username") or metadata.get("full_name"),
            avatar_url=metadata.get("avatar_url"),
            is_admin=False,
        )
        db.add(profile)
        db.commit()
        db.refresh(profile)
        logger.info("Created profile for new reader %s", subject)
    return profile


def get_current_user(credentials: CredentialsDep, db: SessionDep) -> Profile:
    """Get the profile of the authenticated reader.

    Args:
        credentials: HTTP Bearer token credentials
        db: Database session

    Returns:
        Profile for the token subject, created on first sight

    Raises:
        HTTPException: If the token is missing or invalid
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return _profile_for_claims(db, decode_access_token(credentials.credentials))


def get_optional_user(credentials: CredentialsDep, db: SessionDep) -> Profile | None:
    """Like :func:`get_current_user` but anonymous requests yield ``None``."""
    if credentials is None:
        return None
    return _profile_for_claims(db, decode_access_token(credentials.credentials))


# Type alias for current user dependency
CurrentUserDep = Annotated[Profile, Depends(get_current_user)]
OptionalUserDep = Annotated[Profile | None, Depends(get_optional_user)]


def require_moderator(user: CurrentUserDep) -> Profile:
    """Reject callers whose profile is not flagged as a moderator."""
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Moderator access required",
        )
    return user


ModeratorDep = Annotated[Profile, Depends(require_moderator)]


def get_rate_limiter(request: Request) -> RateLimiter | None:
    return getattr(request.app.state, "rate_limiter", None)


def get_home_feed_cache(request: Request) -> HomeFeedCache:
    cache: HomeFeedCache | None = getattr(request.app.state, "home_feed_cache", None)
    if cache is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Home feed is not available",
        )
    return cache


def get_suggestion_index(request: Request) -> SuggestionIndex:
    index: SuggestionIndex | None = getattr(request.app.state, "suggestion_index", None)
    if index is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Search suggestions are not available",
        )
    return index


RateLimiterDep = Annotated[RateLimiter | None, Depends(get_rate_limiter)]
HomeFeedCacheDep = Annotated[HomeFeedCache, Depends(get_home_feed_cache)]
SuggestionIndexDep = Annotated[SuggestionIndex, Depends(get_suggestion_index)]
