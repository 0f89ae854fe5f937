"""
FastAPI Dependencies for Authentication and Authorization.

Key patterns:
1. get_current_user: mutations. Missing/invalid identity raises Unauthenticated (401)
2. get_optional_user: queries. Missing/invalid identity yields None and the
   route degrades to an empty result instead of failing
3. No global "current user" state - always pass user explicitly

Security model:
- JWT stored in HttpOnly cookie (recommended) or Authorization header
- All domain data queries are scoped by user_id at the SQL level
- Ownership and membership checks happen in the service layer
"""

from datetime import datetime, timedelta, timezone
from typing import Annotated
from uuid import UUID

from fastapi import Cookie, Depends, Header
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.db.models import User
from app.db.session import get_db
from app.exceptions import Unauthenticated

settings = get_settings()


# =============================================================================
# JWT UTILITIES
# =============================================================================


def create_access_token(user_id: UUID) -> str:
    """
    Create a JWT access token for a user.

    Payload carries only `sub` (user id) and `exp`. Tokens are stateless;
    revocation would need a blocklist (not implemented).
    """
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_expire_minutes)
    payload = {
        "sub": str(user_id),
        "exp": expire,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> UUID | None:
    """Decode and validate a JWT access token. Returns user_id, or None if invalid/expired."""
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
        user_id_str = payload.get("sub")
        if user_id_str is None:
            return None
        return UUID(user_id_str)
    except (JWTError, ValueError):
        return None


# =============================================================================
# AUTHENTICATION DEPENDENCIES
# =============================================================================


async def get_token_from_request(
    authorization: Annotated[str | None, Header()] = None,
    access_token: Annotated[str | None, Cookie()] = None,
) -> str | None:
    """
    Extract JWT token from request, or None when absent.

    Order of preference:
    1. HttpOnly cookie named 'access_token'
    2. Authorization header: 'Bearer <token>'
    """
    if access_token:
        return access_token

    if authorization:
        parts = authorization.split()
        if len(parts) == 2 and parts[0].lower() == "bearer":
            return parts[1]

    return None


async def get_optional_user(
    token: Annotated[str | None, Depends(get_token_from_request)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User | None:
    """Resolve the caller, or None if the request carries no valid identity."""
    if token is None:
        return None

    user_id = decode_access_token(token)
    if user_id is None:
        return None

    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_current_user(
    user: Annotated[User | None, Depends(get_optional_user)],
) -> User:
    """
    Require an authenticated caller.

        @router.post("/tasks")
        async def create_task(user: CurrentUser, ...):
            # user is guaranteed to be authenticated
    """
    if user is None:
        raise Unauthenticated()
    return user


# Type aliases for dependency injection
CurrentUser = Annotated[User, Depends(get_current_user)]
OptionalUser = Annotated[User | None, Depends(get_optional_user)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
