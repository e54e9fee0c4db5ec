from dataclasses import dataclass
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status, Request, Cookie
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.user import User
from app.utils.auth import verify_token

# Optional bearer auth (doesn't fail if no header)
security = HTTPBearer(auto_error=False)


@dataclass
class RequestContext:
    """Per-request handles passed to every handler."""
    db: AsyncSession
    user: Optional[User] = None


def _extract_token(
    credentials: Optional[HTTPAuthorizationCredentials],
    auth_token: Optional[str],
) -> Optional[str]:
    # Authorization header first, then the browser session cookie
    if credentials:
        return credentials.credentials
    return auth_token


async def _load_user(db: AsyncSession, token: str) -> Optional[User]:
    token_data = verify_token(token)
    if token_data is None:
        return None

    result = await db.execute(
        select(User).where(User.external_id == token_data.external_id)
    )
    return result.scalar_one_or_none()


async def get_optional_user(
    request: Request,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
    auth_token: Annotated[Optional[str], Cookie()] = None,
) -> Optional[User]:
    """Resolve the caller if a valid token is present; anonymous otherwise."""
    token = _extract_token(credentials, auth_token)
    if not token:
        return None

    user = await _load_user(db, token)
    if user is not None:
        request.state.user_id = user.id
    return user


async def get_current_user(
    request: Request,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
    auth_token: Annotated[Optional[str], Cookie()] = None,
) -> User:
    """
    Dependency to get the current authenticated user from JWT token.
    Accepts token from:
    1. Authorization header (Bearer token) - for API access
    2. auth_token cookie - for browser sessions

    The token subject is the identity provider's user id; the user row is
    created by the identity webhook, so an unknown subject is unauthorized.
    """
    token = _extract_token(credentials, auth_token)

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token_data = verify_token(token)

    if token_data is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    result = await db.execute(
        select(User).where(User.external_id == token_data.external_id)
    )
    user = result.scalar_one_or_none()

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # Rate limit key
    request.state.user_id = user.id
    return user


# Type aliases for cleaner dependency injection
CurrentUser = Annotated[User, Depends(get_current_user)]
OptionalUser = Annotated[Optional[User], Depends(get_optional_user)]


async def get_context(
    db: Annotated[AsyncSession, Depends(get_db)],
    user: OptionalUser,
) -> RequestContext:
    return RequestContext(db=db, user=user)


async def get_protected_context(
    db: Annotated[AsyncSession, Depends(get_db)],
    user: CurrentUser,
) -> RequestContext:
    return RequestContext(db=db, user=user)


Context = Annotated[RequestContext, Depends(get_context)]
ProtectedContext = Annotated[RequestContext, Depends(get_protected_context)]
