"""
Authentication dependencies for FastAPI routes.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from pharaohs.services import auth_service, user_service
from pharaohs.database.db import get_db_session
from pharaohs.database.models import UserRole, UserStatus

# auto_error=False so a missing header is reported as "No token" instead of
# FastAPI's generic 403
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    session: AsyncSession = Depends(get_db_session),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> dict:
    """
    Dependency to get the current authenticated user from the bearer token.

    Args:
        session: Database session
        credentials: HTTP Bearer token credentials

    Returns:
        User dictionary

    Raises:
        HTTPException: 401 if the token is missing or invalid, or the user no
            longer exists; 403 if the account is not active
    """
    if credentials is None or not credentials.credentials:
        raise _unauthorized("No token")

    payload = auth_service.verify_token(credentials.credentials)
    if payload is None or payload.get("id") is None:
        raise _unauthorized("Invalid token")

    user = await user_service.get_user_by_id(session, payload["id"])
    if user is None:
        raise _unauthorized("Invalid token")
    if user["status"] != UserStatus.ACTIVE.value:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is not active")

    return user


async def require_user(user: dict = Depends(get_current_user)) -> dict:
    """Require any authenticated user."""
    return user


def require_roles(*roles: UserRole):
    """
    Build a dependency that admits only the given roles.

    The role check runs after authentication, so a bad token is always a 401
    and never a 403.

    Usage:
        user: dict = Depends(require_roles(UserRole.PLAYER, UserRole.SCOUT))
    """
    allowed = {role.value for role in roles}
    required = " or ".join(role.value for role in roles)

    async def _dep(user: dict = Depends(get_current_user)) -> dict:
        if user["role"] not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {required}",
            )
        return user

    return _dep


require_player = require_roles(UserRole.PLAYER)
require_scout = require_roles(UserRole.SCOUT)
require_admin = require_roles(UserRole.ADMIN)
require_player_or_scout = require_roles(UserRole.PLAYER, UserRole.SCOUT)
