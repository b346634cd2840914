"""Authentication route handlers."""

import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from pharaohs.api.routes import limiter
from pharaohs.database.db import get_db_session
from pharaohs.services import user_service
from pharaohs.api.auth_dependencies import require_user
from pharaohs.models.schemas import (
    RegisterRequest,
    LoginRequest,
    RefreshTokenRequest,
    AuthResponse,
    RefreshResponse,
    UserResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/auth/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
async def register(
    request: Request, payload: RegisterRequest, session: AsyncSession = Depends(get_db_session)
):
    """Create a player or scout account and return its tokens."""
    return await user_service.register(
        session,
        name=payload.name,
        email=payload.email,
        password=payload.password,
        confirm_password=payload.confirm_password,
        role=payload.role,
        date_of_birth=payload.date_of_birth,
    )


@router.post("/api/auth/login", response_model=AuthResponse)
@limiter.limit("10/minute")
async def login(
    request: Request, payload: LoginRequest, session: AsyncSession = Depends(get_db_session)
):
    """Login with email and password."""
    return await user_service.login(session, payload.email, payload.password)


@router.post("/api/auth/refresh", response_model=RefreshResponse)
async def refresh_token(
    payload: RefreshTokenRequest, session: AsyncSession = Depends(get_db_session)
):
    """Exchange a refresh token for a new access token."""
    return await user_service.refresh_access_token(session, payload.refresh_token)


@router.get("/api/auth/profile", response_model=UserResponse)
async def get_profile(user: dict = Depends(require_user)):
    """Get the authenticated account."""
    return user
