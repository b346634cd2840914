"""
Pydantic models for API request/response validation.

Request bodies keep their fields optional where the service layer reports a
specific message for missing input.
"""

from typing import Any, Optional, List
from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Auth
# ============================================================================


class RegisterRequest(BaseModel):
    """Request to create a player or scout account."""

    model_config = ConfigDict(populate_by_name=True)
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    confirm_password: Optional[str] = Field(default=None, alias="confirmPassword")
    role: Optional[str] = None
    date_of_birth: Optional[str] = None


class LoginRequest(BaseModel):
    """Request to login with email and password."""

    email: Optional[str] = None
    password: Optional[str] = None


class RefreshTokenRequest(BaseModel):
    """Request to refresh access token."""

    model_config = ConfigDict(populate_by_name=True)
    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    name: str
    email: str
    role: str
    status: str
    created_at: Optional[str] = None


class AuthResponse(BaseModel):
    """Authentication response with JWT tokens."""

    token: str
    refreshToken: str
    user: UserResponse


class RefreshResponse(BaseModel):
    token: str
    user: UserResponse


# ============================================================================
# Player
# ============================================================================


class PerformanceStatsRequest(BaseModel):
    """Cumulative performance stats. Values are checked by the service."""

    matches_played: Optional[Any] = None
    goals: Optional[Any] = None
    assists: Optional[Any] = None
    yellow_cards: Optional[Any] = None
    red_cards: Optional[Any] = None


class LikeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    video_id: Optional[int] = Field(default=None, alias="videoId")


class CommentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    video_id: Optional[int] = Field(default=None, alias="videoId")
    content: Optional[str] = None


class VideoUpdateRequest(BaseModel):
    description: Optional[str] = None


class InvitationStatusRequest(BaseModel):
    status: Optional[str] = None


class SendInvitationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    tryout_id: Optional[int] = Field(default=None, alias="tryoutId")
    player_id: Optional[int] = Field(default=None, alias="playerId")


# ============================================================================
# Scout
# ============================================================================


class TryoutRequest(BaseModel):
    """Tryout details. ``time`` is combined with ``date`` when present."""

    name: Optional[str] = None
    location: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None


class ShortlistRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    player_id: Optional[int] = Field(default=None, alias="playerId")


# ============================================================================
# Admin
# ============================================================================


class StatusUpdateRequest(BaseModel):
    status: Optional[str] = None


class LocationRequest(BaseModel):
    location: Optional[str] = None


# ============================================================================
# Notifications
# ============================================================================


class NotificationResponse(BaseModel):
    """Notification response."""

    model_config = ConfigDict(from_attributes=True)
    id: int
    user_id: int
    type: Optional[str] = None
    message: str
    is_read: bool
    read_at: Optional[str] = None
    created_at: Optional[str] = None


class PageInfo(BaseModel):
    total: int
    page: int
    limit: int
    totalPages: int


class NotificationListResponse(BaseModel):
    """Paginated notification list response."""

    notifications: List[NotificationResponse]
    pagination: PageInfo
    unreadCount: int


class UnreadCountResponse(BaseModel):
    """Unread notification count response."""

    unreadCount: int
