"""Notification route handlers."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pharaohs.database.db import get_db_session
from pharaohs.services import notification_service
from pharaohs.api.auth_dependencies import require_user
from pharaohs.models.schemas import (
    NotificationResponse,
    NotificationListResponse,
    UnreadCountResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/notifications", response_model=NotificationListResponse)
async def get_notifications(
    page: int = 1,
    limit: int = 10,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Get user notifications with pagination."""
    return await notification_service.get_user_notifications(
        session, user["id"], page=page, limit=limit
    )


@router.get("/api/notifications/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    user: dict = Depends(require_user), session: AsyncSession = Depends(get_db_session)
):
    """Get unread notification count for user."""
    count = await notification_service.get_unread_count(session, user["id"])
    return {"unreadCount": count}


@router.put("/api/notifications/read-all")
async def mark_all_notifications_as_read(
    user: dict = Depends(require_user), session: AsyncSession = Depends(get_db_session)
):
    """Mark all user notifications as read."""
    count = await notification_service.mark_all_as_read(session, user["id"])
    return {"message": "All notifications marked as read", "count": count}


@router.put("/api/notifications/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_as_read(
    notification_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Mark a single notification as read."""
    return await notification_service.mark_as_read(session, notification_id, user["id"])


@router.delete("/api/notifications/{notification_id}")
async def delete_notification(
    notification_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    await notification_service.delete_notification(session, notification_id, user["id"])
    return {"message": "Notification deleted successfully"}
