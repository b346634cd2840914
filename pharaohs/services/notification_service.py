"""
Notification service for managing user notifications.

Handles creation, retrieval, and status updates for in-app notifications, plus
the message templates used when domain events fan out to a user's inbox.
"""

import math
from typing import Dict, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, func, and_
from pharaohs.database.models import Notification, NotificationType
from pharaohs.services.errors import NotFoundError, ValidationError
from pharaohs.utils.best_effort import run_best_effort
from pharaohs.utils.constants import DEFAULT_CLUB_NAME, DEFAULT_VIDEO_DESCRIPTION
from pharaohs.utils.datetime_utils import utcnow
import logging

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Message templates
# ---------------------------------------------------------------------------

def invitation_message(scout_name: str, tryout_name: str) -> str:
    return f"You have received a new invitation from {scout_name} for the tryout: {tryout_name}"


def invitation_response_message(player_name: str, status: str, tryout_name: str) -> str:
    return f"{player_name} has {status} your invitation to the tryout: {tryout_name}"


def invitation_canceled_message(tryout_name: str) -> str:
    return f'Your invitation to the tryout "{tryout_name}" has been canceled'


def like_message(liker_name: str, video_description: Optional[str]) -> str:
    return f"{liker_name} liked your video: {video_description or DEFAULT_VIDEO_DESCRIPTION}"


def comment_message(commenter_name: str, video_description: Optional[str]) -> str:
    return (
        f"{commenter_name} commented on your video: "
        f"{video_description or DEFAULT_VIDEO_DESCRIPTION}"
    )


def shortlist_message(scout_name: str, organization: Optional[str]) -> str:
    return f"{scout_name} from {organization or DEFAULT_CLUB_NAME} has added you to their shortlist"


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------

def _notification_to_dict(notification: Notification) -> Dict:
    return {
        "id": notification.id,
        "user_id": notification.user_id,
        "type": notification.type,
        "message": notification.message,
        "is_read": notification.is_read,
        "read_at": notification.read_at.isoformat() if notification.read_at else None,
        "created_at": notification.created_at.isoformat() if notification.created_at else None,
    }


async def create_notification(
    session: AsyncSession,
    user_id: int,
    message: str,
    type: Optional[str] = None,
) -> Dict:
    """
    Create a single unread notification for a user.

    Args:
        session: Database session
        user_id: ID of the user to notify
        message: Notification message text
        type: Optional NotificationType value

    Returns:
        Dict containing the created notification data

    Raises:
        ValidationError: If required fields are missing
    """
    if not user_id:
        raise ValidationError("user_id is required")
    if not message:
        raise ValidationError("message is required")

    notification = Notification(user_id=user_id, type=type, message=message, is_read=False)
    session.add(notification)
    await session.flush()
    await session.refresh(notification)
    return _notification_to_dict(notification)


async def notify(
    session: AsyncSession, user_id: int, message: str, type: NotificationType
) -> Optional[Dict]:
    """
    Fan a domain event out to a user's inbox.

    Never raises: a failure is logged and the triggering operation carries on.
    """
    return await run_best_effort(
        f"notify user {user_id} ({type.value})",
        create_notification,
        user_id,
        message,
        type.value,
        session=session,
    )


async def get_user_notifications(
    session: AsyncSession, user_id: int, page: int = 1, limit: int = 10
) -> Dict:
    """
    Fetch a page of a user's notifications, newest first.

    Returns:
        Dict containing:
            - notifications: List of notification dicts
            - pagination: {total, page, limit, totalPages}
            - unreadCount: Number of unread notifications
    """
    page = max(page, 1)
    limit = max(limit, 1)

    total_result = await session.execute(
        select(func.count(Notification.id)).where(Notification.user_id == user_id)
    )
    total = total_result.scalar_one() or 0

    result = await session.execute(
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
        .offset((page - 1) * limit)
    )
    notifications = [_notification_to_dict(n) for n in result.scalars().all()]

    return {
        "notifications": notifications,
        "pagination": {
            "total": total,
            "page": page,
            "limit": limit,
            "totalPages": math.ceil(total / limit),
        },
        "unreadCount": await get_unread_count(session, user_id),
    }


async def get_unread_count(session: AsyncSession, user_id: int) -> int:
    """Count unread notifications for a user."""
    result = await session.execute(
        select(func.count(Notification.id)).where(
            and_(Notification.user_id == user_id, Notification.is_read == False)  # noqa: E712
        )
    )
    return result.scalar_one() or 0


async def mark_as_read(session: AsyncSession, notification_id: int, user_id: int) -> Dict:
    """
    Mark one of the user's notifications as read.

    Raises:
        NotFoundError: If the notification doesn't exist or belongs to another user
    """
    result = await session.execute(
        select(Notification).where(
            and_(Notification.id == notification_id, Notification.user_id == user_id)
        )
    )
    notification = result.scalar_one_or_none()
    if notification is None:
        raise NotFoundError("Notification not found")

    if not notification.is_read:
        notification.is_read = True
        notification.read_at = utcnow()
        await session.flush()
    return _notification_to_dict(notification)


async def mark_all_as_read(session: AsyncSession, user_id: int) -> int:
    """
    Mark every unread notification of the user as read.

    Returns:
        Number of notifications updated
    """
    result = await session.execute(
        update(Notification)
        .where(and_(Notification.user_id == user_id, Notification.is_read == False))  # noqa: E712
        .values(is_read=True, read_at=utcnow())
    )
    return result.rowcount or 0


async def delete_notification(session: AsyncSession, notification_id: int, user_id: int) -> None:
    """
    Delete one of the user's notifications.

    Raises:
        NotFoundError: If the notification doesn't exist or belongs to another user
    """
    result = await session.execute(
        delete(Notification).where(
            and_(Notification.id == notification_id, Notification.user_id == user_id)
        )
    )
    if not result.rowcount:
        raise NotFoundError("Notification not found")
