"""
Admin service: user and media moderation, tryout locations and the audit log.

Every successful mutation appends one SystemLog row. Writing that row is
best-effort and never undoes the mutation it describes.
"""

import json
import secrets
import string
from datetime import datetime
from typing import Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, func
from sqlalchemy.exc import IntegrityError
from pharaohs.database.models import (
    User,
    UserStatus,
    Video,
    MediaStatus,
    Location,
    SystemLog,
    AuditAction,
)
from pharaohs.services import auth_service, media_service, tryout_service
from pharaohs.services.errors import NotFoundError, ValidationError
from pharaohs.utils.best_effort import run_best_effort
from pharaohs.utils.constants import TEMP_PASSWORD_LENGTH
import logging

logger = logging.getLogger(__name__)

USER_STATUSES = {s.value for s in UserStatus}
MEDIA_STATUSES = {s.value for s in MediaStatus}


# ---------------------------------------------------------------------------
# Audit log
# ---------------------------------------------------------------------------

async def _insert_log(
    session: AsyncSession,
    user_id: int,
    action: str,
    entity_type: str,
    entity_id: Optional[int],
    details: Optional[str],
    ip_address: Optional[str],
) -> None:
    session.add(
        SystemLog(
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details,
            ip_address=ip_address,
        )
    )
    await session.flush()


async def log_admin_action(
    session: AsyncSession,
    user_id: int,
    action: AuditAction,
    entity_type: str,
    entity_id: Optional[int],
    details: Optional[str],
    ip_address: Optional[str],
) -> None:
    """Append an audit row. Failures are logged, never raised."""
    await run_best_effort(
        f"record {action.value} {entity_type} audit log",
        _insert_log,
        user_id,
        action.value,
        entity_type,
        entity_id,
        details,
        ip_address,
        session=session,
    )


def _log_to_dict(log: SystemLog, user_name: Optional[str]) -> Dict:
    return {
        "id": log.id,
        "user_id": log.user_id,
        "user_name": user_name,
        "action": log.action,
        "entity_type": log.entity_type,
        "entity_id": log.entity_id,
        "details": log.details,
        "ip_address": log.ip_address,
        "created_at": log.created_at.isoformat() if log.created_at else None,
    }


def _parse_filter_date(value: Optional[str], name: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"Invalid {name}")


async def get_system_logs(
    session: AsyncSession,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    action: Optional[str] = None,
    entity_type: Optional[str] = None,
    user_id: Optional[int] = None,
    limit: int = 100,
    offset: int = 0,
) -> Dict:
    """
    Filtered audit log, newest first.

    Returns:
        Dict with "logs" (each with the actor's user_name) and
        "pagination" {total, limit, offset}
    """
    conditions = []
    start = _parse_filter_date(start_date, "startDate")
    end = _parse_filter_date(end_date, "endDate")
    if start:
        conditions.append(SystemLog.created_at >= start)
    if end:
        conditions.append(SystemLog.created_at <= end)
    if action:
        conditions.append(SystemLog.action == action)
    if entity_type:
        conditions.append(SystemLog.entity_type == entity_type)
    if user_id:
        conditions.append(SystemLog.user_id == user_id)

    total_result = await session.execute(select(func.count(SystemLog.id)).where(*conditions))
    total = total_result.scalar_one() or 0

    result = await session.execute(
        select(SystemLog, User.name)
        .outerjoin(User, User.id == SystemLog.user_id)
        .where(*conditions)
        .order_by(SystemLog.created_at.desc(), SystemLog.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return {
        "logs": [_log_to_dict(log, name) for log, name in result.all()],
        "pagination": {"total": total, "limit": limit, "offset": offset},
    }


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

async def get_all_users(session: AsyncSession) -> List[Dict]:
    result = await session.execute(select(User).order_by(User.id.desc()))
    return [
        {
            "id": u.id,
            "name": u.name,
            "email": u.email,
            "role": u.role,
            "status": u.status,
            "created_at": u.created_at.isoformat() if u.created_at else None,
        }
        for u in result.scalars().all()
    ]


async def _get_user(session: AsyncSession, user_id: int) -> User:
    result = await session.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError("User not found")
    return user


async def delete_user(
    session: AsyncSession, admin_id: int, user_id: int, ip_address: Optional[str] = None
) -> None:
    """
    Delete an account. Dependent rows go with it through ON DELETE CASCADE;
    the user's stored media is removed from S3 best-effort.
    """
    user = await _get_user(session, user_id)
    details = json.dumps({"name": user.name, "email": user.email})

    stored = await session.execute(
        select(Video.storage_key, Video.url).where(Video.player_id == user_id)
    )
    for key, url in stored.all():
        await media_service.delete_remote(key, url)

    await session.execute(delete(User).where(User.id == user_id))
    logger.info(f"Admin {admin_id} deleted user {user_id}")
    await log_admin_action(
        session, admin_id, AuditAction.DELETE, "user", user_id, details, ip_address
    )


async def update_user_status(
    session: AsyncSession,
    admin_id: int,
    user_id: int,
    status: Optional[str],
    ip_address: Optional[str] = None,
) -> None:
    """
    Raises:
        ValidationError: If status is not active, inactive or suspended
        NotFoundError: If the user doesn't exist
    """
    if status not in USER_STATUSES:
        raise ValidationError("Invalid status value")

    user = await _get_user(session, user_id)
    user.status = status
    await session.flush()
    await log_admin_action(
        session,
        admin_id,
        AuditAction.UPDATE,
        "user",
        user_id,
        f"Changed status to {status}",
        ip_address,
    )


def generate_temp_password(length: int = TEMP_PASSWORD_LENGTH) -> str:
    alphabet = string.ascii_lowercase + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


async def reset_user_password(
    session: AsyncSession, admin_id: int, user_id: int, ip_address: Optional[str] = None
) -> str:
    """
    Replace a user's password with a random temporary one.

    Returns:
        The temporary password, shown once to the admin
    """
    user = await _get_user(session, user_id)
    temp_password = generate_temp_password()
    user.password_hash = auth_service.hash_password(temp_password)
    await session.flush()
    await log_admin_action(
        session,
        admin_id,
        AuditAction.RESET_PASSWORD,
        "user",
        user_id,
        "Password reset by admin",
        ip_address,
    )
    return temp_password


# ---------------------------------------------------------------------------
# Media
# ---------------------------------------------------------------------------

async def get_all_media(session: AsyncSession) -> List[Dict]:
    """All media with the owning player's name, newest first."""
    result = await session.execute(
        select(Video, User.name)
        .join(User, User.id == Video.player_id)
        .order_by(Video.created_at.desc(), Video.id.desc())
    )
    return [
        {**media_service.video_to_dict(video), "player_name": name}
        for video, name in result.all()
    ]


async def delete_media(
    session: AsyncSession, admin: Dict, video_id: int, ip_address: Optional[str] = None
) -> None:
    video = await media_service.delete_video(session, video_id, admin)
    details = json.dumps(
        {
            "description": video["description"],
            "player_id": video["player_id"],
            "url": video["url"],
            "storage_key": video["storage_key"],
            "type": video["type"],
        }
    )
    await log_admin_action(
        session, admin["id"], AuditAction.DELETE, "video", video_id, details, ip_address
    )


async def update_media_status(
    session: AsyncSession,
    admin_id: int,
    video_id: int,
    status: Optional[str],
    ip_address: Optional[str] = None,
) -> None:
    """
    Raises:
        ValidationError: If status is not pending, approved or rejected
        NotFoundError: If the video doesn't exist
    """
    if status not in MEDIA_STATUSES:
        raise ValidationError("Invalid status value")

    video = await media_service.get_video(session, video_id)
    video.status = status
    await session.flush()
    await log_admin_action(
        session,
        admin_id,
        AuditAction.UPDATE,
        "video",
        video_id,
        f"Changed status to {status}",
        ip_address,
    )


# ---------------------------------------------------------------------------
# Locations
# ---------------------------------------------------------------------------

async def add_location(
    session: AsyncSession, admin_id: int, name: Optional[str], ip_address: Optional[str] = None
) -> Dict:
    """
    Register a reusable tryout location.

    Raises:
        ValidationError: If the name is empty or the location already exists
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("Location name is required")
    if name in await tryout_service.list_locations(session):
        raise ValidationError("Location already exists")

    location = Location(name=name, created_by=admin_id)
    try:
        async with session.begin_nested():
            session.add(location)
            await session.flush()
    except IntegrityError:
        raise ValidationError("Location already exists")

    await log_admin_action(
        session,
        admin_id,
        AuditAction.CREATE,
        "location",
        location.id,
        f"Added new location: {name}",
        ip_address,
    )
    return {"id": location.id, "name": name}


async def delete_location(
    session: AsyncSession, admin_id: int, name: str, ip_address: Optional[str] = None
) -> None:
    """
    Remove a managed location.

    Raises:
        ValidationError: If tryouts still use it; ``extra["count"]`` holds
            the number of those tryouts
        NotFoundError: If there is no such managed location
    """
    in_use = await tryout_service.count_tryouts_at(session, name)
    if in_use:
        raise ValidationError(
            "Cannot delete location that is in use by active tryouts", extra={"count": in_use}
        )

    result = await session.execute(select(Location).where(Location.name == name))
    location = result.scalar_one_or_none()
    if location is None:
        raise NotFoundError("Location not found")

    location_id = location.id
    await session.execute(delete(Location).where(Location.id == location_id))
    await log_admin_action(
        session,
        admin_id,
        AuditAction.DELETE,
        "location",
        location_id,
        f"Deleted location: {name}",
        ip_address,
    )
