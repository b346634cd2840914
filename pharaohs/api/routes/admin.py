"""Admin route handlers: user and media moderation, locations and audit logs."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from pharaohs.api.routes import client_ip
from pharaohs.database.db import get_db_session
from pharaohs.services import admin_service, tryout_service
from pharaohs.api.auth_dependencies import require_admin
from pharaohs.models.schemas import LocationRequest, StatusUpdateRequest

logger = logging.getLogger(__name__)
router = APIRouter()


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

@router.get("/api/admin/users")
async def get_users(
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    return await admin_service.get_all_users(session)


@router.delete("/api/admin/users/{user_id}")
async def delete_user(
    user_id: int,
    request: Request,
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    await admin_service.delete_user(session, user["id"], user_id, client_ip(request))
    return {"message": "User deleted successfully"}


@router.put("/api/admin/users/{user_id}/status")
async def update_user_status(
    user_id: int,
    payload: StatusUpdateRequest,
    request: Request,
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Set an account to active, inactive or suspended."""
    await admin_service.update_user_status(
        session, user["id"], user_id, payload.status, client_ip(request)
    )
    return {"message": "User status updated successfully"}


@router.post("/api/admin/users/{user_id}/reset-password")
async def reset_user_password(
    user_id: int,
    request: Request,
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Replace the user's password with a temporary one, returned once."""
    temp_password = await admin_service.reset_user_password(
        session, user["id"], user_id, client_ip(request)
    )
    return {"message": "Password reset successfully", "tempPassword": temp_password}


# ---------------------------------------------------------------------------
# Media
# ---------------------------------------------------------------------------

@router.get("/api/admin/media")
async def get_media(
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    return await admin_service.get_all_media(session)


@router.delete("/api/admin/media/{video_id}")
async def delete_media(
    video_id: int,
    request: Request,
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    await admin_service.delete_media(session, user, video_id, client_ip(request))
    return {"message": "Media deleted successfully"}


@router.put("/api/admin/media/{video_id}/status")
async def update_media_status(
    video_id: int,
    payload: StatusUpdateRequest,
    request: Request,
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Set media to pending, approved or rejected."""
    await admin_service.update_media_status(
        session, user["id"], video_id, payload.status, client_ip(request)
    )
    return {"message": "Media status updated successfully"}


# ---------------------------------------------------------------------------
# Locations
# ---------------------------------------------------------------------------

@router.get("/api/admin/locations")
async def get_locations(
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    return await tryout_service.list_locations(session)


@router.post("/api/admin/locations", status_code=status.HTTP_201_CREATED)
async def add_location(
    payload: LocationRequest,
    request: Request,
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    location = await admin_service.add_location(
        session, user["id"], payload.location, client_ip(request)
    )
    return {"message": "Location added successfully", "location": location}


@router.delete("/api/admin/locations/{location}")
async def delete_location(
    location: str,
    request: Request,
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Remove a location. Locations still used by tryouts can't be removed."""
    await admin_service.delete_location(session, user["id"], location, client_ip(request))
    return {"message": "Location deleted successfully"}


# ---------------------------------------------------------------------------
# Audit log
# ---------------------------------------------------------------------------

@router.get("/api/admin/logs")
async def get_logs(
    startDate: Optional[str] = None,
    endDate: Optional[str] = None,
    action: Optional[str] = None,
    entityType: Optional[str] = None,
    userId: Optional[int] = None,
    limit: int = 100,
    offset: int = 0,
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    return await admin_service.get_system_logs(
        session,
        start_date=startDate,
        end_date=endDate,
        action=action,
        entity_type=entityType,
        user_id=userId,
        limit=limit,
        offset=offset,
    )
