"""Scout route handlers: tryouts, invitations, shortlist, search and profile."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from pharaohs.database.db import get_db_session
from pharaohs.services import media_service, player_service, scout_service, tryout_service
from pharaohs.api.auth_dependencies import require_scout
from pharaohs.models.schemas import SendInvitationRequest, ShortlistRequest, TryoutRequest

logger = logging.getLogger(__name__)
router = APIRouter()


# ---------------------------------------------------------------------------
# Tryouts
# ---------------------------------------------------------------------------

@router.post("/api/scout/tryouts", status_code=status.HTTP_201_CREATED)
async def create_tryout(
    payload: TryoutRequest,
    user: dict = Depends(require_scout),
    session: AsyncSession = Depends(get_db_session),
):
    """Create a tryout; ``date`` and ``time`` are combined into one timestamp."""
    tryout = await tryout_service.create_tryout(
        session, user["id"], payload.name, payload.location, payload.date, payload.time
    )
    return {"message": "Tryout created successfully", "tryout": tryout}


@router.get("/api/scout/tryouts")
async def get_tryouts(
    user: dict = Depends(require_scout),
    session: AsyncSession = Depends(get_db_session),
):
    return await tryout_service.get_scout_tryouts(session, user["id"])


@router.put("/api/scout/tryouts/{tryout_id}")
async def update_tryout(
    tryout_id: int,
    payload: TryoutRequest,
    user: dict = Depends(require_scout),
    session: AsyncSession = Depends(get_db_session),
):
    tryout = await tryout_service.update_tryout(
        session,
        tryout_id,
        user["id"],
        payload.name,
        payload.location,
        payload.date,
        payload.time,
    )
    return {"message": "Tryout updated successfully", "tryout": tryout}


@router.delete("/api/scout/tryouts/{tryout_id}")
async def delete_tryout(
    tryout_id: int,
    user: dict = Depends(require_scout),
    session: AsyncSession = Depends(get_db_session),
):
    await tryout_service.delete_tryout(session, tryout_id, user["id"])
    return {"message": "Tryout deleted successfully"}


# ---------------------------------------------------------------------------
# Invitations
# ---------------------------------------------------------------------------

@router.post("/api/scout/invite", status_code=status.HTTP_201_CREATED)
async def invite_player(
    payload: SendInvitationRequest,
    user: dict = Depends(require_scout),
    session: AsyncSession = Depends(get_db_session),
):
    """Invite a player to one of the caller's tryouts (409 when already invited)."""
    invitation = await tryout_service.send_invitation(
        session, user["id"], payload.tryout_id, payload.player_id
    )
    return {"message": "Invitation sent successfully", "invitation": invitation}


@router.get("/api/scout/invitations")
async def get_invitations(
    user: dict = Depends(require_scout),
    session: AsyncSession = Depends(get_db_session),
):
    return await tryout_service.get_scout_invitations(session, user["id"])


@router.delete("/api/scout/invitations/{invitation_id}")
async def cancel_invitation(
    invitation_id: int,
    user: dict = Depends(require_scout),
    session: AsyncSession = Depends(get_db_session),
):
    """Cancel a pending invitation. Answered invitations can't be canceled."""
    await tryout_service.cancel_invitation(session, invitation_id, user["id"])
    return {"message": "Invitation canceled successfully"}


# ---------------------------------------------------------------------------
# Shortlist
# ---------------------------------------------------------------------------

@router.post("/api/scout/shortlist", status_code=status.HTTP_201_CREATED)
async def add_to_shortlist(
    payload: ShortlistRequest,
    user: dict = Depends(require_scout),
    session: AsyncSession = Depends(get_db_session),
):
    return await scout_service.add_to_shortlist(session, user["id"], payload.player_id)


@router.get("/api/scout/shortlist")
async def get_shortlist(
    user: dict = Depends(require_scout),
    session: AsyncSession = Depends(get_db_session),
):
    return await scout_service.get_shortlist(session, user["id"])


@router.delete("/api/scout/shortlist/{player_id}")
async def remove_from_shortlist(
    player_id: int,
    user: dict = Depends(require_scout),
    session: AsyncSession = Depends(get_db_session),
):
    await scout_service.remove_from_shortlist(session, user["id"], player_id)
    return {"message": "Player removed from shortlist"}


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------

@router.get("/api/scout/search")
async def search_players(
    name: Optional[str] = None,
    position: Optional[str] = None,
    club: Optional[str] = None,
    minAge: Optional[int] = None,
    maxAge: Optional[int] = None,
    hasVideos: bool = False,
    minRating: Optional[float] = None,
    sortBy: Optional[str] = None,
    sortOrder: Optional[str] = None,
    limit: int = 20,
    offset: int = 0,
    user: dict = Depends(require_scout),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Search players by name, position, club, age, media and rating.

    Sortable by name, age, rating or created_at.
    """
    return await scout_service.search_players(
        session,
        user["id"],
        name=name,
        position=position,
        club=club,
        min_age=minAge,
        max_age=maxAge,
        has_videos=hasVideos,
        min_rating=minRating,
        sort_by=sortBy,
        sort_order=sortOrder,
        limit=limit,
        offset=offset,
    )


@router.get("/api/scout/filter-options")
async def get_filter_options(
    user: dict = Depends(require_scout),
    session: AsyncSession = Depends(get_db_session),
):
    return await player_service.get_filter_options(session)


@router.get("/api/scout/locations")
async def get_locations(
    user: dict = Depends(require_scout),
    session: AsyncSession = Depends(get_db_session),
):
    """Locations a tryout can be held at."""
    return await tryout_service.list_locations(session)


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------

@router.get("/api/scout/profile")
async def get_profile(
    user: dict = Depends(require_scout),
    session: AsyncSession = Depends(get_db_session),
):
    return await scout_service.get_profile(session, user["id"])


@router.put("/api/scout/profile")
async def update_profile(
    name: Optional[str] = Form(None),
    organization: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    updateType: Optional[str] = Form(None),
    profileImage: Optional[UploadFile] = File(None),
    user: dict = Depends(require_scout),
    session: AsyncSession = Depends(get_db_session),
):
    if profileImage:
        media_service.check_upload_size(profileImage.size)
    image_bytes = await profileImage.read() if profileImage else None
    return await scout_service.update_profile(
        session,
        user["id"],
        {"name": name, "organization": organization, "phone": phone},
        image_bytes=image_bytes,
        image_content_type=profileImage.content_type if profileImage else None,
        image_only=updateType == "image",
    )


@router.delete("/api/scout/profile/picture")
async def delete_profile_picture(
    user: dict = Depends(require_scout),
    session: AsyncSession = Depends(get_db_session),
):
    return await scout_service.delete_profile_picture(session, user["id"])


@router.get("/api/scout/public-profile/{scout_id}")
async def get_public_profile(
    scout_id: int,
    session: AsyncSession = Depends(get_db_session),
):
    return await scout_service.get_public_profile(session, scout_id)


@router.get("/api/scout/public-tryouts/{scout_id}")
async def get_public_tryouts(
    scout_id: int,
    session: AsyncSession = Depends(get_db_session),
):
    return await scout_service.get_public_tryouts(session, scout_id)
