"""Player route handlers: profiles, media, engagement, invitations and stats."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from pharaohs.database.db import get_db_session
from pharaohs.database.models import UserRole
from pharaohs.services import (
    engagement_service,
    media_service,
    player_service,
    scout_service,
    tryout_service,
)
from pharaohs.api.auth_dependencies import (
    require_user,
    require_player,
    require_scout,
    require_player_or_scout,
)
from pharaohs.models.schemas import (
    CommentRequest,
    InvitationStatusRequest,
    LikeRequest,
    PerformanceStatsRequest,
    SendInvitationRequest,
    TryoutRequest,
    VideoUpdateRequest,
)

logger = logging.getLogger(__name__)
router = APIRouter()


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------

@router.get("/api/player/profile")
async def get_profile(
    user: dict = Depends(require_player_or_scout),
    session: AsyncSession = Depends(get_db_session),
):
    """Players get their profile and media, scouts their profile and shortlist."""
    if user["role"] == UserRole.SCOUT.value:
        return await scout_service.get_profile(session, user["id"])
    return await player_service.get_own_profile(session, user["id"])


@router.put("/api/player/profile")
async def update_profile(
    name: Optional[str] = Form(None),
    position: Optional[str] = Form(None),
    club: Optional[str] = Form(None),
    bio: Optional[str] = Form(None),
    date_of_birth: Optional[str] = Form(None),
    organization: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    updateType: Optional[str] = Form(None),
    profileImage: Optional[UploadFile] = File(None),
    user: dict = Depends(require_player_or_scout),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Update the caller's profile. Multipart form with an optional
    ``profileImage``; ``updateType=image`` only replaces the picture.
    """
    if profileImage:
        media_service.check_upload_size(profileImage.size)
    image_bytes = await profileImage.read() if profileImage else None
    image_content_type = profileImage.content_type if profileImage else None
    image_only = updateType == "image"

    if user["role"] == UserRole.SCOUT.value:
        return await scout_service.update_profile(
            session,
            user["id"],
            {"name": name, "organization": organization, "phone": phone},
            image_bytes=image_bytes,
            image_content_type=image_content_type,
            image_only=image_only,
        )
    return await player_service.update_profile(
        session,
        user["id"],
        {
            "name": name,
            "position": position,
            "club": club,
            "bio": bio,
            "date_of_birth": date_of_birth,
        },
        image_bytes=image_bytes,
        image_content_type=image_content_type,
        image_only=image_only,
    )


@router.delete("/api/player/profile/picture")
async def delete_profile_picture(
    user: dict = Depends(require_player),
    session: AsyncSession = Depends(get_db_session),
):
    return await player_service.delete_profile_picture(session, user["id"])


@router.get("/api/player/public-profile/{player_id}")
async def get_public_profile(
    player_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """A player's public profile with age, media and performance stats."""
    return await player_service.get_public_profile(session, player_id)


@router.get("/api/player/all")
async def get_all_players(
    page: int = 1,
    limit: int = 20,
    club: Optional[str] = None,
    position: Optional[str] = None,
    search: Optional[str] = None,
    minRating: Optional[float] = None,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    return await player_service.get_all_players(
        session,
        page=page,
        limit=limit,
        club=club,
        position=position,
        search=search,
        min_rating=minRating,
    )


@router.get("/api/player/dashboard")
async def get_dashboard(
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    return await player_service.get_dashboard(session, user)


@router.get("/api/player/filter-options")
async def get_filter_options(
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Distinct positions and clubs plus the age range of registered players."""
    return await player_service.get_filter_options(session)


# ---------------------------------------------------------------------------
# Media
# ---------------------------------------------------------------------------

@router.get("/api/player/videos")
async def get_videos(
    user: dict = Depends(require_player),
    session: AsyncSession = Depends(get_db_session),
):
    return await media_service.get_player_videos(session, user["id"])


@router.post("/api/player/upload", status_code=status.HTTP_201_CREATED)
async def upload_media(
    file: Optional[UploadFile] = File(None),
    description: Optional[str] = Form(None),
    user: dict = Depends(require_player),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Upload a video or image to S3 and record it.

    Accepts MP4, WebM, JPEG and PNG files up to 20MB. Nothing is recorded
    when the upload fails.
    """
    if file:
        media_service.check_upload_size(file.size)
    file_bytes = await file.read() if file else b""
    content_type = file.content_type if file else None
    video = await media_service.upload_media(
        session, user["id"], file_bytes, content_type, description
    )
    return {"message": "Media uploaded successfully", "video": video}


@router.get("/api/player/videos/likes")
async def get_video_likes(
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    return await engagement_service.get_video_likes(session, user["id"])


@router.post("/api/player/videos/like")
async def like_video(
    payload: LikeRequest,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Like a video. Liking it again succeeds without counting twice."""
    result = await engagement_service.like_video(session, user, payload.video_id)
    status_code = status.HTTP_200_OK if result["alreadyLiked"] else status.HTTP_201_CREATED
    return JSONResponse(status_code=status_code, content=result)


@router.delete("/api/player/videos/like/{video_id}")
async def unlike_video(
    video_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    return await engagement_service.unlike_video(session, user, video_id)


@router.post("/api/player/videos/comment", status_code=status.HTTP_201_CREATED)
async def add_comment(
    payload: CommentRequest,
    user: dict = Depends(require_player),
    session: AsyncSession = Depends(get_db_session),
):
    comment = await engagement_service.add_comment(
        session, user, payload.video_id, payload.content
    )
    return {"message": "Comment added successfully", "comment": comment}


@router.get("/api/player/videos/{video_id}/comments")
async def get_comments(
    video_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Comments on a video, oldest first."""
    return await engagement_service.get_comments(session, video_id)


@router.delete("/api/player/videos/comment/{comment_id}")
async def delete_comment(
    comment_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Authors can delete their own comments; admins can delete any."""
    await engagement_service.delete_comment(session, user, comment_id)
    return {"message": "Comment deleted successfully"}


@router.put("/api/player/videos/{video_id}")
async def update_video(
    video_id: int,
    payload: VideoUpdateRequest,
    user: dict = Depends(require_player),
    session: AsyncSession = Depends(get_db_session),
):
    video = await media_service.update_video_description(
        session, video_id, user["id"], payload.description
    )
    return {"message": "Video updated successfully", "video": video}


@router.delete("/api/player/videos/{video_id}")
async def delete_video(
    video_id: int,
    user: dict = Depends(require_player),
    session: AsyncSession = Depends(get_db_session),
):
    """Delete one of the caller's videos. A failed S3 delete is only logged."""
    await media_service.delete_video(session, video_id, user)
    return {"message": "Video deleted successfully"}


# ---------------------------------------------------------------------------
# Invitations & tryouts
# ---------------------------------------------------------------------------

@router.get("/api/player/invitations")
async def get_invitations(
    user: dict = Depends(require_player),
    session: AsyncSession = Depends(get_db_session),
):
    return await tryout_service.get_player_invitations(session, user["id"])


@router.put("/api/player/invitations/{invitation_id}")
async def respond_to_invitation(
    invitation_id: int,
    payload: InvitationStatusRequest,
    user: dict = Depends(require_player),
    session: AsyncSession = Depends(get_db_session),
):
    """Accept or decline an invitation."""
    invitation = await tryout_service.respond_to_invitation(
        session, invitation_id, user["id"], payload.status
    )
    return {"message": f"Invitation {payload.status} successfully", "invitation": invitation}


@router.post("/api/player/invitations/send", status_code=status.HTTP_201_CREATED)
async def send_invitation(
    payload: SendInvitationRequest,
    user: dict = Depends(require_scout),
    session: AsyncSession = Depends(get_db_session),
):
    invitation = await tryout_service.send_invitation(
        session, user["id"], payload.tryout_id, payload.player_id
    )
    return {"message": "Invitation sent successfully", "invitation": invitation}


@router.get("/api/player/scout-invitations")
async def get_scout_invitations(
    user: dict = Depends(require_scout),
    session: AsyncSession = Depends(get_db_session),
):
    return await tryout_service.get_scout_invitations(session, user["id"])


@router.post("/api/player/tryouts", status_code=status.HTTP_201_CREATED)
async def create_tryout(
    payload: TryoutRequest,
    user: dict = Depends(require_scout),
    session: AsyncSession = Depends(get_db_session),
):
    tryout = await tryout_service.create_tryout(
        session, user["id"], payload.name, payload.location, payload.date, payload.time
    )
    return {"message": "Tryout created successfully", "tryout": tryout}


@router.get("/api/player/tryouts")
async def get_tryouts(
    user: dict = Depends(require_scout),
    session: AsyncSession = Depends(get_db_session),
):
    return await tryout_service.get_scout_tryouts(session, user["id"])


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------

@router.get("/api/player/stats")
async def get_stats(
    user: dict = Depends(require_player),
    session: AsyncSession = Depends(get_db_session),
):
    return await player_service.get_stats_summary(session, user["id"])


@router.post("/api/player/performance-stats")
async def update_performance_stats(
    payload: PerformanceStatsRequest,
    user: dict = Depends(require_player),
    session: AsyncSession = Depends(get_db_session),
):
    """Replace cumulative match stats and recompute the player's rating."""
    return await player_service.update_performance_stats(
        session, user["id"], payload.model_dump()
    )
