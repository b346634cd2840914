"""
Scout service: scout profiles, shortlists and player search.
"""

from typing import Any, Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, func, exists, and_
from sqlalchemy.exc import IntegrityError
from pharaohs.database.models import (
    User,
    UserRole,
    ScoutProfile,
    PlayerProfile,
    PlayerStats,
    Shortlist,
    Video,
    Tryout,
    Invitation,
    NotificationType,
)
from pharaohs.services import media_service, notification_service, player_service, tryout_service
from pharaohs.services.errors import ConflictError, NotFoundError, ValidationError
from pharaohs.utils.constants import SCOUT_PROFILE_FOLDER
from pharaohs.utils.datetime_utils import calculate_age
import logging

logger = logging.getLogger(__name__)

SEARCH_VIDEO_SAMPLE = 3


def _scout_to_dict(user: User, profile: Optional[ScoutProfile]) -> Dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "organization": profile.organization if profile else None,
        "phone": profile.phone if profile else None,
        "profileImage": profile.profile_image if profile else None,
        "createdAt": user.created_at.isoformat() if user.created_at else None,
    }


async def get_scout_user(session: AsyncSession, scout_id: int) -> User:
    """
    Raises:
        NotFoundError: If no scout account has this ID
    """
    result = await session.execute(
        select(User).where(User.id == scout_id, User.role == UserRole.SCOUT.value)
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError("Scout not found")
    return user


async def _get_profile_row(session: AsyncSession, scout_id: int) -> Optional[ScoutProfile]:
    result = await session.execute(select(ScoutProfile).where(ScoutProfile.user_id == scout_id))
    return result.scalar_one_or_none()


async def _get_or_create_profile(session: AsyncSession, scout_id: int) -> ScoutProfile:
    profile = await _get_profile_row(session, scout_id)
    if profile is None:
        profile = ScoutProfile(user_id=scout_id)
        session.add(profile)
        await session.flush()
    return profile


async def get_profile(session: AsyncSession, scout_id: int) -> Dict:
    """The signed-in scout's profile with their shortlist."""
    user = await get_scout_user(session, scout_id)
    profile = await _get_profile_row(session, scout_id)
    return {**_scout_to_dict(user, profile), "shortlists": await get_shortlist(session, scout_id)}


async def update_profile(
    session: AsyncSession,
    scout_id: int,
    fields: Dict[str, Any],
    image_bytes: Optional[bytes] = None,
    image_content_type: Optional[str] = None,
    image_only: bool = False,
) -> Dict:
    """
    Upsert a scout's profile (name, organization, phone, picture).

    Only keys present in ``fields`` are changed.
    """
    if image_only and not image_bytes:
        raise ValidationError("No file uploaded")

    user = await get_scout_user(session, scout_id)
    profile = await _get_or_create_profile(session, scout_id)

    if image_bytes:
        uploaded = await media_service.replace_profile_image(
            image_bytes,
            image_content_type,
            SCOUT_PROFILE_FOLDER,
            scout_id,
            old_key=profile.profile_image_key,
            old_url=profile.profile_image,
        )
        profile.profile_image = uploaded["url"]
        profile.profile_image_key = uploaded["key"]

    if image_only:
        await session.flush()
        return {"message": "Profile image updated successfully", "profileImage": profile.profile_image}

    if fields.get("name"):
        user.name = fields["name"].strip()
    for field in ("organization", "phone"):
        if fields.get(field) is not None:
            setattr(profile, field, fields[field])

    await session.flush()
    return {"message": "Profile updated successfully", "profile": _scout_to_dict(user, profile)}


async def delete_profile_picture(session: AsyncSession, scout_id: int) -> Dict:
    """
    Raises:
        NotFoundError: If the scout has no profile picture
    """
    profile = await _get_profile_row(session, scout_id)
    if profile is None or not profile.profile_image:
        raise NotFoundError("No profile image found")

    await media_service.delete_remote(profile.profile_image_key, profile.profile_image)
    profile.profile_image = None
    profile.profile_image_key = None
    await session.flush()
    return {"message": "Profile picture deleted successfully"}


async def get_public_profile(session: AsyncSession, scout_id: int) -> Dict:
    """A scout's public profile with tryout and invitation counts."""
    user = await get_scout_user(session, scout_id)
    profile = await _get_profile_row(session, scout_id)

    tryout_count = await session.execute(
        select(func.count(Tryout.id)).where(Tryout.scout_id == scout_id)
    )
    invitation_count = await session.execute(
        select(func.count(Invitation.id))
        .join(Tryout, Tryout.id == Invitation.tryout_id)
        .where(Tryout.scout_id == scout_id)
    )
    scout = _scout_to_dict(user, profile)
    scout.pop("phone")
    return {
        **scout,
        "tryoutCount": tryout_count.scalar_one() or 0,
        "invitationCount": invitation_count.scalar_one() or 0,
    }


async def get_public_tryouts(session: AsyncSession, scout_id: int) -> List[Dict]:
    await get_scout_user(session, scout_id)
    return await tryout_service.get_public_tryouts(session, scout_id)


# ---------------------------------------------------------------------------
# Shortlist
# ---------------------------------------------------------------------------

async def add_to_shortlist(session: AsyncSession, scout_id: int, player_id: Optional[int]) -> Dict:
    """
    Shortlist a player and notify them.

    Raises:
        ValidationError: If no player ID was given
        NotFoundError: If the player doesn't exist
        ConflictError: If the player is already on the shortlist
    """
    if not player_id:
        raise ValidationError("Player ID is required")
    await player_service.get_player_user(session, player_id)

    existing = await session.execute(
        select(Shortlist.id).where(Shortlist.scout_id == scout_id, Shortlist.player_id == player_id)
    )
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("Player already shortlisted")

    try:
        async with session.begin_nested():
            session.add(Shortlist(scout_id=scout_id, player_id=player_id))
            await session.flush()
    except IntegrityError:
        raise ConflictError("Player already shortlisted")

    scout = await get_scout_user(session, scout_id)
    profile = await _get_profile_row(session, scout_id)
    await notification_service.notify(
        session,
        player_id,
        notification_service.shortlist_message(
            scout.name, profile.organization if profile else None
        ),
        NotificationType.SHORTLIST,
    )
    logger.info(f"Scout {scout_id} shortlisted player {player_id}")
    return {"message": "Player added to shortlist"}


async def get_shortlist(session: AsyncSession, scout_id: int) -> List[Dict]:
    result = await session.execute(
        select(User, PlayerProfile)
        .join(Shortlist, Shortlist.player_id == User.id)
        .outerjoin(PlayerProfile, PlayerProfile.user_id == User.id)
        .where(Shortlist.scout_id == scout_id)
        .order_by(Shortlist.created_at.desc(), Shortlist.id.desc())
    )
    return [
        {
            "player_id": user.id,
            "name": user.name,
            "email": user.email,
            "position": profile.position if profile else None,
            "club": profile.club if profile else None,
            "rating": profile.rating if profile else None,
        }
        for user, profile in result.all()
    ]


async def remove_from_shortlist(session: AsyncSession, scout_id: int, player_id: int) -> None:
    """Removing a player that isn't shortlisted is a no-op."""
    await session.execute(
        delete(Shortlist).where(Shortlist.scout_id == scout_id, Shortlist.player_id == player_id)
    )


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------

SORT_COLUMNS = {
    "name": User.name,
    # Younger players have later birth dates, so age order is reversed
    "age": PlayerProfile.date_of_birth,
    "rating": PlayerProfile.rating,
    "club": PlayerProfile.club,
    "position": PlayerProfile.position,
    "created_at": User.created_at,
}


async def search_players(
    session: AsyncSession,
    scout_id: int,
    name: Optional[str] = None,
    position: Optional[str] = None,
    club: Optional[str] = None,
    min_age: Optional[int] = None,
    max_age: Optional[int] = None,
    has_videos: bool = False,
    min_rating: Optional[float] = None,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
    limit: int = 20,
    offset: int = 0,
) -> Dict:
    """
    Search players for a scout.

    Returns:
        Dict with "players" (each with isShortlisted, videoCount, hasStats,
        stats and a sample of videos) and "pagination"
        {total, limit, offset, hasMore}
    """
    limit = max(limit, 1)
    offset = max(offset, 0)

    conditions = [User.role == UserRole.PLAYER.value]
    if name:
        conditions.append(func.lower(User.name).like(f"%{name.lower()}%"))
    if position:
        conditions.append(PlayerProfile.position == position)
    if club:
        conditions.append(PlayerProfile.club == club)
    conditions.extend(player_service.age_bounds(min_age, max_age))
    if has_videos:
        conditions.append(exists().where(Video.player_id == User.id))
    if min_rating is not None:
        conditions.append(and_(PlayerProfile.rating.isnot(None), PlayerProfile.rating >= min_rating))

    base = (
        select(User, PlayerProfile)
        .outerjoin(PlayerProfile, PlayerProfile.user_id == User.id)
        .where(*conditions)
    )

    count_result = await session.execute(select(func.count()).select_from(base.subquery()))
    total = count_result.scalar_one() or 0

    sort_column = SORT_COLUMNS.get(sort_by or "name", User.name)
    descending = (sort_order or "").lower() == "desc"
    if sort_by == "age":
        descending = not descending
    order = sort_column.desc() if descending else sort_column.asc()

    result = await session.execute(base.order_by(order, User.id).limit(limit).offset(offset))
    rows = result.all()
    player_ids = [user.id for user, _ in rows]

    shortlisted = set()
    video_counts: Dict[int, int] = {}
    stats_by_player: Dict[int, Dict] = {}
    if player_ids:
        shortlisted_result = await session.execute(
            select(Shortlist.player_id).where(
                Shortlist.scout_id == scout_id, Shortlist.player_id.in_(player_ids)
            )
        )
        shortlisted = set(shortlisted_result.scalars().all())

        counts_result = await session.execute(
            select(Video.player_id, func.count(Video.id))
            .where(Video.player_id.in_(player_ids))
            .group_by(Video.player_id)
        )
        video_counts = dict(counts_result.all())

        stats_result = await session.execute(
            select(PlayerStats).where(PlayerStats.player_id.in_(player_ids))
        )
        for stats in stats_result.scalars().all():
            stats_by_player[stats.player_id] = {
                field: getattr(stats, field) for field in player_service.STATS_FIELDS
            }

    videos = await player_service.list_videos_for_players(session, player_ids, SEARCH_VIDEO_SAMPLE)

    players = []
    for user, profile in rows:
        players.append(
            {
                "id": user.id,
                "name": user.name,
                "email": user.email,
                "createdAt": user.created_at.isoformat() if user.created_at else None,
                "position": profile.position if profile else None,
                "club": profile.club if profile else None,
                "bio": profile.bio if profile else None,
                "profile_image": profile.profile_image if profile else None,
                "rating": profile.rating if profile else None,
                "age": calculate_age(profile.date_of_birth) if profile else None,
                "videoCount": video_counts.get(user.id, 0),
                "isShortlisted": user.id in shortlisted,
                "hasStats": user.id in stats_by_player,
                "stats": stats_by_player.get(user.id),
                "videos": videos.get(user.id, []),
            }
        )

    return {
        "players": players,
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "hasMore": offset + limit < total,
        },
    }
