"""
Player service: profiles, performance stats and the derived rating.
"""

import math
from typing import Any, Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_, and_
from pharaohs.database.models import (
    User,
    UserRole,
    PlayerProfile,
    PlayerStats,
    Video,
    Invitation,
    InvitationStatus,
    Tryout,
)
from pharaohs.services import media_service
from pharaohs.services.errors import NotFoundError, ValidationError
from pharaohs.utils.constants import (
    DEFAULT_MAX_AGE,
    DEFAULT_MIN_AGE,
    MAX_RATING,
    MAX_STAT_VALUE,
    MIN_RATING,
    PLAYER_PROFILE_FOLDER,
)
from pharaohs.utils.datetime_utils import calculate_age, parse_date, today, years_before
import logging

logger = logging.getLogger(__name__)

STATS_FIELDS = ("matches_played", "goals", "assists", "yellow_cards", "red_cards")


# ---------------------------------------------------------------------------
# Rating
# ---------------------------------------------------------------------------

def calculate_rating(
    matches_played: int, goals: int, assists: int, yellow_cards: int, red_cards: int
) -> float:
    """
    Rating on a 1-5 scale from cumulative stats.

    raw = (2*goals + assists - yellow_cards - 3*red_cards) / matches_played,
    scaled from [-3, 3] onto [1, 5] and clamped. No matches means the minimum.

    10 matches, 5 goals, 3 assists and 1 yellow card rate 3.80.
    """
    if matches_played <= 0:
        return MIN_RATING
    raw = (goals * 2 + assists - yellow_cards - red_cards * 3) / matches_played
    scaled = (raw + 3) / 6 * 4 + 1
    return max(MIN_RATING, min(MAX_RATING, scaled))


def _coerce_stat(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a non-negative integer")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a non-negative integer")
    if number < 0 or not number.is_integer():
        raise ValidationError(f"{name} must be a non-negative integer")
    if number > MAX_STAT_VALUE:
        raise ValidationError(f"{name} must be at most {MAX_STAT_VALUE}")
    return int(number)


def validate_stats(payload: Dict[str, Any]) -> Dict[str, int]:
    """
    Raises:
        ValidationError: If a field is missing, or names the first field that
            is not a non-negative integer
    """
    if any(payload.get(field) is None for field in STATS_FIELDS):
        raise ValidationError("All statistics fields are required")
    return {field: _coerce_stat(field, payload[field]) for field in STATS_FIELDS}


def _stats_to_dict(stats: Optional[PlayerStats]) -> Optional[Dict]:
    if stats is None:
        return None
    return {field: getattr(stats, field) for field in STATS_FIELDS}


async def get_performance_stats(session: AsyncSession, player_id: int) -> Optional[Dict]:
    result = await session.execute(select(PlayerStats).where(PlayerStats.player_id == player_id))
    return _stats_to_dict(result.scalar_one_or_none())


async def update_performance_stats(
    session: AsyncSession, player_id: int, payload: Dict[str, Any]
) -> Dict:
    """
    Replace a player's cumulative stats and recompute their rating.

    Args:
        session: Database session
        player_id: Player user ID
        payload: matches_played, goals, assists, yellow_cards, red_cards

    Returns:
        Dict with "message", "stats" and "rating" formatted to two decimals
    """
    stats = validate_stats(payload)

    result = await session.execute(select(PlayerStats).where(PlayerStats.player_id == player_id))
    record = result.scalar_one_or_none()
    if record is None:
        record = PlayerStats(player_id=player_id, **stats)
        session.add(record)
    else:
        for field, value in stats.items():
            setattr(record, field, value)

    rating = calculate_rating(**stats)
    profile = await get_or_create_profile(session, player_id)
    profile.rating = rating
    await session.flush()

    logger.info(f"Player {player_id} rating updated to {rating:.2f}")
    return {
        "message": "Performance statistics updated successfully",
        "stats": stats,
        "rating": f"{rating:.2f}",
    }


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------

def _profile_to_dict(profile: Optional[PlayerProfile]) -> Dict:
    if profile is None:
        return {
            "position": None,
            "club": None,
            "bio": None,
            "date_of_birth": None,
            "profile_image": None,
            "rating": None,
        }
    return {
        "position": profile.position,
        "club": profile.club,
        "bio": profile.bio,
        "date_of_birth": profile.date_of_birth.isoformat() if profile.date_of_birth else None,
        "profile_image": profile.profile_image,
        "rating": profile.rating,
    }


async def get_player_user(session: AsyncSession, player_id: int) -> User:
    """
    Raises:
        NotFoundError: If no player account has this ID
    """
    result = await session.execute(
        select(User).where(User.id == player_id, User.role == UserRole.PLAYER.value)
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError("Player not found")
    return user


async def get_profile_row(session: AsyncSession, user_id: int) -> Optional[PlayerProfile]:
    result = await session.execute(select(PlayerProfile).where(PlayerProfile.user_id == user_id))
    return result.scalar_one_or_none()


async def get_or_create_profile(session: AsyncSession, user_id: int) -> PlayerProfile:
    """Profiles are created lazily on the first write."""
    profile = await get_profile_row(session, user_id)
    if profile is None:
        profile = PlayerProfile(user_id=user_id)
        session.add(profile)
        await session.flush()
    return profile


async def get_own_profile(session: AsyncSession, user_id: int) -> Dict:
    """The signed-in player's profile with their media."""
    user = await get_player_user(session, user_id)
    profile = await get_profile_row(session, user_id)
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        **_profile_to_dict(profile),
        "age": calculate_age(profile.date_of_birth) if profile else None,
        "videos": await media_service.get_player_videos(session, user_id),
    }


async def update_profile(
    session: AsyncSession,
    user_id: int,
    fields: Dict[str, Any],
    image_bytes: Optional[bytes] = None,
    image_content_type: Optional[str] = None,
    image_only: bool = False,
) -> Dict:
    """
    Upsert a player's profile.

    Only keys present in ``fields`` are changed. A new profile image is
    uploaded before the old one is removed from storage.

    Args:
        session: Database session
        user_id: Player user ID
        fields: Any of name, position, club, bio, date_of_birth
        image_bytes: Optional new profile picture
        image_content_type: MIME type of the picture
        image_only: Only replace the picture, ignore ``fields``
    """
    if image_only and not image_bytes:
        raise ValidationError("No file uploaded")

    profile = await get_or_create_profile(session, user_id)

    if image_bytes:
        uploaded = await media_service.replace_profile_image(
            image_bytes,
            image_content_type,
            PLAYER_PROFILE_FOLDER,
            user_id,
            old_key=profile.profile_image_key,
            old_url=profile.profile_image,
        )
        profile.profile_image = uploaded["url"]
        profile.profile_image_key = uploaded["key"]

    if image_only:
        await session.flush()
        return {"message": "Profile image updated successfully", "profileImage": profile.profile_image}

    name = fields.get("name")
    if name:
        user = await get_player_user(session, user_id)
        user.name = name.strip()

    for field in ("position", "club", "bio"):
        if field in fields and fields[field] is not None:
            setattr(profile, field, fields[field])

    if fields.get("date_of_birth"):
        try:
            profile.date_of_birth = parse_date(fields["date_of_birth"])
        except ValueError:
            raise ValidationError("Invalid date of birth")

    await session.flush()
    return {
        "message": "Profile updated successfully",
        "profile": await get_own_profile(session, user_id),
    }


async def delete_profile_picture(session: AsyncSession, user_id: int) -> Dict:
    """
    Raises:
        NotFoundError: If the player has no profile picture
    """
    profile = await get_profile_row(session, user_id)
    if profile is None or not profile.profile_image:
        raise NotFoundError("No profile image found")

    await media_service.delete_remote(profile.profile_image_key, profile.profile_image)
    profile.profile_image = None
    profile.profile_image_key = None
    await session.flush()
    return {"message": "Profile picture deleted successfully"}


def _player_summary(user: User, profile: Optional[PlayerProfile]) -> Dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        **_profile_to_dict(profile),
        "age": calculate_age(profile.date_of_birth) if profile else None,
    }


async def get_public_profile(session: AsyncSession, player_id: int) -> Dict:
    """A player's public profile with age, media and stats."""
    user = await get_player_user(session, player_id)
    profile = await get_profile_row(session, player_id)
    return {
        **_player_summary(user, profile),
        "videos": await media_service.get_player_videos(session, player_id),
        "stats": await get_performance_stats(session, player_id),
    }


async def get_all_players(
    session: AsyncSession,
    page: int = 1,
    limit: int = 20,
    club: Optional[str] = None,
    position: Optional[str] = None,
    search: Optional[str] = None,
    min_rating: Optional[float] = None,
) -> Dict:
    """
    Browse players with pagination and simple filters.

    Returns:
        Dict with "players" (each with videos, stats, hasStats) and
        "pagination" {total, page, limit, totalPages}
    """
    page = max(page, 1)
    limit = max(limit, 1)

    conditions = [User.role == UserRole.PLAYER.value]
    if club:
        conditions.append(PlayerProfile.club == club)
    if position:
        conditions.append(PlayerProfile.position == position)
    if search:
        pattern = f"%{search}%"
        conditions.append(
            or_(
                User.name.ilike(pattern),
                PlayerProfile.position.ilike(pattern),
                PlayerProfile.club.ilike(pattern),
            )
        )
    if min_rating is not None:
        conditions.append(and_(PlayerProfile.rating.isnot(None), PlayerProfile.rating >= min_rating))

    base = select(User, PlayerProfile).outerjoin(PlayerProfile, PlayerProfile.user_id == User.id)
    count_result = await session.execute(
        select(func.count()).select_from(base.where(*conditions).subquery())
    )
    total = count_result.scalar_one() or 0

    result = await session.execute(
        base.where(*conditions).order_by(User.id).limit(limit).offset((page - 1) * limit)
    )
    rows = result.all()

    players = []
    for user, profile in rows:
        stats = await get_performance_stats(session, user.id)
        summary = _player_summary(user, profile)
        summary["rating"] = summary["rating"] or 0
        players.append(
            {
                **summary,
                "videos": await media_service.get_player_videos(session, user.id),
                "stats": stats,
                "hasStats": stats is not None,
            }
        )

    return {
        "players": players,
        "pagination": {
            "total": total,
            "page": page,
            "limit": limit,
            "totalPages": math.ceil(total / limit),
        },
    }


async def get_filter_options(session: AsyncSession) -> Dict:
    """Distinct positions and clubs, and the age range of players."""
    positions_result = await session.execute(
        select(PlayerProfile.position)
        .where(PlayerProfile.position.isnot(None), PlayerProfile.position != "")
        .distinct()
        .order_by(PlayerProfile.position)
    )
    clubs_result = await session.execute(
        select(PlayerProfile.club)
        .where(PlayerProfile.club.isnot(None), PlayerProfile.club != "")
        .distinct()
        .order_by(PlayerProfile.club)
    )
    dob_result = await session.execute(
        select(func.min(PlayerProfile.date_of_birth), func.max(PlayerProfile.date_of_birth))
    )
    oldest_dob, youngest_dob = dob_result.one()

    age_range = {"minAge": DEFAULT_MIN_AGE, "maxAge": DEFAULT_MAX_AGE}
    if oldest_dob and youngest_dob:
        age_range = {
            "minAge": calculate_age(parse_date(youngest_dob)),
            "maxAge": calculate_age(parse_date(oldest_dob)),
        }

    return {
        "positions": list(positions_result.scalars().all()),
        "clubs": list(clubs_result.scalars().all()),
        "ageRange": age_range,
    }


# ---------------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------------

async def _count(session: AsyncSession, query) -> int:
    result = await session.execute(query)
    return result.scalar_one() or 0


async def get_stats_summary(session: AsyncSession, player_id: int) -> Dict:
    """Counts shown on the player's stats page."""
    profile = await get_profile_row(session, player_id)
    return {
        "mediaCount": await media_service.count_player_media(session, player_id),
        "invitationCount": await _count(
            session, select(func.count(Invitation.id)).where(Invitation.player_id == player_id)
        ),
        "pendingCount": await _count(
            session,
            select(func.count(Invitation.id)).where(
                Invitation.player_id == player_id,
                Invitation.status == InvitationStatus.PENDING.value,
            ),
        ),
        "performanceStats": await get_performance_stats(session, player_id),
        "rating": profile.rating if profile and profile.rating is not None else 0,
    }


async def get_dashboard(session: AsyncSession, user: Dict) -> Dict:
    """Role-specific dashboard summary."""
    role = user["role"]
    user_id = user["id"]
    data: Dict[str, Any] = {}

    if role == UserRole.PLAYER.value:
        data = {
            "name": user["name"],
            "mediaCount": await media_service.count_player_media(session, user_id),
            "pendingInvitations": await _count(
                session,
                select(func.count(Invitation.id)).where(
                    Invitation.player_id == user_id,
                    Invitation.status == InvitationStatus.PENDING.value,
                ),
            ),
            "recentMedia": await media_service.get_player_videos(session, user_id, limit=3),
        }
    elif role == UserRole.SCOUT.value:
        recent = await session.execute(
            select(Tryout).where(Tryout.scout_id == user_id).order_by(Tryout.date.desc()).limit(3)
        )
        data = {
            "tryoutCount": await _count(
                session, select(func.count(Tryout.id)).where(Tryout.scout_id == user_id)
            ),
            "invitationCount": await _count(
                session,
                select(func.count(Invitation.id))
                .join(Tryout, Tryout.id == Invitation.tryout_id)
                .where(Tryout.scout_id == user_id),
            ),
            "recentTryouts": [
                {"name": t.name, "location": t.location, "date": t.date.isoformat()}
                for t in recent.scalars().all()
            ],
        }
    elif role == UserRole.ADMIN.value:
        breakdown = await session.execute(
            select(User.role, func.count(User.id)).group_by(User.role).order_by(User.role)
        )
        user_breakdown = [{"role": r, "userCount": c} for r, c in breakdown.all()]
        data = {
            "totalUsers": sum(item["userCount"] for item in user_breakdown),
            "userBreakdown": user_breakdown,
            "totalMedia": await _count(session, select(func.count(Video.id))),
        }

    return {"role": role, "data": data}


async def list_videos_for_players(session: AsyncSession, player_ids: List[int], per_player: int) -> Dict[int, List[Dict]]:
    """Newest ``per_player`` videos for each of the given players."""
    videos: Dict[int, List[Dict]] = {player_id: [] for player_id in player_ids}
    if not player_ids:
        return videos
    result = await session.execute(
        select(Video)
        .where(Video.player_id.in_(player_ids))
        .order_by(Video.created_at.desc(), Video.id.desc())
    )
    for video in result.scalars().all():
        bucket = videos[video.player_id]
        if len(bucket) < per_player:
            bucket.append(media_service.video_to_dict(video))
    return videos


def age_bounds(min_age: Optional[int], max_age: Optional[int]) -> List:
    """
    Translate an age range into date-of-birth conditions.

    A player is at least ``min_age`` when born on or before today minus
    ``min_age`` years, and at most ``max_age`` when born after today minus
    ``max_age + 1`` years.
    """
    conditions = []
    now = today()
    if min_age is not None:
        conditions.append(PlayerProfile.date_of_birth <= years_before(now, min_age))
    if max_age is not None:
        conditions.append(PlayerProfile.date_of_birth > years_before(now, max_age + 1))
    return conditions
