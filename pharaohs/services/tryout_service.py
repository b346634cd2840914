"""
Tryout service: scout tryouts, player invitations and tryout locations.

Invitation lifecycle: pending -> accepted | declined (terminal), or
pending -> deleted when the scout cancels.
"""

from typing import Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, func
from sqlalchemy.exc import IntegrityError
from pharaohs.database.models import (
    Tryout,
    Invitation,
    InvitationStatus,
    Location,
    NotificationType,
    User,
)
from pharaohs.services import notification_service, player_service
from pharaohs.services.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from pharaohs.utils.datetime_utils import combine_date_time, utcnow
import logging

logger = logging.getLogger(__name__)

RESPONSE_STATUSES = {InvitationStatus.ACCEPTED.value, InvitationStatus.DECLINED.value}


def _tryout_to_dict(tryout: Tryout) -> Dict:
    return {
        "id": tryout.id,
        "scout_id": tryout.scout_id,
        "name": tryout.name,
        "location": tryout.location,
        "date": tryout.date.isoformat() if tryout.date else None,
        "created_at": tryout.created_at.isoformat() if tryout.created_at else None,
    }


def _invitation_to_dict(invitation: Invitation) -> Dict:
    return {
        "id": invitation.id,
        "tryout_id": invitation.tryout_id,
        "player_id": invitation.player_id,
        "status": invitation.status,
        "created_at": invitation.created_at.isoformat() if invitation.created_at else None,
        "responded_at": invitation.responded_at.isoformat() if invitation.responded_at else None,
    }


def _parse_when(date: Optional[str], time: Optional[str]):
    try:
        return combine_date_time(date, time)
    except (TypeError, ValueError):
        raise ValidationError("Invalid date or time")


async def _user_name(session: AsyncSession, user_id: int) -> str:
    result = await session.execute(select(User.name).where(User.id == user_id))
    return result.scalar_one_or_none() or "Unknown"


# ---------------------------------------------------------------------------
# Tryouts
# ---------------------------------------------------------------------------

async def create_tryout(
    session: AsyncSession,
    scout_id: int,
    name: Optional[str],
    location: Optional[str],
    date: Optional[str],
    time: Optional[str] = None,
) -> Dict:
    """
    Create a tryout. ``time`` is combined with ``date`` when given.

    Raises:
        ValidationError: If a field is missing or the date can't be parsed
    """
    if not name or not location or not date:
        raise ValidationError("Name, location, and date are required")

    tryout = Tryout(
        scout_id=scout_id,
        name=name.strip(),
        location=location.strip(),
        date=_parse_when(date, time),
    )
    session.add(tryout)
    await session.flush()
    await session.refresh(tryout)
    logger.info(f"Scout {scout_id} created tryout {tryout.id}")
    return _tryout_to_dict(tryout)


async def get_owned_tryout(session: AsyncSession, tryout_id: int, scout_id: int) -> Tryout:
    """
    Raises:
        NotFoundError: If the tryout doesn't exist
        AuthorizationError: If it belongs to another scout
    """
    result = await session.execute(select(Tryout).where(Tryout.id == tryout_id))
    tryout = result.scalar_one_or_none()
    if tryout is None:
        raise NotFoundError("Tryout not found")
    if tryout.scout_id != scout_id:
        raise AuthorizationError("You are not the owner of this tryout")
    return tryout


async def get_scout_tryouts(session: AsyncSession, scout_id: int) -> List[Dict]:
    """A scout's tryouts, latest first, each with the IDs of invited players."""
    result = await session.execute(
        select(Tryout).where(Tryout.scout_id == scout_id).order_by(Tryout.date.desc(), Tryout.id.desc())
    )
    tryouts = result.scalars().all()
    if not tryouts:
        return []

    invited = await session.execute(
        select(Invitation.tryout_id, Invitation.player_id).where(
            Invitation.tryout_id.in_([t.id for t in tryouts])
        )
    )
    players_by_tryout: Dict[int, List[int]] = {}
    for tryout_id, player_id in invited.all():
        players_by_tryout.setdefault(tryout_id, []).append(player_id)

    return [
        {**_tryout_to_dict(t), "playersInvited": players_by_tryout.get(t.id, [])}
        for t in tryouts
    ]


async def update_tryout(
    session: AsyncSession,
    tryout_id: int,
    scout_id: int,
    name: Optional[str],
    location: Optional[str],
    date: Optional[str],
    time: Optional[str],
) -> Dict:
    """
    Raises:
        ValidationError: If a field is missing
        NotFoundError, AuthorizationError: See get_owned_tryout
    """
    if not name or not location or not date or not time:
        raise ValidationError("All fields are required")

    tryout = await get_owned_tryout(session, tryout_id, scout_id)
    tryout.name = name.strip()
    tryout.location = location.strip()
    tryout.date = _parse_when(date, time)
    await session.flush()
    return _tryout_to_dict(tryout)


async def delete_tryout(session: AsyncSession, tryout_id: int, scout_id: int) -> None:
    """Delete a tryout and its invitations."""
    await get_owned_tryout(session, tryout_id, scout_id)
    await session.execute(delete(Invitation).where(Invitation.tryout_id == tryout_id))
    await session.execute(delete(Tryout).where(Tryout.id == tryout_id))
    logger.info(f"Scout {scout_id} deleted tryout {tryout_id}")


async def get_public_tryouts(session: AsyncSession, scout_id: int) -> List[Dict]:
    result = await session.execute(
        select(Tryout).where(Tryout.scout_id == scout_id).order_by(Tryout.date.desc())
    )
    return [_tryout_to_dict(t) for t in result.scalars().all()]


# ---------------------------------------------------------------------------
# Invitations
# ---------------------------------------------------------------------------

async def send_invitation(
    session: AsyncSession, scout_id: int, tryout_id: Optional[int], player_id: Optional[int]
) -> Dict:
    """
    Invite a player to one of the scout's tryouts and notify the player.

    Raises:
        ValidationError: If an ID is missing
        NotFoundError: If the tryout or player doesn't exist
        AuthorizationError: If the scout doesn't own the tryout
        ConflictError: If the player was already invited
    """
    if not tryout_id or not player_id:
        raise ValidationError("Tryout ID and player ID are required")

    tryout = await get_owned_tryout(session, tryout_id, scout_id)
    await player_service.get_player_user(session, player_id)

    existing = await session.execute(
        select(Invitation.id).where(
            Invitation.tryout_id == tryout_id, Invitation.player_id == player_id
        )
    )
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("Player already invited to this tryout")

    invitation = Invitation(
        tryout_id=tryout_id, player_id=player_id, status=InvitationStatus.PENDING.value
    )
    try:
        async with session.begin_nested():
            session.add(invitation)
            await session.flush()
    except IntegrityError:
        raise ConflictError("Player already invited to this tryout")
    await session.refresh(invitation)

    scout_name = await _user_name(session, scout_id)
    await notification_service.notify(
        session,
        player_id,
        notification_service.invitation_message(scout_name, tryout.name),
        NotificationType.INVITATION,
    )
    logger.info(f"Scout {scout_id} invited player {player_id} to tryout {tryout_id}")
    return _invitation_to_dict(invitation)


async def cancel_invitation(session: AsyncSession, invitation_id: int, scout_id: int) -> None:
    """
    Cancel a pending invitation and notify the player.

    Raises:
        NotFoundError: If the invitation doesn't exist or isn't the scout's
        ValidationError: If the player already responded
    """
    result = await session.execute(
        select(Invitation, Tryout)
        .join(Tryout, Tryout.id == Invitation.tryout_id)
        .where(Invitation.id == invitation_id, Tryout.scout_id == scout_id)
    )
    row = result.first()
    if row is None:
        raise NotFoundError("Invitation not found or you do not have permission to cancel it")
    invitation, tryout = row

    if invitation.status != InvitationStatus.PENDING.value:
        raise ValidationError(f"Cannot cancel an invitation that has been {invitation.status}")

    player_id = invitation.player_id
    await session.execute(delete(Invitation).where(Invitation.id == invitation_id))
    await notification_service.notify(
        session,
        player_id,
        notification_service.invitation_canceled_message(tryout.name),
        NotificationType.INVITATION_CANCELED,
    )
    logger.info(f"Scout {scout_id} canceled invitation {invitation_id}")


async def respond_to_invitation(
    session: AsyncSession, invitation_id: int, player_id: int, status: Optional[str]
) -> Dict:
    """
    Accept or decline an invitation and notify the scout.

    Raises:
        ValidationError: If the status is invalid or the invitation was
            already answered
        NotFoundError: If the invitation isn't addressed to this player
    """
    if status not in RESPONSE_STATUSES:
        raise ValidationError("Invalid status")

    result = await session.execute(
        select(Invitation, Tryout)
        .join(Tryout, Tryout.id == Invitation.tryout_id)
        .where(Invitation.id == invitation_id, Invitation.player_id == player_id)
    )
    row = result.first()
    if row is None:
        raise NotFoundError("Invitation not found or unauthorized")
    invitation, tryout = row

    if invitation.status != InvitationStatus.PENDING.value:
        raise ValidationError(f"Invitation has already been {invitation.status}")

    invitation.status = status
    invitation.responded_at = utcnow()
    await session.flush()

    player_name = await _user_name(session, player_id)
    await notification_service.notify(
        session,
        tryout.scout_id,
        notification_service.invitation_response_message(player_name, status, tryout.name),
        NotificationType.INVITATION_RESPONSE,
    )
    return _invitation_to_dict(invitation)


async def get_player_invitations(session: AsyncSession, player_id: int) -> List[Dict]:
    """Invitations addressed to a player, with tryout and scout details."""
    result = await session.execute(
        select(Invitation, Tryout, User.name)
        .join(Tryout, Tryout.id == Invitation.tryout_id)
        .join(User, User.id == Tryout.scout_id)
        .where(Invitation.player_id == player_id)
        .order_by(Invitation.created_at.desc(), Invitation.id.desc())
    )
    return [
        {
            **_invitation_to_dict(invitation),
            "tryout_name": tryout.name,
            "location": tryout.location,
            "date": tryout.date.isoformat() if tryout.date else None,
            "scout_id": tryout.scout_id,
            "scout_name": scout_name,
        }
        for invitation, tryout, scout_name in result.all()
    ]


async def get_scout_invitations(session: AsyncSession, scout_id: int) -> List[Dict]:
    """Invitations a scout has sent, with tryout and player details."""
    result = await session.execute(
        select(Invitation, Tryout, User.name)
        .join(Tryout, Tryout.id == Invitation.tryout_id)
        .join(User, User.id == Invitation.player_id)
        .where(Tryout.scout_id == scout_id)
        .order_by(Invitation.created_at.desc(), Invitation.id.desc())
    )
    return [
        {
            **_invitation_to_dict(invitation),
            "tryout_name": tryout.name,
            "location": tryout.location,
            "date": tryout.date.isoformat() if tryout.date else None,
            "player_name": player_name,
        }
        for invitation, tryout, player_name in result.all()
    ]


# ---------------------------------------------------------------------------
# Locations
# ---------------------------------------------------------------------------

async def list_locations(session: AsyncSession) -> List[str]:
    """Managed locations plus any location already used by a tryout."""
    managed = await session.execute(select(Location.name))
    used = await session.execute(
        select(Tryout.location).where(Tryout.location.isnot(None), Tryout.location != "").distinct()
    )
    return sorted(set(managed.scalars().all()) | set(used.scalars().all()))


async def count_tryouts_at(session: AsyncSession, location: str) -> int:
    result = await session.execute(
        select(func.count(Tryout.id)).where(Tryout.location == location)
    )
    return result.scalar_one() or 0
