"""
Tests for scout service: profiles, shortlist and player search.
"""

import pytest
from sqlalchemy import select

from pharaohs.database.models import Notification, Video
from pharaohs.services import player_service, scout_service, tryout_service
from pharaohs.services.errors import ConflictError, NotFoundError, ValidationError
from pharaohs.utils.datetime_utils import today, years_before


@pytest.mark.asyncio
async def test_shortlist_notifies_player_with_default_club(db_session, scout, player):
    await scout_service.add_to_shortlist(db_session, scout["id"], player["id"])

    result = await db_session.execute(
        select(Notification.message).where(Notification.user_id == player["id"])
    )
    assert result.scalars().all() == [
        "Hassan Shehata from Unknown Club has added you to their shortlist"
    ]


@pytest.mark.asyncio
async def test_shortlist_uses_organization(db_session, scout, player):
    await scout_service.update_profile(db_session, scout["id"], {"organization": "Pyramids FC"})

    await scout_service.add_to_shortlist(db_session, scout["id"], player["id"])

    result = await db_session.execute(
        select(Notification.message).where(Notification.user_id == player["id"])
    )
    assert result.scalar_one() == "Hassan Shehata from Pyramids FC has added you to their shortlist"


@pytest.mark.asyncio
async def test_shortlist_twice_conflicts(db_session, scout, player):
    await scout_service.add_to_shortlist(db_session, scout["id"], player["id"])

    with pytest.raises(ConflictError, match="Player already shortlisted"):
        await scout_service.add_to_shortlist(db_session, scout["id"], player["id"])

    assert len(await scout_service.get_shortlist(db_session, scout["id"])) == 1


@pytest.mark.asyncio
async def test_shortlist_requires_player(db_session, scout):
    with pytest.raises(ValidationError, match="Player ID is required"):
        await scout_service.add_to_shortlist(db_session, scout["id"], None)

    with pytest.raises(NotFoundError, match="Player not found"):
        await scout_service.add_to_shortlist(db_session, scout["id"], 999)


@pytest.mark.asyncio
async def test_remove_from_shortlist(db_session, scout, player):
    await scout_service.add_to_shortlist(db_session, scout["id"], player["id"])

    await scout_service.remove_from_shortlist(db_session, scout["id"], player["id"])
    await scout_service.remove_from_shortlist(db_session, scout["id"], player["id"])

    assert await scout_service.get_shortlist(db_session, scout["id"]) == []


@pytest.mark.asyncio
async def test_get_profile_includes_shortlist(db_session, scout, player):
    await scout_service.add_to_shortlist(db_session, scout["id"], player["id"])

    profile = await scout_service.get_profile(db_session, scout["id"])

    assert profile["name"] == "Hassan Shehata"
    assert [p["player_id"] for p in profile["shortlists"]] == [player["id"]]


@pytest.mark.asyncio
async def test_update_profile_changes_name(db_session, scout):
    result = await scout_service.update_profile(
        db_session, scout["id"], {"name": "Hassan", "phone": "+20100000000"}
    )

    assert result["profile"]["name"] == "Hassan"
    assert result["profile"]["phone"] == "+20100000000"


@pytest.mark.asyncio
async def test_public_profile_hides_phone_and_counts(db_session, scout, player):
    await scout_service.update_profile(db_session, scout["id"], {"phone": "+20100000000"})
    tryout = await tryout_service.create_tryout(db_session, scout["id"], "Trials", "Cairo", "2026-07-01")
    await tryout_service.send_invitation(db_session, scout["id"], tryout["id"], player["id"])

    profile = await scout_service.get_public_profile(db_session, scout["id"])

    assert "phone" not in profile
    assert profile["tryoutCount"] == 1
    assert profile["invitationCount"] == 1


@pytest.mark.asyncio
async def test_public_profile_of_player_is_not_found(db_session, player):
    with pytest.raises(NotFoundError, match="Scout not found"):
        await scout_service.get_public_profile(db_session, player["id"])


@pytest.mark.asyncio
async def test_search_by_name_and_shortlist_flag(db_session, scout, player, player2):
    await scout_service.add_to_shortlist(db_session, scout["id"], player["id"])

    result = await scout_service.search_players(db_session, scout["id"], name="salah")

    assert [p["id"] for p in result["players"]] == [player["id"]]
    assert result["players"][0]["isShortlisted"] is True
    assert result["players"][0]["hasStats"] is False


@pytest.mark.asyncio
async def test_search_has_videos_and_min_rating(db_session, scout, player, player2):
    db_session.add(
        Video(player_id=player2["id"], url="https://x/v.mp4", storage_key="videos/2/v.mp4", type="video")
    )
    await db_session.flush()
    await player_service.update_performance_stats(
        db_session,
        player2["id"],
        {"matches_played": 10, "goals": 5, "assists": 3, "yellow_cards": 1, "red_cards": 0},
    )

    with_videos = await scout_service.search_players(db_session, scout["id"], has_videos=True)
    rated = await scout_service.search_players(db_session, scout["id"], min_rating=3.5)

    assert [p["id"] for p in with_videos["players"]] == [player2["id"]]
    assert with_videos["players"][0]["videoCount"] == 1
    assert [p["id"] for p in rated["players"]] == [player2["id"]]
    assert rated["players"][0]["stats"]["goals"] == 5


@pytest.mark.asyncio
async def test_search_age_range(db_session, scout, player, player2):
    now = today()
    await player_service.update_profile(
        db_session, player["id"], {"date_of_birth": years_before(now, 17).isoformat()}
    )
    await player_service.update_profile(
        db_session, player2["id"], {"date_of_birth": years_before(now, 25).isoformat()}
    )

    result = await scout_service.search_players(db_session, scout["id"], min_age=18, max_age=30)

    assert [p["id"] for p in result["players"]] == [player2["id"]]
    assert result["players"][0]["age"] == 25


@pytest.mark.asyncio
async def test_search_pagination(db_session, scout, player, player2, make_user):
    await make_user("Trezeguet", "trezeguet@example.com")

    first = await scout_service.search_players(db_session, scout["id"], limit=2, offset=0)
    last = await scout_service.search_players(db_session, scout["id"], limit=2, offset=2)

    assert first["pagination"] == {"total": 3, "limit": 2, "offset": 0, "hasMore": True}
    assert [p["name"] for p in first["players"]] == ["Mo Salah", "Omar Marmoush"]
    assert last["pagination"]["hasMore"] is False
    assert [p["name"] for p in last["players"]] == ["Trezeguet"]


@pytest.mark.asyncio
async def test_search_sort_by_name_desc(db_session, scout, player, player2):
    result = await scout_service.search_players(db_session, scout["id"], sort_by="name", sort_order="desc")

    assert [p["name"] for p in result["players"]] == ["Omar Marmoush", "Mo Salah"]
