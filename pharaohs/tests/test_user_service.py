"""
Tests for user service: registration, login and token refresh.
"""

import pytest
from sqlalchemy import select, func

from pharaohs.database.models import PlayerProfile, User, UserRole, UserStatus
from pharaohs.services import auth_service, user_service
from pharaohs.services.errors import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    ValidationError,
)


async def _register(session, **overrides):
    fields = {
        "name": "Mo Salah",
        "email": "mo@example.com",
        "password": "secret123",
        "confirm_password": "secret123",
        "role": UserRole.PLAYER.value,
    }
    fields.update(overrides)
    return await user_service.register(session, **fields)


@pytest.mark.asyncio
async def test_register_returns_tokens_for_new_user(db_session):
    result = await _register(db_session, date_of_birth="2000-06-15")

    assert result["user"]["email"] == "mo@example.com"
    assert result["user"]["status"] == UserStatus.ACTIVE.value
    payload = auth_service.verify_token(result["token"])
    assert payload["id"] == result["user"]["id"]
    assert payload["role"] == "player"
    assert auth_service.verify_token(result["refreshToken"], auth_service.REFRESH_TOKEN_TYPE)

    profile = await db_session.execute(
        select(PlayerProfile).where(PlayerProfile.user_id == result["user"]["id"])
    )
    assert profile.scalar_one().date_of_birth.isoformat() == "2000-06-15"


@pytest.mark.asyncio
async def test_register_duplicate_email_conflicts(db_session):
    await _register(db_session)

    with pytest.raises(ConflictError, match="Email already exists"):
        await _register(db_session, name="Someone Else", email="MO@example.com")

    count = await db_session.execute(select(func.count(User.id)))
    assert count.scalar_one() == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"name": ""}, "All fields are required"),
        ({"confirm_password": "different"}, "Passwords do not match"),
        ({"role": "admin"}, "Invalid role"),
        ({"date_of_birth": "15/06/2000"}, "Invalid date of birth"),
    ],
)
async def test_register_validation(db_session, overrides, message):
    with pytest.raises(ValidationError, match=message):
        await _register(db_session, **overrides)


@pytest.mark.asyncio
async def test_login_success(db_session):
    registered = await _register(db_session)

    result = await user_service.login(db_session, "mo@example.com", "secret123")

    payload = auth_service.verify_token(result["token"])
    assert payload["id"] == registered["user"]["id"]
    assert payload["role"] == registered["user"]["role"]


@pytest.mark.asyncio
async def test_login_wrong_password(db_session):
    await _register(db_session)

    with pytest.raises(AuthenticationError, match="Invalid credentials"):
        await user_service.login(db_session, "mo@example.com", "wrong")


@pytest.mark.asyncio
async def test_login_unknown_email(db_session):
    with pytest.raises(AuthenticationError, match="Invalid credentials"):
        await user_service.login(db_session, "nobody@example.com", "secret123")


@pytest.mark.asyncio
async def test_login_inactive_account_forbidden(db_session, make_user):
    """Correct credentials are not enough once an account is suspended."""
    await make_user("Suspended", "suspended@example.com", status=UserStatus.SUSPENDED.value)

    with pytest.raises(AuthorizationError, match="Account is not active"):
        await user_service.login(db_session, "suspended@example.com", "password123")


@pytest.mark.asyncio
async def test_login_requires_both_fields(db_session):
    with pytest.raises(ValidationError):
        await user_service.login(db_session, "mo@example.com", "")


@pytest.mark.asyncio
async def test_refresh_access_token(db_session, player):
    refresh = auth_service.create_refresh_token({"id": player["id"], "role": player["role"]})

    result = await user_service.refresh_access_token(db_session, refresh)

    assert result["user"]["id"] == player["id"]
    assert auth_service.verify_token(result["token"])["id"] == player["id"]


@pytest.mark.asyncio
async def test_refresh_rejects_access_token(db_session, player):
    access = auth_service.create_access_token({"id": player["id"], "role": player["role"]})

    with pytest.raises(AuthenticationError, match="Invalid token"):
        await user_service.refresh_access_token(db_session, access)
