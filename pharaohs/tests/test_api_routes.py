"""
HTTP-level tests: authentication, role gates, the error body format and a few
end-to-end flows through the routers.
"""

import pytest
from unittest.mock import AsyncMock, patch

from pharaohs.database.models import Video
from pharaohs.services import auth_service, media_service


@pytest.mark.asyncio
async def test_root_health_check(client):
    response = await client.get("/")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "message": "Pharaohs API is running"}


@pytest.mark.asyncio
async def test_register_and_login_flow(client):
    register = await client.post(
        "/api/auth/register",
        json={
            "name": "Ahmed Hegazi",
            "email": "hegazi@example.com",
            "password": "secret123",
            "confirmPassword": "secret123",
            "role": "player",
        },
    )
    assert register.status_code == 201
    body = register.json()
    assert body["user"]["email"] == "hegazi@example.com"
    assert body["token"] and body["refreshToken"]

    login = await client.post(
        "/api/auth/login", json={"email": "hegazi@example.com", "password": "secret123"}
    )
    assert login.status_code == 200
    token = login.json()["token"]

    profile = await client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})
    assert profile.status_code == 200
    assert profile.json()["name"] == "Ahmed Hegazi"


@pytest.mark.asyncio
async def test_refresh_endpoint(client, player):
    refresh = auth_service.create_refresh_token({"id": player["id"], "role": player["role"]})

    response = await client.post("/api/auth/refresh", json={"refreshToken": refresh})

    assert response.status_code == 200
    assert auth_service.verify_token(response.json()["token"])["id"] == player["id"]


@pytest.mark.asyncio
async def test_duplicate_registration_is_conflict(client, player):
    response = await client.post(
        "/api/auth/register",
        json={
            "name": "Copy",
            "email": "player@example.com",
            "password": "secret123",
            "confirmPassword": "secret123",
            "role": "player",
        },
    )

    assert response.status_code == 409
    body = response.json()
    assert body["message"] == "Email already exists"
    assert body["errorCode"] == "CONFLICT"
    assert "stack" in body


@pytest.mark.asyncio
async def test_missing_token(client):
    response = await client.get("/api/auth/profile")

    assert response.status_code == 401
    assert response.json()["message"] == "No token"
    assert response.json()["errorCode"] == "AUTHENTICATION_ERROR"


@pytest.mark.asyncio
async def test_invalid_token(client):
    response = await client.get("/api/auth/profile", headers={"Authorization": "Bearer garbage"})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid token"


@pytest.mark.asyncio
async def test_token_for_deleted_user(client):
    token = auth_service.create_access_token({"id": 999, "role": "player"})

    response = await client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_suspended_user_is_forbidden(client, make_user, auth_headers):
    suspended = await make_user("Suspended", "suspended@example.com", status="suspended")

    response = await client.get("/api/auth/profile", headers=auth_headers(suspended))

    assert response.status_code == 403
    assert response.json()["message"] == "Account is not active"


@pytest.mark.asyncio
async def test_wrong_role_is_forbidden(client, player, auth_headers):
    response = await client.get("/api/scout/tryouts", headers=auth_headers(player))

    assert response.status_code == 403
    assert response.json()["message"] == "Access denied. Required role: scout"
    assert response.json()["errorCode"] == "AUTHORIZATION_ERROR"


@pytest.mark.asyncio
async def test_scout_cannot_comment(client, scout, auth_headers):
    response = await client.post(
        "/api/player/videos/comment",
        json={"videoId": 1, "content": "Nice"},
        headers=auth_headers(scout),
    )

    assert response.status_code == 403
    assert response.json()["message"] == "Access denied. Required role: player"


@pytest.mark.asyncio
async def test_admin_routes_require_admin(client, scout, admin, auth_headers):
    forbidden = await client.get("/api/admin/users", headers=auth_headers(scout))
    allowed = await client.get("/api/admin/users", headers=auth_headers(admin))

    assert forbidden.status_code == 403
    assert allowed.status_code == 200
    assert {u["email"] for u in allowed.json()} == {"scout@example.com", "admin@example.com"}


@pytest.mark.asyncio
async def test_malformed_body_is_validation_error(client, scout, auth_headers):
    response = await client.post(
        "/api/scout/invite", json={"tryoutId": "abc", "playerId": 1}, headers=auth_headers(scout)
    )

    assert response.status_code == 400
    assert response.json()["errorCode"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_tryout_and_invitation_flow(client, scout, player, auth_headers):
    created = await client.post(
        "/api/scout/tryouts",
        json={"name": "Spring Trials", "location": "Cairo", "date": "2026-04-10", "time": "09:00"},
        headers=auth_headers(scout),
    )
    assert created.status_code == 201
    tryout_id = created.json()["tryout"]["id"]

    invite = {"tryoutId": tryout_id, "playerId": player["id"]}
    first = await client.post("/api/scout/invite", json=invite, headers=auth_headers(scout))
    second = await client.post("/api/scout/invite", json=invite, headers=auth_headers(scout))
    assert first.status_code == 201
    assert second.status_code == 409

    invitations = await client.get("/api/player/invitations", headers=auth_headers(player))
    assert invitations.status_code == 200
    invitation_id = invitations.json()[0]["id"]

    answered = await client.put(
        f"/api/player/invitations/{invitation_id}",
        json={"status": "accepted"},
        headers=auth_headers(player),
    )
    assert answered.status_code == 200

    cancel = await client.delete(
        f"/api/scout/invitations/{invitation_id}", headers=auth_headers(scout)
    )
    assert cancel.status_code == 400
    assert cancel.json()["message"] == "Cannot cancel an invitation that has been accepted"


@pytest.mark.asyncio
async def test_like_returns_201_then_200(client, db_session, player, scout, auth_headers):
    video = Video(
        player_id=player["id"],
        url="https://test-bucket.s3.us-west-2.amazonaws.com/videos/1/a.mp4",
        storage_key="videos/1/a.mp4",
        type="video",
    )
    db_session.add(video)
    await db_session.flush()

    first = await client.post(
        "/api/player/videos/like", json={"videoId": video.id}, headers=auth_headers(scout)
    )
    second = await client.post(
        "/api/player/videos/like", json={"videoId": video.id}, headers=auth_headers(scout)
    )

    assert first.status_code == 201
    assert second.status_code == 200
    assert second.json()["alreadyLiked"] is True
    assert second.json()["likeCount"] == 1

    unread = await client.get("/api/notifications/unread-count", headers=auth_headers(player))
    assert unread.json() == {"unreadCount": 1}


@pytest.mark.asyncio
async def test_notifications_read_all(client, player, scout, auth_headers):
    await client.post(
        "/api/scout/shortlist", json={"playerId": player["id"]}, headers=auth_headers(scout)
    )

    listing = await client.get("/api/notifications", headers=auth_headers(player))
    assert listing.json()["unreadCount"] == 1

    read_all = await client.put("/api/notifications/read-all", headers=auth_headers(player))
    assert read_all.json() == {"message": "All notifications marked as read", "count": 1}


@pytest.mark.asyncio
async def test_upload_media(client, player, auth_headers):
    upload = AsyncMock(return_value="https://test-bucket.s3.us-west-2.amazonaws.com/videos/x.mp4")
    with patch.object(media_service.s3_service, "upload_file", new=upload):
        response = await client.post(
            "/api/player/upload",
            files={"file": ("clip.mp4", b"video-bytes", "video/mp4")},
            data={"description": "Solo run"},
            headers=auth_headers(player),
        )

    assert response.status_code == 201
    assert response.json()["message"] == "Media uploaded successfully"
    assert response.json()["video"]["description"] == "Solo run"


@pytest.mark.asyncio
async def test_upload_unsupported_type(client, player, auth_headers):
    response = await client.post(
        "/api/player/upload",
        files={"file": ("notes.txt", b"hello", "text/plain")},
        headers=auth_headers(player),
    )

    assert response.status_code == 415
    assert response.json()["errorCode"] == "UNSUPPORTED_MEDIA_TYPE"


@pytest.mark.asyncio
async def test_public_scout_profile_needs_no_token(client, scout):
    response = await client.get(f"/api/scout/public-profile/{scout['id']}")

    assert response.status_code == 200
    assert response.json()["name"] == "Hassan Shehata"


@pytest.mark.asyncio
async def test_admin_add_location(client, admin, auth_headers):
    response = await client.post(
        "/api/admin/locations", json={"location": "Port Said"}, headers=auth_headers(admin)
    )
    listing = await client.get("/api/admin/locations", headers=auth_headers(admin))

    assert response.status_code == 201
    assert listing.json() == ["Port Said"]


@pytest.mark.asyncio
async def test_oversized_upload_rejected_without_reading(client, player, auth_headers):
    read = AsyncMock(return_value=b"")
    with patch.object(media_service, "get_settings") as settings, patch(
        "starlette.datastructures.UploadFile.read", new=read
    ):
        settings.return_value.max_upload_bytes = 4
        response = await client.post(
            "/api/player/upload",
            files={"file": ("clip.mp4", b"video-bytes", "video/mp4")},
            headers=auth_headers(player),
        )

    assert response.status_code == 413
    assert response.json()["errorCode"] == "PAYLOAD_TOO_LARGE"
    read.assert_not_awaited()
