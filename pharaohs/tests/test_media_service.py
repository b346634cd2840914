"""
Tests for media service: upload validation, storage ordering and deletes.

S3 is never contacted; the s3_service calls are patched.
"""

from io import BytesIO
from unittest.mock import AsyncMock, patch

import pytest
from PIL import Image
from sqlalchemy import select, func

from pharaohs.database.models import PlayerProfile, Video
from pharaohs.services import media_service, player_service
from pharaohs.services.errors import (
    NotFoundError,
    PayloadTooLargeError,
    StorageError,
    UnsupportedMediaTypeError,
    ValidationError,
)

FAKE_URL = "https://test-bucket.s3.us-west-2.amazonaws.com/videos/1/clip.mp4"


def _png_bytes(size=(10, 10)) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", size, color="red").save(buffer, format="PNG")
    return buffer.getvalue()


async def _count_videos(session):
    result = await session.execute(select(func.count(Video.id)))
    return result.scalar_one()


class TestValidateUpload:
    def test_empty_file(self):
        with pytest.raises(ValidationError, match="No file uploaded"):
            media_service.validate_upload(b"", "video/mp4")

    def test_unsupported_type(self):
        with pytest.raises(UnsupportedMediaTypeError):
            media_service.validate_upload(b"data", "application/pdf")

    def test_too_large(self):
        with patch.object(media_service, "get_settings") as settings:
            settings.return_value.max_upload_bytes = 4
            with pytest.raises(PayloadTooLargeError):
                media_service.validate_upload(b"12345", "video/mp4")

    def test_size_checked_before_reading(self):
        with patch.object(media_service, "get_settings") as settings:
            settings.return_value.max_upload_bytes = 4
            media_service.check_upload_size(None)
            media_service.check_upload_size(4)
            with pytest.raises(PayloadTooLargeError, match="File size exceeds maximum"):
                media_service.check_upload_size(5)

    def test_content_type_normalized(self):
        assert media_service.validate_upload(b"data", "VIDEO/MP4") == "video/mp4"

    def test_media_type_for(self):
        assert media_service.media_type_for("image/png").value == "image"
        assert media_service.media_type_for("video/webm").value == "video"


class TestValidateImage:
    def test_valid_png(self):
        assert media_service.validate_image(_png_bytes(), "image/png") == "image/png"

    def test_corrupted_image(self):
        with pytest.raises(ValidationError, match="Invalid or corrupted image file"):
            media_service.validate_image(b"not an image", "image/png")

    def test_video_is_not_a_profile_image(self):
        with pytest.raises(UnsupportedMediaTypeError):
            media_service.validate_image(b"data", "video/mp4")


@pytest.mark.asyncio
async def test_upload_creates_pending_row(db_session, player):
    with patch.object(media_service.s3_service, "upload_file", new=AsyncMock(return_value=FAKE_URL)):
        video = await media_service.upload_media(
            db_session, player["id"], b"video-bytes", "video/mp4", "Skills"
        )

    assert video["url"] == FAKE_URL
    assert video["status"] == "pending"
    assert video["type"] == "video"
    assert video["storage_key"].startswith(f"videos/{player['id']}/")
    assert video["storage_key"].endswith(".mp4")


@pytest.mark.asyncio
async def test_upload_rejected_before_storage(db_session, player):
    upload = AsyncMock(return_value=FAKE_URL)
    with patch.object(media_service.s3_service, "upload_file", new=upload):
        with pytest.raises(UnsupportedMediaTypeError):
            await media_service.upload_media(db_session, player["id"], b"data", "text/plain")

    upload.assert_not_called()
    assert await _count_videos(db_session) == 0


@pytest.mark.asyncio
async def test_storage_failure_leaves_no_row(db_session, player):
    failing = AsyncMock(side_effect=StorageError("Failed to upload file to storage"))
    with patch.object(media_service.s3_service, "upload_file", new=failing):
        with pytest.raises(StorageError):
            await media_service.upload_media(db_session, player["id"], b"data", "video/mp4")

    assert await _count_videos(db_session) == 0


@pytest.mark.asyncio
async def test_delete_survives_storage_failure(db_session, player):
    with patch.object(media_service.s3_service, "upload_file", new=AsyncMock(return_value=FAKE_URL)):
        video = await media_service.upload_media(db_session, player["id"], b"data", "video/mp4")

    failing_delete = AsyncMock(side_effect=StorageError("Failed to delete"))
    with patch.object(media_service.s3_service, "delete_file", new=failing_delete):
        await media_service.delete_video(db_session, video["id"], player)

    failing_delete.assert_awaited_once_with(video["storage_key"])
    assert await _count_videos(db_session) == 0


@pytest.mark.asyncio
async def test_delete_someone_elses_video(db_session, player, player2):
    with patch.object(media_service.s3_service, "upload_file", new=AsyncMock(return_value=FAKE_URL)):
        video = await media_service.upload_media(db_session, player["id"], b"data", "video/mp4")

    with pytest.raises(NotFoundError, match="Video not found or unauthorized"):
        await media_service.delete_video(db_session, video["id"], player2)


@pytest.mark.asyncio
async def test_update_description(db_session, player):
    with patch.object(media_service.s3_service, "upload_file", new=AsyncMock(return_value=FAKE_URL)):
        video = await media_service.upload_media(db_session, player["id"], b"data", "video/mp4")

    updated = await media_service.update_video_description(
        db_session, video["id"], player["id"], "Hat-trick"
    )

    assert updated["description"] == "Hat-trick"


@pytest.mark.asyncio
async def test_replace_profile_image_deletes_old_object():
    upload = AsyncMock(return_value="https://test-bucket.s3.us-west-2.amazonaws.com/new.png")
    remove = AsyncMock()
    with patch.object(media_service.s3_service, "upload_file", new=upload), patch.object(
        media_service.s3_service, "delete_file", new=remove
    ):
        result = await media_service.replace_profile_image(
            _png_bytes(), "image/png", "profiles/players", 3, old_key="profiles/players/3/old.png"
        )

    assert result["key"].startswith("profiles/players/3/")
    remove.assert_awaited_once_with("profiles/players/3/old.png")


@pytest.mark.asyncio
async def test_replace_profile_image_survives_old_delete_failure():
    upload = AsyncMock(return_value="https://test-bucket.s3.us-west-2.amazonaws.com/new.png")
    failing_delete = AsyncMock(side_effect=StorageError("Failed to delete"))
    with patch.object(media_service.s3_service, "upload_file", new=upload), patch.object(
        media_service.s3_service, "delete_file", new=failing_delete
    ):
        result = await media_service.replace_profile_image(
            _png_bytes(), "image/png", "profiles/players", 3, old_key="profiles/players/3/old.png"
        )

    failing_delete.assert_awaited_once_with("profiles/players/3/old.png")
    assert result["url"] == "https://test-bucket.s3.us-west-2.amazonaws.com/new.png"
    assert result["key"].startswith("profiles/players/3/")


@pytest.mark.asyncio
async def test_profile_image_update_persists_when_old_delete_fails(db_session, player):
    new_url = "https://test-bucket.s3.us-west-2.amazonaws.com/profiles/players/new.png"
    profile = await player_service.get_or_create_profile(db_session, player["id"])
    profile.profile_image = "https://test-bucket.s3.us-west-2.amazonaws.com/profiles/players/1/old.png"
    profile.profile_image_key = "profiles/players/1/old.png"
    await db_session.flush()

    failing_delete = AsyncMock(side_effect=StorageError("Failed to delete"))
    with patch.object(
        media_service.s3_service, "upload_file", new=AsyncMock(return_value=new_url)
    ), patch.object(media_service.s3_service, "delete_file", new=failing_delete):
        result = await player_service.update_profile(
            db_session, player["id"], {}, _png_bytes(), "image/png", image_only=True
        )

    assert result["profileImage"] == new_url
    row = await db_session.execute(
        select(PlayerProfile.profile_image, PlayerProfile.profile_image_key).where(
            PlayerProfile.user_id == player["id"]
        )
    )
    stored_url, stored_key = row.one()
    assert stored_url == new_url
    assert stored_key.startswith(f"profiles/players/{player['id']}/")


@pytest.mark.asyncio
async def test_replace_profile_image_recovers_old_key_from_url():
    remove = AsyncMock()
    with patch.object(
        media_service.s3_service, "upload_file", new=AsyncMock(return_value=FAKE_URL)
    ), patch.object(media_service.s3_service, "delete_file", new=remove):
        await media_service.replace_profile_image(
            _png_bytes(),
            "image/png",
            "profiles/players",
            3,
            old_url="https://test-bucket.s3.us-west-2.amazonaws.com/profiles/players/3/legacy.png",
        )

    remove.assert_awaited_once_with("profiles/players/3/legacy.png")


@pytest.mark.asyncio
async def test_delete_profile_picture_without_stored_key_uses_url(db_session, player):
    profile = await player_service.get_or_create_profile(db_session, player["id"])
    profile.profile_image = "https://test-bucket.s3.us-west-2.amazonaws.com/profiles/players/1/legacy.png"
    await db_session.flush()

    remove = AsyncMock()
    with patch.object(media_service.s3_service, "delete_file", new=remove):
        await player_service.delete_profile_picture(db_session, player["id"])

    remove.assert_awaited_once_with("profiles/players/1/legacy.png")
    assert profile.profile_image is None
