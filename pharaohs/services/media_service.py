"""
Media service: validating uploads, storing them in S3 and tracking them as
Video rows.

Uploads are validated before any remote call and the Video row is only written
after S3 returned a URL, so a failed upload never leaves a dangling record.
"""

import logging
from io import BytesIO
from typing import Dict, List, Optional, Set

from PIL import Image
from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from pharaohs.config import get_settings
from pharaohs.database.models import Video, MediaType, MediaStatus, UserRole
from pharaohs.services import s3_service
from pharaohs.services.errors import (
    NotFoundError,
    PayloadTooLargeError,
    UnsupportedMediaTypeError,
    ValidationError,
)
from pharaohs.utils.best_effort import run_best_effort
from pharaohs.utils.constants import (
    ALLOWED_IMAGE_TYPES,
    ALLOWED_MEDIA_TYPES,
    IMAGE_FOLDER,
    VIDEO_FOLDER,
)

logger = logging.getLogger(__name__)

MAX_IMAGE_PIXELS = 25_000_000  # 25MP (~5000x5000)

# Set Pillow's built-in decompression bomb guard
Image.MAX_IMAGE_PIXELS = MAX_IMAGE_PIXELS


def video_to_dict(video: Video) -> Dict:
    return {
        "id": video.id,
        "player_id": video.player_id,
        "url": video.url,
        "storage_key": video.storage_key,
        "description": video.description,
        "type": video.type,
        "status": video.status,
        "created_at": video.created_at.isoformat() if video.created_at else None,
    }


def media_type_for(content_type: str) -> MediaType:
    """``image/*`` is an image, anything else is a video."""
    return MediaType.IMAGE if content_type.startswith("image/") else MediaType.VIDEO


def check_upload_size(size: Optional[int]) -> None:
    """
    Reject a file larger than the upload limit. ``None`` (size unknown) passes.

    Raises:
        PayloadTooLargeError: If ``size`` exceeds the limit
    """
    max_bytes = get_settings().max_upload_bytes
    if size is not None and size > max_bytes:
        raise PayloadTooLargeError(
            f"File size exceeds maximum of {max_bytes // (1024 * 1024)}MB"
        )


def validate_upload(
    file_bytes: bytes, content_type: Optional[str], allowed: Set[str] = ALLOWED_MEDIA_TYPES
) -> str:
    """
    Check an upload against the allowed types and the size limit.

    Returns:
        The normalized content type

    Raises:
        ValidationError: If no file was sent
        UnsupportedMediaTypeError: If the content type is not allowed
        PayloadTooLargeError: If the file exceeds the upload limit
    """
    if not file_bytes:
        raise ValidationError("No file uploaded")

    content_type = (content_type or "").lower()
    if content_type not in allowed:
        raise UnsupportedMediaTypeError(
            f"Invalid file type '{content_type}'. Allowed: {', '.join(sorted(allowed))}"
        )

    check_upload_size(len(file_bytes))
    return content_type


def validate_image(file_bytes: bytes, content_type: Optional[str]) -> str:
    """
    Validate a profile picture: type, size, and that Pillow can read it.

    Raises:
        ValidationError: If the file is corrupted or too large in pixels
    """
    content_type = validate_upload(file_bytes, content_type, ALLOWED_IMAGE_TYPES)
    try:
        img = Image.open(BytesIO(file_bytes))
        width, height = img.size
        if width * height > MAX_IMAGE_PIXELS:
            raise ValidationError(
                f"Image dimensions too large ({width}x{height}). "
                f"Maximum is {MAX_IMAGE_PIXELS:,} pixels."
            )
        img.verify()
    except Image.DecompressionBombError:
        raise ValidationError("Image dimensions too large (possible decompression bomb)")
    except ValidationError:
        raise
    except Exception as e:
        raise ValidationError(f"Invalid or corrupted image file: {str(e)}")
    return content_type


async def delete_remote(key: Optional[str], url: Optional[str] = None) -> None:
    """
    Request deletion of a stored object; failures are logged only.

    Rows written before keys were stored only carry the URL, so the key is
    recovered from it when missing.
    """
    key = s3_service.key_for(url, key)
    if not key:
        return
    await run_best_effort(f"delete {key} from storage", s3_service.delete_file, key)


async def upload_media(
    session: AsyncSession,
    player_id: int,
    file_bytes: bytes,
    content_type: Optional[str],
    description: Optional[str] = None,
) -> Dict:
    """
    Upload a video or image for a player.

    Args:
        session: Database session
        player_id: Owner of the media
        file_bytes: Raw upload
        content_type: Declared MIME type
        description: Optional caption

    Returns:
        Dict of the created Video row

    Raises:
        UnsupportedMediaTypeError, PayloadTooLargeError: Before any remote call
        StorageError: If S3 rejected the upload (no row is created)
    """
    content_type = validate_upload(file_bytes, content_type)
    media_type = media_type_for(content_type)
    folder = IMAGE_FOLDER if media_type == MediaType.IMAGE else VIDEO_FOLDER

    key = s3_service.build_key(folder, player_id, content_type)
    url = await s3_service.upload_file(file_bytes, key, content_type)

    video = Video(
        player_id=player_id,
        url=url,
        storage_key=key,
        description=description or None,
        type=media_type.value,
        status=MediaStatus.PENDING.value,
    )
    session.add(video)
    await session.flush()
    await session.refresh(video)
    logger.info(f"Player {player_id} uploaded {media_type.value} {video.id}")
    return video_to_dict(video)


async def get_player_videos(session: AsyncSession, player_id: int, limit: Optional[int] = None) -> List[Dict]:
    """A player's media, newest first."""
    query = (
        select(Video)
        .where(Video.player_id == player_id)
        .order_by(Video.created_at.desc(), Video.id.desc())
    )
    if limit:
        query = query.limit(limit)
    result = await session.execute(query)
    return [video_to_dict(v) for v in result.scalars().all()]


async def get_video(session: AsyncSession, video_id: int) -> Video:
    """
    Raises:
        NotFoundError: If the video doesn't exist
    """
    result = await session.execute(select(Video).where(Video.id == video_id))
    video = result.scalar_one_or_none()
    if video is None:
        raise NotFoundError("Video not found")
    return video


async def delete_video(session: AsyncSession, video_id: int, user: Dict) -> Dict:
    """
    Delete a video as its owner or as an admin.

    The local row is removed even when the S3 delete fails.

    Raises:
        NotFoundError: If the video doesn't exist or isn't the caller's
    """
    result = await session.execute(select(Video).where(Video.id == video_id))
    video = result.scalar_one_or_none()
    if video is None or (
        video.player_id != user["id"] and user["role"] != UserRole.ADMIN.value
    ):
        raise NotFoundError("Video not found or unauthorized")

    video_dict = video_to_dict(video)
    await delete_remote(video.storage_key, video.url)
    await session.execute(delete(Video).where(Video.id == video_id))
    logger.info(f"Deleted video {video_id} (requested by user {user['id']})")
    return video_dict


async def update_video_description(
    session: AsyncSession, video_id: int, player_id: int, description: Optional[str]
) -> Dict:
    """
    Raises:
        NotFoundError: If the video doesn't exist or isn't the player's
    """
    result = await session.execute(
        select(Video).where(Video.id == video_id, Video.player_id == player_id)
    )
    video = result.scalar_one_or_none()
    if video is None:
        raise NotFoundError("Video not found or unauthorized")

    video.description = description
    await session.flush()
    return video_to_dict(video)


async def count_player_media(session: AsyncSession, player_id: int) -> int:
    result = await session.execute(
        select(func.count(Video.id)).where(Video.player_id == player_id)
    )
    return result.scalar_one() or 0


async def replace_profile_image(
    file_bytes: bytes,
    content_type: Optional[str],
    folder: str,
    owner_id: int,
    old_key: Optional[str] = None,
    old_url: Optional[str] = None,
) -> Dict:
    """
    Upload a new profile image, then delete the previous one.

    The old object is deleted best-effort after the new upload succeeded, so
    a failure there may leave a stale object in S3 but never fails the update.

    Returns:
        Dict with "url" and "key" of the new image
    """
    content_type = validate_image(file_bytes, content_type)
    key = s3_service.build_key(folder, owner_id, content_type)
    url = await s3_service.upload_file(file_bytes, key, content_type)
    old_key = s3_service.key_for(old_url, old_key)
    if old_key and old_key != key:
        await delete_remote(old_key)
    return {"url": url, "key": key}
