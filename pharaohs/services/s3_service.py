"""
S3 service for storing uploaded media.

Provides a lazy-initialized boto3 client and async helpers to upload a buffer,
delete an object by key, and build the public URL of a key. The S3 object key
is the storage identifier persisted next to every media URL.
"""

import asyncio
import logging
import uuid
from functools import partial
from typing import Dict, Optional
from urllib.parse import urlparse

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from pharaohs.config import get_settings
from pharaohs.services.errors import StorageError

logger = logging.getLogger(__name__)

# Lazy-initialized S3 client
_s3_client = None

_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "video/mp4": ".mp4",
    "video/webm": ".webm",
}


def _get_config() -> Dict[str, Optional[str]]:
    settings = get_settings()
    return {
        "access_key_id": settings.aws_access_key_id,
        "secret_access_key": settings.aws_secret_access_key,
        "bucket": settings.aws_s3_bucket,
        "region": settings.aws_s3_region,
    }


def _get_s3_client():
    """Get or create the boto3 S3 client."""
    global _s3_client
    if _s3_client is None:
        cfg = _get_config()
        if not all([cfg["access_key_id"], cfg["secret_access_key"], cfg["bucket"]]):
            raise StorageError(
                "AWS S3 environment variables not configured. "
                "Set AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY, and AWS_S3_BUCKET."
            )
        _s3_client = boto3.client(
            "s3",
            aws_access_key_id=cfg["access_key_id"],
            aws_secret_access_key=cfg["secret_access_key"],
            region_name=cfg["region"],
        )
    return _s3_client


def build_key(folder: str, owner_id: int, content_type: str) -> str:
    """
    Build a unique object key, e.g. ``videos/12/3f2a....mp4``.
    """
    ext = _EXTENSIONS.get(content_type, "")
    return f"{folder}/{owner_id}/{uuid.uuid4().hex}{ext}"


def url_for_key(key: str) -> str:
    """Public URL of an object key."""
    cfg = _get_config()
    return f"https://{cfg['bucket']}.s3.{cfg['region']}.amazonaws.com/{key}"


async def upload_file(file_bytes: bytes, key: str, content_type: str = "application/octet-stream") -> str:
    """
    Upload file bytes to S3 under the given key.

    Args:
        file_bytes: Raw file content
        key: S3 object key (see build_key)
        content_type: MIME type for the uploaded object

    Returns:
        Public URL of the uploaded file

    Raises:
        StorageError: If S3 is not configured or the upload fails
    """
    client = _get_s3_client()
    cfg = _get_config()
    put = partial(
        client.put_object,
        Bucket=cfg["bucket"],
        Key=key,
        Body=file_bytes,
        ContentType=content_type,
    )
    try:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, put)
    except (BotoCoreError, ClientError) as e:
        logger.error("Failed to upload %s to S3: %s", key, e)
        raise StorageError("Failed to upload file to storage") from e

    logger.info("Uploaded file to S3: %s", key)
    return url_for_key(key)


async def delete_file(key: str) -> None:
    """
    Delete a file from S3 by its object key.

    Callers that treat deletion as best-effort wrap this in run_best_effort.

    Raises:
        StorageError: If S3 is not configured or the delete fails
    """
    client = _get_s3_client()
    cfg = _get_config()
    try:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(
            None, partial(client.delete_object, Bucket=cfg["bucket"], Key=key)
        )
    except (BotoCoreError, ClientError) as e:
        raise StorageError(f"Failed to delete {key} from storage") from e
    logger.info("Deleted file from S3: %s", key)


def _extract_key_from_url(url: str, expected_bucket: Optional[str] = None) -> Optional[str]:
    """
    Extract the S3 object key from a full S3 URL.

    Used for rows that only kept the URL of an image. Validates that the URL
    hostname matches the expected S3 bucket before extracting the key.

    Handles URLs like:
      https://bucket.s3.region.amazonaws.com/profiles/players/12/abc.jpg

    Returns:
        Object key string or None if parsing fails or hostname doesn't match
    """
    if not url:
        return None
    parsed = urlparse(url)

    if expected_bucket and parsed.hostname and expected_bucket not in parsed.hostname:
        logger.warning(
            f"URL hostname '{parsed.hostname}' does not match "
            f"expected bucket '{expected_bucket}'"
        )
        return None

    key = parsed.path.lstrip("/")
    return key if key else None


def key_for(url: Optional[str], key: Optional[str]) -> Optional[str]:
    """Prefer a stored key; fall back to parsing it out of the URL."""
    if key:
        return key
    if not url:
        return None
    return _extract_key_from_url(url, _get_config()["bucket"])
