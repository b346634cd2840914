"""
Engagement service: likes and comments on player media.
"""

from typing import Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, func
from sqlalchemy.exc import IntegrityError
from pharaohs.database.models import Like, Comment, Video, User, UserRole, NotificationType
from pharaohs.services import media_service, notification_service
from pharaohs.services.errors import AuthorizationError, NotFoundError, ValidationError
import logging

logger = logging.getLogger(__name__)


async def get_like_count(session: AsyncSession, video_id: int) -> int:
    result = await session.execute(select(func.count(Like.id)).where(Like.video_id == video_id))
    return result.scalar_one() or 0


async def _has_liked(session: AsyncSession, user_id: int, video_id: int) -> bool:
    result = await session.execute(
        select(Like.id).where(Like.user_id == user_id, Like.video_id == video_id)
    )
    return result.scalar_one_or_none() is not None


async def like_video(session: AsyncSession, user: Dict, video_id: Optional[int]) -> Dict:
    """
    Like a video. Liking twice is a no-op that still succeeds.

    The video owner is notified unless they liked their own video.

    Returns:
        Dict with "message", "alreadyLiked" and the current "likeCount"

    Raises:
        ValidationError: If no video ID was given
        NotFoundError: If the video doesn't exist
    """
    if not video_id:
        raise ValidationError("Video ID is required")
    video = await media_service.get_video(session, video_id)

    if await _has_liked(session, user["id"], video_id):
        return {
            "message": "Already liked this video",
            "alreadyLiked": True,
            "likeCount": await get_like_count(session, video_id),
        }

    try:
        async with session.begin_nested():
            session.add(Like(user_id=user["id"], video_id=video_id))
            await session.flush()
    except IntegrityError:
        # A concurrent request liked it first
        return {
            "message": "Already liked this video",
            "alreadyLiked": True,
            "likeCount": await get_like_count(session, video_id),
        }

    if video.player_id != user["id"]:
        await notification_service.notify(
            session,
            video.player_id,
            notification_service.like_message(user["name"], video.description),
            NotificationType.LIKE,
        )

    return {
        "message": "Liked video",
        "alreadyLiked": False,
        "likeCount": await get_like_count(session, video_id),
    }


async def unlike_video(session: AsyncSession, user: Dict, video_id: Optional[int]) -> Dict:
    """
    Remove a like. Unliking a video that wasn't liked is a no-op that succeeds.

    Returns:
        Dict with "message", "alreadyUnliked" and the current "likeCount"
    """
    if not video_id:
        raise ValidationError("Video ID is required")

    result = await session.execute(
        delete(Like).where(Like.user_id == user["id"], Like.video_id == video_id)
    )
    already_unliked = not result.rowcount
    return {
        "message": "Video was not liked" if already_unliked else "Unliked video",
        "alreadyUnliked": already_unliked,
        "likeCount": await get_like_count(session, video_id),
    }


async def get_video_likes(session: AsyncSession, user_id: int) -> List[Dict]:
    """
    Like count of every video and whether the user liked it.

    Returns:
        List of {"video_id", "likeCount", "likedByUser"}
    """
    videos = await session.execute(select(Video.id).order_by(Video.id))
    video_ids = list(videos.scalars().all())
    if not video_ids:
        return []

    counts = await session.execute(
        select(Like.video_id, func.count(Like.id)).group_by(Like.video_id)
    )
    like_counts = dict(counts.all())

    liked = await session.execute(select(Like.video_id).where(Like.user_id == user_id))
    liked_ids = set(liked.scalars().all())

    return [
        {
            "video_id": video_id,
            "likeCount": like_counts.get(video_id, 0),
            "likedByUser": video_id in liked_ids,
        }
        for video_id in video_ids
    ]


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------

async def add_comment(
    session: AsyncSession, user: Dict, video_id: Optional[int], content: Optional[str]
) -> Dict:
    """
    Comment on a video and notify its owner.

    Raises:
        ValidationError: If the video ID or content is missing
        NotFoundError: If the video doesn't exist
    """
    if not video_id or not content or not content.strip():
        raise ValidationError("Video ID and comment content are required")
    video = await media_service.get_video(session, video_id)

    comment = Comment(video_id=video_id, user_id=user["id"], content=content.strip())
    session.add(comment)
    await session.flush()
    await session.refresh(comment)

    if video.player_id != user["id"]:
        await notification_service.notify(
            session,
            video.player_id,
            notification_service.comment_message(user["name"], video.description),
            NotificationType.COMMENT,
        )

    return {
        "id": comment.id,
        "video_id": comment.video_id,
        "user_id": comment.user_id,
        "user_name": user["name"],
        "content": comment.content,
        "created_at": comment.created_at.isoformat() if comment.created_at else None,
    }


async def get_comments(session: AsyncSession, video_id: int) -> List[Dict]:
    """Comments on a video, oldest first."""
    result = await session.execute(
        select(Comment, User.name)
        .join(User, User.id == Comment.user_id)
        .where(Comment.video_id == video_id)
        .order_by(Comment.created_at.asc(), Comment.id.asc())
    )
    return [
        {
            "id": comment.id,
            "video_id": comment.video_id,
            "user_id": comment.user_id,
            "user_name": name,
            "content": comment.content,
            "created_at": comment.created_at.isoformat() if comment.created_at else None,
        }
        for comment, name in result.all()
    ]


async def delete_comment(session: AsyncSession, user: Dict, comment_id: int) -> None:
    """
    Delete a comment as its author or as an admin.

    Raises:
        NotFoundError: If the comment doesn't exist
        AuthorizationError: If the caller is neither author nor admin
    """
    result = await session.execute(select(Comment).where(Comment.id == comment_id))
    comment = result.scalar_one_or_none()
    if comment is None:
        raise NotFoundError("Comment not found")
    if comment.user_id != user["id"] and user["role"] != UserRole.ADMIN.value:
        raise AuthorizationError("You can only delete your own comments")

    await session.execute(delete(Comment).where(Comment.id == comment_id))
    logger.info(f"User {user['id']} deleted comment {comment_id}")

