"""
SQLAlchemy ORM models for the Pharaohs scouting platform.
"""

import enum
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    Float,
    Date,
    DateTime,
    ForeignKey,
    UniqueConstraint,
    Index,
)
from sqlalchemy.sql import func
from pharaohs.database.db import Base


class UserRole(str, enum.Enum):
    """Account role. Every role-gated endpoint checks against this set."""

    PLAYER = "player"
    SCOUT = "scout"
    ADMIN = "admin"


class UserStatus(str, enum.Enum):
    """Account status enum. Only admins change it."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class MediaType(str, enum.Enum):
    IMAGE = "image"
    VIDEO = "video"


class MediaStatus(str, enum.Enum):
    """Moderation status of an uploaded video or image."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class InvitationStatus(str, enum.Enum):
    """Invitation status enum. Accepted and declined are terminal."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class NotificationType(str, enum.Enum):
    """Notification type enum."""

    INVITATION = "invitation"
    INVITATION_RESPONSE = "invitation_response"
    INVITATION_CANCELED = "invitation_canceled"
    LIKE = "like"
    COMMENT = "comment"
    SHORTLIST = "shortlist"


class AuditAction(str, enum.Enum):
    """Kinds of admin actions recorded in the system log."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    RESET_PASSWORD = "RESET_PASSWORD"


class User(Base):
    """User accounts with email/password authentication."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String, nullable=False)
    role = Column(String(20), nullable=False)  # UserRole enum value
    status = Column(String(20), default=UserStatus.ACTIVE.value, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_users_role", "role"),
    )


class PlayerProfile(Base):
    """Player profile, created on the first profile write."""

    __tablename__ = "player_profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    position = Column(String(100), nullable=True)
    club = Column(String(255), nullable=True)
    bio = Column(Text, nullable=True)
    date_of_birth = Column(Date, nullable=True)
    profile_image = Column(String(1000), nullable=True)
    profile_image_key = Column(String(500), nullable=True)  # S3 key of profile_image
    rating = Column(Float, nullable=True)  # Derived from PlayerStats
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("idx_player_profiles_position", "position"),
        Index("idx_player_profiles_club", "club"),
    )


class ScoutProfile(Base):
    """Scout profile, created on the first profile write."""

    __tablename__ = "scout_profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    organization = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    profile_image = Column(String(1000), nullable=True)
    profile_image_key = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Video(Base):
    """Uploaded media (video or image) belonging to a player."""

    __tablename__ = "videos"

    id = Column(Integer, primary_key=True, autoincrement=True)
    player_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    url = Column(String(1000), nullable=False)
    storage_key = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String(20), nullable=False)  # MediaType enum value
    status = Column(String(20), default=MediaStatus.PENDING.value, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_videos_player_created", "player_id", "created_at"),
        Index("idx_videos_status", "status"),
    )


class Location(Base):
    """Reusable tryout location managed by admins."""

    __tablename__ = "locations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, unique=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Tryout(Base):
    """Scout-organized tryout event."""

    __tablename__ = "tryouts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    scout_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    location = Column(String(255), nullable=False)
    date = Column(DateTime, nullable=False)  # Date and time of the event
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_tryouts_scout_date", "scout_id", "date"),
        Index("idx_tryouts_location", "location"),
    )


class Invitation(Base):
    """Invitation of a player to a tryout."""

    __tablename__ = "invitations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tryout_id = Column(Integer, ForeignKey("tryouts.id", ondelete="CASCADE"), nullable=False)
    player_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    status = Column(String(20), default=InvitationStatus.PENDING.value, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    responded_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("tryout_id", "player_id", name="uq_invitation_tryout_player"),
        Index("idx_invitations_player_status", "player_id", "status"),
    )


class Shortlist(Base):
    """A scout's saved player."""

    __tablename__ = "shortlists"

    id = Column(Integer, primary_key=True, autoincrement=True)
    scout_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    player_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("scout_id", "player_id", name="uq_shortlist_scout_player"),
    )


class Like(Base):
    __tablename__ = "likes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    video_id = Column(Integer, ForeignKey("videos.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "video_id", name="uq_like_user_video"),
        Index("idx_likes_video", "video_id"),
    )


class Comment(Base):
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    video_id = Column(Integer, ForeignKey("videos.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_comments_video_created", "video_id", "created_at"),
    )


class PlayerStats(Base):
    """Cumulative performance stats. Drives PlayerProfile.rating."""

    __tablename__ = "player_stats"

    id = Column(Integer, primary_key=True, autoincrement=True)
    player_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    matches_played = Column(Integer, default=0, nullable=False)
    goals = Column(Integer, default=0, nullable=False)
    assists = Column(Integer, default=0, nullable=False)
    yellow_cards = Column(Integer, default=0, nullable=False)
    red_cards = Column(Integer, default=0, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Notification(Base):
    """User notifications for in-app messaging."""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(50), nullable=True)  # NotificationType enum value
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_notifications_user_unread", "user_id", "is_read", "created_at"),
        Index("idx_notifications_user_created", "user_id", "created_at"),
    )


class SystemLog(Base):
    """Append-only audit trail of admin actions."""

    __tablename__ = "system_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    action = Column(String(50), nullable=False)  # AuditAction enum value
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(Integer, nullable=True)
    details = Column(Text, nullable=True)
    ip_address = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_system_logs_created", "created_at"),
        Index("idx_system_logs_action_entity", "action", "entity_type"),
    )
