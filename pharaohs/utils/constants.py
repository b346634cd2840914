"""
Constants shared across the scouting platform.
"""

# Media upload limits
MAX_UPLOAD_SIZE_BYTES = 20 * 1024 * 1024  # 20 MB
ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/jpg"}
ALLOWED_VIDEO_TYPES = {"video/mp4", "video/webm"}
ALLOWED_MEDIA_TYPES = ALLOWED_IMAGE_TYPES | ALLOWED_VIDEO_TYPES

# S3 key prefixes
VIDEO_FOLDER = "videos"
IMAGE_FOLDER = "images"
PLAYER_PROFILE_FOLDER = "profiles/players"
SCOUT_PROFILE_FOLDER = "profiles/scouts"

# Rating scale
MIN_RATING = 1.0
MAX_RATING = 5.0

# Upper bound for any single cumulative statistic
MAX_STAT_VALUE = 100000

# Fallback age range for search filters when no player has a date of birth
DEFAULT_MIN_AGE = 15
DEFAULT_MAX_AGE = 40

# Notification template fallbacks
DEFAULT_CLUB_NAME = "Unknown Club"
DEFAULT_VIDEO_DESCRIPTION = "your video"

TEMP_PASSWORD_LENGTH = 8
