"""
Authentication primitives: password hashing and signed bearer tokens.
"""

from datetime import timedelta
from typing import Dict, Optional
import logging

import bcrypt
from jose import jwt, JWTError

from pharaohs.config import get_settings
from pharaohs.utils.datetime_utils import utcnow

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"
BCRYPT_ROUNDS = 10


def hash_password(password: str) -> str:
    """Hash a password with bcrypt."""
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plain password against a bcrypt hash."""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash in storage
        return False


def _encode(data: Dict, token_type: str, expires_delta: timedelta) -> str:
    settings = get_settings()
    to_encode = data.copy()
    to_encode.update({"type": token_type, "exp": utcnow() + expires_delta})
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def create_access_token(data: Dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed access token.

    Args:
        data: Claims to embed, at least {"id", "role"}
        expires_delta: Lifetime override (defaults to the configured expiry)

    Returns:
        Encoded JWT string
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=get_settings().access_token_expire_minutes)
    return _encode(data, ACCESS_TOKEN_TYPE, expires_delta)


def create_refresh_token(data: Dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a longer-lived refresh token carrying the same claims."""
    if expires_delta is None:
        expires_delta = timedelta(days=get_settings().refresh_token_expire_days)
    return _encode(data, REFRESH_TOKEN_TYPE, expires_delta)


def verify_token(token: str, token_type: str = ACCESS_TOKEN_TYPE) -> Optional[Dict]:
    """
    Decode and validate a token.

    Tokens whose header names any algorithm other than the configured one are
    rejected before the signature is checked.

    Returns:
        The token claims, or None if the token is invalid, expired, signed with
        an unexpected algorithm or of the wrong type
    """
    settings = get_settings()
    try:
        header = jwt.get_unverified_header(token)
        if header.get("alg") != settings.jwt_algorithm:
            logger.warning(f"Rejected token signed with algorithm {header.get('alg')!r}")
            return None
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None

    if payload.get("type") != token_type:
        return None
    return payload
