"""
User service layer: account registration, login and lookups.
"""

from typing import Optional, Dict
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from pharaohs.database.models import User, UserRole, UserStatus, PlayerProfile
from pharaohs.services import auth_service
from pharaohs.services.errors import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    ValidationError,
)
from pharaohs.utils.datetime_utils import parse_date
import logging

logger = logging.getLogger(__name__)

SELF_REGISTER_ROLES = {UserRole.PLAYER.value, UserRole.SCOUT.value}


def _user_to_dict(user: User) -> Dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "status": user.status,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def issue_tokens(user: Dict) -> Dict:
    """Access and refresh tokens for a user dict."""
    claims = {"id": user["id"], "role": user["role"]}
    return {
        "token": auth_service.create_access_token(claims),
        "refreshToken": auth_service.create_refresh_token(claims),
    }


async def get_user_by_id(session: AsyncSession, user_id: int) -> Optional[Dict]:
    """
    Get user by ID.

    Args:
        session: Database session
        user_id: User ID

    Returns:
        User dict, or None if not found
    """
    result = await session.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    return _user_to_dict(user) if user else None


async def get_user_by_email(session: AsyncSession, email: str) -> Optional[User]:
    result = await session.execute(select(User).where(User.email == normalize_email(email)))
    return result.scalar_one_or_none()


async def create_user(
    session: AsyncSession,
    name: str,
    email: str,
    password_hash: str,
    role: str,
    status: str = UserStatus.ACTIVE.value,
) -> Dict:
    """
    Create a new user row.

    Raises:
        ConflictError: If the email is already registered
    """
    email = normalize_email(email)
    if await get_user_by_email(session, email) is not None:
        raise ConflictError("Email already exists")

    user = User(name=name.strip(), email=email, password_hash=password_hash, role=role, status=status)
    session.add(user)
    try:
        await session.flush()
    except IntegrityError:
        # Lost a race with a concurrent registration of the same email
        raise ConflictError("Email already exists")
    await session.refresh(user)
    return _user_to_dict(user)


async def register(
    session: AsyncSession,
    name: Optional[str],
    email: Optional[str],
    password: Optional[str],
    confirm_password: Optional[str],
    role: Optional[str],
    date_of_birth: Optional[str] = None,
) -> Dict:
    """
    Register a player or scout account and sign them in.

    Players get their profile row created up front so the date of birth is
    stored.

    Returns:
        Dict with "token", "refreshToken" and "user"

    Raises:
        ValidationError: Missing fields, mismatched passwords or bad role
        ConflictError: Email already registered
    """
    if not all([name, email, password, confirm_password, role]):
        raise ValidationError("All fields are required")
    if password != confirm_password:
        raise ValidationError("Passwords do not match")
    if role not in SELF_REGISTER_ROLES:
        raise ValidationError("Invalid role")

    dob = None
    if role == UserRole.PLAYER.value and date_of_birth:
        try:
            dob = parse_date(date_of_birth)
        except ValueError:
            raise ValidationError("Invalid date of birth")

    user = await create_user(
        session,
        name=name,
        email=email,
        password_hash=auth_service.hash_password(password),
        role=role,
    )

    if role == UserRole.PLAYER.value:
        session.add(PlayerProfile(user_id=user["id"], date_of_birth=dob))
        await session.flush()

    logger.info(f"Registered {role} account {user['id']}")
    return {**issue_tokens(user), "user": user}


async def login(session: AsyncSession, email: Optional[str], password: Optional[str]) -> Dict:
    """
    Authenticate with email and password.

    Returns:
        Dict with "token", "refreshToken" and "user"

    Raises:
        ValidationError: Missing email or password
        AuthenticationError: Unknown email or wrong password
        AuthorizationError: Account is not active
    """
    if not email or not password:
        raise ValidationError("Email and password are required")

    user = await get_user_by_email(session, email)
    if user is None or not auth_service.verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid credentials")
    if user.status != UserStatus.ACTIVE.value:
        raise AuthorizationError("Account is not active")

    user_dict = _user_to_dict(user)
    return {**issue_tokens(user_dict), "user": user_dict}


async def refresh_access_token(session: AsyncSession, refresh_token: Optional[str]) -> Dict:
    """
    Exchange a refresh token for a new access token.

    Raises:
        AuthenticationError: Token missing, invalid or for an unknown user
        AuthorizationError: Account is not active
    """
    if not refresh_token:
        raise AuthenticationError("No token")
    payload = auth_service.verify_token(refresh_token, auth_service.REFRESH_TOKEN_TYPE)
    if payload is None:
        raise AuthenticationError("Invalid token")

    user = await get_user_by_id(session, payload.get("id"))
    if user is None:
        raise AuthenticationError("Invalid token")
    if user["status"] != UserStatus.ACTIVE.value:
        raise AuthorizationError("Account is not active")

    token = auth_service.create_access_token({"id": user["id"], "role": user["role"]})
    return {"token": token, "user": user}
