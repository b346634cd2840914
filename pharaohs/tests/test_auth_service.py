"""
Unit tests for authentication service.
Tests password hashing and JWT access/refresh tokens.
"""
from datetime import timedelta

from jose import jwt

from pharaohs.config import get_settings
from pharaohs.services import auth_service


class TestPasswordHashing:
    """Tests for password hashing and verification."""

    def test_hash_password(self):
        """Test password hashing produces different hashes for same password."""
        password = "test_password_123"
        hash1 = auth_service.hash_password(password)
        hash2 = auth_service.hash_password(password)

        # Hashes should be different (due to salt)
        assert hash1 != hash2
        assert auth_service.verify_password(password, hash1)
        assert auth_service.verify_password(password, hash2)

    def test_hash_uses_ten_rounds(self):
        password_hash = auth_service.hash_password("secret")
        assert password_hash.startswith("$2b$10$")

    def test_verify_password_incorrect(self):
        password_hash = auth_service.hash_password("test_password_123")
        assert auth_service.verify_password("wrong_password", password_hash) is False

    def test_verify_password_empty(self):
        password_hash = auth_service.hash_password("test_password_123")
        assert auth_service.verify_password("", password_hash) is False

    def test_verify_password_malformed_hash(self):
        """A corrupted stored hash fails verification instead of raising."""
        assert auth_service.verify_password("secret", "not-a-bcrypt-hash") is False


class TestJWTTokens:
    """Tests for JWT token creation and verification."""

    def test_access_token_round_trip(self):
        token = auth_service.create_access_token({"id": 7, "role": "player"})
        payload = auth_service.verify_token(token)

        assert payload is not None
        assert payload["id"] == 7
        assert payload["role"] == "player"
        assert payload["type"] == auth_service.ACCESS_TOKEN_TYPE

    def test_expired_token_rejected(self):
        token = auth_service.create_access_token(
            {"id": 7, "role": "player"}, expires_delta=timedelta(seconds=-1)
        )
        assert auth_service.verify_token(token) is None

    def test_wrong_secret_rejected(self):
        token = jwt.encode({"id": 7, "role": "player", "type": "access"}, "other-secret", algorithm="HS256")
        assert auth_service.verify_token(token) is None

    def test_other_algorithm_rejected(self):
        """Only HS256 tokens are accepted, even when signed with the right secret."""
        token = jwt.encode(
            {"id": 7, "role": "player", "type": "access"},
            get_settings().jwt_secret,
            algorithm="HS512",
        )
        assert auth_service.verify_token(token) is None

    def test_refresh_token_is_not_an_access_token(self):
        refresh = auth_service.create_refresh_token({"id": 7, "role": "scout"})

        assert auth_service.verify_token(refresh) is None
        payload = auth_service.verify_token(refresh, auth_service.REFRESH_TOKEN_TYPE)
        assert payload["id"] == 7

    def test_garbage_token_rejected(self):
        assert auth_service.verify_token("not.a.token") is None
