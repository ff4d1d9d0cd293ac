"""Tests for auth security functions."""

from datetime import timedelta
from uuid import uuid4

import pytest
from jose import JWTError, jwt

from codearc.auth.permissions import UserRole
from codearc.auth.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from codearc.config import get_settings


class TestPasswordHashing:
    """Tests for password hashing functions."""

    def test_hash_password_creates_hash(self) -> None:
        """Hash should be different from plain password."""
        password = "SecureP@ssword123"
        hashed = hash_password(password)
        assert hashed != password
        assert hashed.startswith("$argon2id$")

    def test_hash_password_unique_hashes(self) -> None:
        """Same password should produce different hashes (due to salt)."""
        password = "SecureP@ssword123"
        assert hash_password(password) != hash_password(password)

    def test_verify_password_correct(self) -> None:
        hashed = hash_password("SecureP@ssword123")
        assert verify_password("SecureP@ssword123", hashed) is True

    def test_verify_password_incorrect(self) -> None:
        hashed = hash_password("SecureP@ssword123")
        assert verify_password("WrongP@ssword456", hashed) is False

    def test_verify_password_invalid_hash(self) -> None:
        """A malformed stored hash fails verification instead of raising."""
        assert verify_password("anything", "not-a-real-hash") is False


class TestAccessToken:
    """Tests for JWT access tokens."""

    def _claims(self) -> dict[str, str]:
        return {
            "sub": str(uuid4()),
            "email": "sam@example.com",
            "role": UserRole.STUDENT.value,
            "name": "Sam Student",
        }

    def test_round_trip(self) -> None:
        claims = self._claims()
        payload = decode_access_token(create_access_token(claims))

        assert payload["sub"] == claims["sub"]
        assert payload["role"] == "student"
        assert payload["type"] == "access"
        assert "exp" in payload
        assert "iat" in payload

    def test_expired_token(self) -> None:
        token = create_access_token(self._claims(), expires_delta=timedelta(seconds=-1))
        with pytest.raises(JWTError):
            decode_access_token(token)

    def test_tampered_token(self) -> None:
        token = create_access_token(self._claims())
        with pytest.raises(JWTError):
            decode_access_token(token[:-2] + ("AA" if token[-2:] != "AA" else "BB"))

    def test_wrong_secret(self) -> None:
        settings = get_settings()
        token = jwt.encode(
            {**self._claims(), "type": "access"},
            "another-secret",
            algorithm=settings.auth_algorithm,
        )
        with pytest.raises(JWTError):
            decode_access_token(token)

    def test_wrong_token_type(self) -> None:
        settings = get_settings()
        token = jwt.encode(
            {**self._claims(), "type": "refresh"},
            settings.auth_secret_key,
            algorithm=settings.auth_algorithm,
        )
        with pytest.raises(JWTError, match="Invalid token type"):
            decode_access_token(token)

    @pytest.mark.parametrize("claim", ["sub", "role"])
    def test_missing_claim(self, claim: str) -> None:
        claims = self._claims()
        del claims[claim]
        with pytest.raises(JWTError, match=f"missing {claim}"):
            decode_access_token(create_access_token(claims))
