"""Unit tests for JWT token creation, decoding, and validation."""

from datetime import timedelta

import pytest
from jose import JWTError, jwt

from travelbook.auth.jwt import create_access_token, decode_token
from travelbook.config import settings


class TestCreateAccessToken:
    """Test access token creation."""

    def test_contains_type_access(self):
        token = create_access_token({"sub": "user-123"})
        payload = decode_token(token)
        assert payload["type"] == "access"

    def test_keeps_identity_claims(self):
        token = create_access_token({"sub": "user-abc", "name": "Sita", "role": "admin"})
        payload = decode_token(token)
        assert payload["sub"] == "user-abc"
        assert payload["name"] == "Sita"
        assert payload["role"] == "admin"

    def test_contains_iat_and_exp(self):
        payload = decode_token(create_access_token({"sub": "user-123"}))
        assert "iat" in payload
        assert payload["exp"] > payload["iat"]

    def test_custom_expiry_delta(self):
        payload = decode_token(create_access_token({"sub": "user-123"}, expires_delta=timedelta(hours=1)))
        assert payload["exp"] - payload["iat"] == 3600

    def test_input_dict_not_mutated(self):
        data = {"sub": "user-123"}
        create_access_token(data)
        assert data == {"sub": "user-123"}


class TestDecodeToken:
    """Test token decoding and validation."""

    def test_decode_expired_token_raises(self):
        token = create_access_token({"sub": "user-123"}, expires_delta=timedelta(seconds=-1))
        with pytest.raises(JWTError):
            decode_token(token)

    def test_decode_invalid_token_raises(self):
        with pytest.raises(JWTError):
            decode_token("not.a.valid.token")

    def test_decode_empty_string_raises(self):
        with pytest.raises(JWTError):
            decode_token("")

    def test_foreign_signature_rejected(self):
        token = jwt.encode({"sub": "user-123", "type": "access"}, "another-secret", algorithm=settings.jwt_algorithm)
        with pytest.raises(JWTError):
            decode_token(token)
