"""Unit tests for bearer-token verification."""

from datetime import timedelta

import pytest
from jose import jwt

from config.settings import settings
from src.smm_common.errors import InvalidTokenError
from src.smm_gateway.auth.jwt_handler import Identity, create_access_token, decode_token


def test_access_token_contains_claims() -> None:
    token = create_access_token("user-123", name="Asha", email="asha@example.com")
    payload = jwt.get_unverified_claims(token)
    assert payload["sub"] == "user-123"
    assert payload["name"] == "Asha"


def test_decode_valid_token() -> None:
    identity = decode_token(create_access_token("user-abc", name="Asha"))
    assert identity == Identity(user_id="user-abc", name="Asha", email="")


def test_expired_token_rejected() -> None:
    token = create_access_token("user-abc", expires_in=timedelta(seconds=-1))
    with pytest.raises(InvalidTokenError):
        decode_token(token)


def test_wrong_secret_rejected() -> None:
    token = jwt.encode({"sub": "user-abc"}, "another-secret", algorithm=settings.JWT_ALGORITHM)
    with pytest.raises(InvalidTokenError):
        decode_token(token)


def test_missing_subject_rejected() -> None:
    token = jwt.encode({"name": "nobody"}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    with pytest.raises(InvalidTokenError):
        decode_token(token)


def test_garbage_rejected() -> None:
    with pytest.raises(InvalidTokenError):
        decode_token("not-a-jwt")


def test_audit_label_falls_back_to_user_id() -> None:
    assert Identity(user_id="u-1", name="").audit_label == "u-1"
    assert Identity(user_id="u-1", name="Ravi").audit_label == "Ravi"
