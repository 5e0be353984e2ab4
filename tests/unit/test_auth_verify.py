import time

import jwt
import pytest
from fastapi import HTTPException

from storefront.auth import verify

SECRET = "test-secret-with-enough-length-for-hs256"


@pytest.fixture
def hs256_settings(monkeypatch):
    monkeypatch.setattr(verify.settings, "AUTH_JWKS_URL", None)
    monkeypatch.setattr(verify.settings, "AUTH_JWT_SECRET", SECRET)
    monkeypatch.setattr(verify.settings, "AUTH_AUDIENCE", "authenticated")


def _token(**claims):
    payload = {"sub": "user-123", "aud": "authenticated", "exp": int(time.time()) + 60}
    payload.update(claims)
    return jwt.encode(payload, SECRET, algorithm="HS256")


def test_valid_token_returns_claims(hs256_settings):
    claims = verify.verify_jwt(_token())

    assert claims["sub"] == "user-123"


def test_expired_token_is_rejected(hs256_settings):
    with pytest.raises(HTTPException) as exc_info:
        verify.verify_jwt(_token(exp=int(time.time()) - 10))

    assert exc_info.value.status_code == 401


def test_wrong_audience_is_rejected(hs256_settings):
    with pytest.raises(HTTPException):
        verify.verify_jwt(_token(aud="someone-else"))


def test_missing_secret_rejects_every_token(monkeypatch):
    monkeypatch.setattr(verify.settings, "AUTH_JWKS_URL", None)
    monkeypatch.setattr(verify.settings, "AUTH_JWT_SECRET", None)

    with pytest.raises(HTTPException) as exc_info:
        verify.verify_jwt("anything")

    assert exc_info.value.detail == "Authentication is not configured"


def test_current_user_id_requires_sub():
    assert verify.current_user_id({"sub": "abc"}) == "abc"
    with pytest.raises(HTTPException):
        verify.current_user_id({})
