import time

import jwt
import pytest
from fastapi import HTTPException

from app.auth import verify
from app.auth.verify import verify_jwt

SECRET = "test-secret-with-enough-length-for-hs256"


def _token(**claims):
    payload = {"sub": "user-123", "aud": "authenticated", "exp": int(time.time()) + 60}
    payload.update(claims)
    return jwt.encode(payload, SECRET, algorithm="HS256")


@pytest.fixture(autouse=True)
def jwt_secret(monkeypatch):
    monkeypatch.setattr(verify.settings, "JWT_SECRET", SECRET)


def test_valid_token_returns_claims():
    claims = verify_jwt(_token(email="user@example.com"))

    assert claims["sub"] == "user-123"
    assert claims["email"] == "user@example.com"


def test_expired_token_rejected():
    with pytest.raises(HTTPException) as exc:
        verify_jwt(_token(exp=int(time.time()) - 10))

    assert exc.value.status_code == 401


def test_wrong_audience_rejected():
    with pytest.raises(HTTPException) as exc:
        verify_jwt(_token(aud="someone-else"))

    assert exc.value.status_code == 401


def test_wrong_signature_rejected():
    forged = jwt.encode(
        {"sub": "user-123", "aud": "authenticated"}, "another-secret-of-enough-length", "HS256"
    )

    with pytest.raises(HTTPException):
        verify_jwt(forged)


def test_missing_secret_means_auth_not_configured(monkeypatch):
    monkeypatch.setattr(verify.settings, "JWT_SECRET", None)

    with pytest.raises(HTTPException) as exc:
        verify_jwt(_token())

    assert exc.value.status_code == 401
    assert exc.value.detail == "Authentication not configured"
