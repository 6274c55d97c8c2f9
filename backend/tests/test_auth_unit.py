"""Unit tests for authentication helpers and endpoints."""

from __future__ import annotations

from datetime import timedelta

import jwt
import pytest
from fastapi import HTTPException

from fairway.api.auth import login_user
from fairway.api.deps import get_user_from_token
from fairway.core.security import (
    create_access_token,
    decode_access_token,
    get_password_hash,
    verify_password,
)
from fairway.models import User
from fairway.schemas import LoginRequest


@pytest.fixture()
def user(db_session):
    db_user = User(
        email="tester@example.com",
        hashed_password=get_password_hash("supersecret"),
        display_name="Tester",
    )
    db_session.add(db_user)
    db_session.commit()
    return db_user


def test_password_hash_roundtrip():
    hashed = get_password_hash("supersecret")

    assert hashed != "supersecret"
    assert verify_password("supersecret", hashed)
    assert not verify_password("wrong", hashed)


def test_login_user_returns_token(db_session, user):
    """Successful login should return a bearer token."""

    credentials = LoginRequest(email="Tester@Example.com", password="supersecret")
    token = login_user(credentials, db_session)

    assert token.token_type == "bearer"
    assert isinstance(token.access_token, str) and token.access_token
    assert token.expires_in > 0
    assert decode_access_token(token.access_token)["sub"] == str(user.id)


def test_login_user_rejects_invalid_credentials(db_session):
    """Invalid credentials must raise an HTTP 401 error."""

    credentials = LoginRequest(email="ghost@example.com", password="doesnotmatter")
    with pytest.raises(HTTPException) as exc:
        login_user(credentials, db_session)

    assert exc.value.status_code == 401
    assert "Incorrect email" in exc.value.detail


def test_login_user_rejects_deactivated_account(db_session, user):
    user.is_active = False
    db_session.commit()

    credentials = LoginRequest(email="tester@example.com", password="supersecret")
    with pytest.raises(HTTPException) as exc:
        login_user(credentials, db_session)

    assert exc.value.status_code == 403


def test_get_user_from_token(db_session, user):
    """Tokens should resolve to existing users."""

    token = create_access_token({"sub": str(user.id)})
    resolved = get_user_from_token(token, db_session)

    assert resolved.id == user.id
    assert resolved.email == user.email


def test_get_user_from_token_invalid_payload(db_session):
    """Invalid tokens must result in a 401 error."""

    token = create_access_token({"sub": "not-a-number"})
    with pytest.raises(HTTPException) as exc:
        get_user_from_token(token, db_session)

    assert exc.value.status_code == 401


def test_get_user_from_token_unknown_user(db_session):
    token = create_access_token({"sub": "999"})
    with pytest.raises(HTTPException) as exc:
        get_user_from_token(token, db_session)

    assert exc.value.status_code == 401


def test_get_user_from_token_rejects_deactivated_user(db_session, user):
    token = create_access_token({"sub": str(user.id)})
    user.is_active = False
    db_session.commit()

    with pytest.raises(HTTPException) as exc:
        get_user_from_token(token, db_session)

    assert exc.value.status_code == 401


def test_expired_token_is_rejected(db_session, user):
    token = create_access_token({"sub": str(user.id)}, expires_delta=timedelta(seconds=-5))

    with pytest.raises(HTTPException) as exc:
        get_user_from_token(token, db_session)

    assert exc.value.status_code == 401
    assert exc.value.detail == "Token has expired"


def test_token_signed_with_other_key_is_rejected():
    token = jwt.encode({"sub": "1"}, "not-the-server-secret", algorithm="HS256")
    with pytest.raises(HTTPException) as exc:
        decode_access_token(token)

    assert exc.value.status_code == 401
