"""Unit tests validating Pydantic schema constraints."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from fairway.schemas import (
    AdminUserUpdate,
    ChannelCreate,
    MessageCreate,
    PushSubscriptionCreate,
    ReactionRequest,
    UserCreate,
    UserProfileUpdate,
)


def test_message_create_strips_whitespace():
    message = MessageCreate(content="  Deploy done  ")
    assert message.content == "Deploy done"


def test_channel_create_requires_non_empty_name():
    with pytest.raises(ValidationError):
        ChannelCreate(name="   ")


def test_user_create_enforces_password_length():
    with pytest.raises(ValidationError):
        UserCreate(email="bob@example.com", password="short")


def test_user_create_requires_valid_email():
    with pytest.raises(ValidationError):
        UserCreate(email="bob-at-example", password="long-enough")


def test_reaction_emoji_length_is_bounded():
    assert ReactionRequest(emoji=" 🎉 ").emoji == "🎉"
    with pytest.raises(ValidationError):
        ReactionRequest(emoji="x" * 33)


def test_admin_update_needs_a_flag():
    with pytest.raises(ValidationError):
        AdminUserUpdate()
    assert AdminUserUpdate(is_active=False).is_admin is None


def test_profile_update_tracks_explicit_fields():
    update = UserProfileUpdate(status="")
    assert update.model_fields_set == {"status"}
    assert update.status == ""


def test_push_subscription_requires_keys():
    with pytest.raises(ValidationError):
        PushSubscriptionCreate(endpoint="https://push.example/1", keys={"p256dh": "k"})
