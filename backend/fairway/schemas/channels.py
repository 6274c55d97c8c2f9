"""Schemas for channels, membership and per-channel state."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, constr, field_validator

from fairway.core.clock import as_utc
from fairway.schemas.users import PublicUser


class ChannelCreate(BaseModel):
    """Payload for creating a channel."""

    name: constr(strip_whitespace=True, min_length=1, max_length=128)
    description: constr(strip_whitespace=True, max_length=512) | None = None
    is_private: bool = False


class ChannelRead(BaseModel):
    """Serialized channel."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None = None
    is_private: bool
    created_by_id: int | None = None
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def normalize_created_at(cls, value: datetime) -> datetime:
        return as_utc(value)


class ChannelWithMembers(ChannelRead):
    members: list[PublicUser] = Field(default_factory=list)


class ChannelMemberAdd(BaseModel):
    user_id: int = Field(..., ge=1)


class TypingUsersRead(BaseModel):
    """Members currently typing in a channel."""

    channel_id: int
    users: list[PublicUser] = Field(default_factory=list)


class ReadStateRead(BaseModel):
    channel_id: int
    last_read_at: datetime
    last_message_id: int | None = None


class UnreadSummary(BaseModel):
    """Unread counters keyed by channel id and by direct-message peer id."""

    channels: dict[int, int] = Field(default_factory=dict)
    direct_messages: dict[int, int] = Field(default_factory=dict)
    total: int = 0
