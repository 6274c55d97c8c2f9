"""Schemas related to user profiles, presence and administration."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, constr, field_validator, model_validator

from fairway.core.clock import as_utc


class PublicUser(BaseModel):
    """Minimal public-facing user information."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    display_name: str | None = None
    avatar_url: str | None = None
    status: str | None = None


class UserProfileUpdate(BaseModel):
    """Payload for updating the caller's own profile."""

    display_name: constr(strip_whitespace=True, min_length=1, max_length=128) | None = Field(
        default=None,
        description="New display name to use.",
    )
    avatar_url: constr(strip_whitespace=True, max_length=512) | None = None
    status: constr(strip_whitespace=True, max_length=140) | None = Field(
        default=None,
        description="Free-text status; an empty string clears it.",
    )


class HeartbeatRequest(BaseModel):
    """Presence heartbeat, optionally carrying a new status text."""

    status: constr(strip_whitespace=True, max_length=140) | None = None


class OnlineUsersRead(BaseModel):
    user_ids: list[int] = Field(default_factory=list)
    threshold_seconds: int


class AdminUserRead(PublicUser):
    """User record as seen by administrators."""

    is_admin: bool
    is_active: bool
    last_seen_at: datetime | None = None
    created_at: datetime

    @field_validator("last_seen_at", "created_at")
    @classmethod
    def normalize_timestamps(cls, value: datetime | None) -> datetime | None:
        return as_utc(value) if value is not None else None


class AdminUserUpdate(BaseModel):
    """Flags an administrator may change on another account."""

    is_active: bool | None = None
    is_admin: bool | None = None

    @model_validator(mode="after")
    def ensure_any_flag(self) -> "AdminUserUpdate":
        if self.is_active is None and self.is_admin is None:
            raise ValueError("At least one of is_active or is_admin must be provided")
        return self
