"""Schemas for authentication endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, constr, field_validator

from fairway.core.clock import as_utc


class UserCreate(BaseModel):
    """Payload for creating a new user via registration."""

    email: EmailStr = Field(..., description="Unique e-mail address used to sign in")
    password: constr(min_length=8, max_length=128) = Field(
        ..., description="Plain text password that will be hashed before storing"
    )
    full_name: constr(strip_whitespace=True, min_length=1, max_length=128) | None = Field(
        default=None, description="Optional display name to show in the UI"
    )


class UserRead(BaseModel):
    """Representation of a user returned from the API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    display_name: str | None = None
    avatar_url: str | None = None
    status: str | None = None
    is_admin: bool
    is_active: bool
    last_seen_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @field_validator("last_seen_at", "created_at", "updated_at")
    @classmethod
    def normalize_timestamps(cls, value: datetime | None) -> datetime | None:
        return as_utc(value) if value is not None else None


class LoginRequest(BaseModel):
    """Payload for user login."""

    email: EmailStr = Field(..., description="User e-mail")
    password: constr(min_length=1, max_length=128) = Field(..., description="User password")


class Token(BaseModel):
    """Access token returned after successful authentication."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type, always 'bearer'")
    expires_in: int = Field(..., description="Number of seconds until the access token expires")
