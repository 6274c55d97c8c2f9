"""Schemas for browser push subscriptions."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, constr, field_validator

from fairway.core.clock import as_utc


class PushSubscriptionKeys(BaseModel):
    p256dh: constr(min_length=1, max_length=255)
    auth: constr(min_length=1, max_length=255)


class PushSubscriptionCreate(BaseModel):
    """Subscription object as produced by the browser Push API."""

    endpoint: constr(strip_whitespace=True, min_length=1, max_length=2048)
    keys: PushSubscriptionKeys


class PushSubscriptionDelete(BaseModel):
    endpoint: constr(strip_whitespace=True, min_length=1, max_length=2048)


class PushSubscriptionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    endpoint: str
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def normalize_created_at(cls, value: datetime) -> datetime:
        return as_utc(value)


class PushSubscriptionStatus(BaseModel):
    enabled: bool = Field(..., description="Whether the server has VAPID credentials configured")
    public_key: str | None = None
    subscription_count: int = 0
    subscriptions: list[PushSubscriptionRead] = Field(default_factory=list)


class PushSendRequest(BaseModel):
    """Notification addressed to a single user."""

    user_id: int = Field(..., ge=1)
    title: constr(strip_whitespace=True, min_length=1, max_length=200)
    body: constr(strip_whitespace=True, min_length=1, max_length=1000)
    url: constr(strip_whitespace=True, max_length=512) | None = None
    tag: constr(strip_whitespace=True, max_length=64) | None = None
