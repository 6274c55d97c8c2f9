"""Schemas related to chat messages."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, constr

from fairway.schemas.users import PublicUser


class MessageReactionSummary(BaseModel):
    """Aggregated reaction information for a message."""

    emoji: str = Field(..., description="Emoji identifier, e.g. a unicode emoji or :thumbsup:")
    count: int = Field(..., ge=0, description="Total reactions with the emoji")
    reacted: bool = Field(
        default=False,
        description="Indicates whether the current user added this reaction",
    )
    user_ids: list[int] = Field(
        default_factory=list,
        description="Identifiers of users who added this reaction",
    )


class MessageAttachmentRead(BaseModel):
    """Serialized representation of a message attachment."""

    id: int
    filename: str
    url: str = Field(..., description="Inline data URL carrying the file contents")
    mime_type: str
    size: int


class ReplyPreview(BaseModel):
    """Short view of the message being replied to."""

    id: int
    content: str
    sender: PublicUser | None = None


class MessageRead(BaseModel):
    """Serialized representation of a channel message."""

    id: int
    channel_id: int
    sender_id: int
    sender: PublicUser | None = None
    content: str
    reply_to_id: int | None = None
    reply_to: ReplyPreview | None = None
    is_edited: bool = False
    is_pinned: bool = False
    pinned_at: datetime | None = None
    pinned_by_id: int | None = None
    created_at: datetime
    updated_at: datetime
    attachments: list[MessageAttachmentRead] = Field(default_factory=list)
    reactions: list[MessageReactionSummary] = Field(default_factory=list)


class DirectMessageRead(BaseModel):
    """Serialized representation of a direct message."""

    id: int
    sender_id: int
    recipient_id: int
    sender: PublicUser | None = None
    content: str
    reply_to_id: int | None = None
    reply_to: ReplyPreview | None = None
    is_edited: bool = False
    is_read: bool = False
    created_at: datetime
    updated_at: datetime
    attachments: list[MessageAttachmentRead] = Field(default_factory=list)
    reactions: list[MessageReactionSummary] = Field(default_factory=list)


class MessagePage(BaseModel):
    """Ordered batch of channel messages plus the cursor to poll from next."""

    items: list[MessageRead] = Field(default_factory=list)
    next_cursor: str | None = Field(
        default=None,
        description="Opaque marker of the newest returned message; pass back as ?cursor= to poll",
    )


class DirectMessagePage(BaseModel):
    items: list[DirectMessageRead] = Field(default_factory=list)
    next_cursor: str | None = None


class MessageCreate(BaseModel):
    """Payload for posting a message."""

    content: constr(strip_whitespace=True, min_length=1) = Field(..., description="Message text")
    reply_to_id: int | None = Field(default=None, ge=1)


class MessageUpdate(BaseModel):
    content: constr(strip_whitespace=True, min_length=1)


class ReactionRequest(BaseModel):
    """Payload for toggling a reaction on a message."""

    emoji: constr(strip_whitespace=True, min_length=1, max_length=32) = Field(
        ..., description="Emoji to toggle"
    )


class ReactionsRead(BaseModel):
    """Reaction set of a message after a toggle."""

    message_id: int
    added: bool
    reactions: list[MessageReactionSummary] = Field(default_factory=list)
