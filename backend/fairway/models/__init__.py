"""Database models package."""

from .base import Base
from .chat import (
    Channel,
    ChannelMember,
    DirectMessage,
    DirectMessageReaction,
    Message,
    MessageAttachment,
    MessageReaction,
    PushSubscription,
    ReadReceipt,
    TypingIndicator,
    User,
)
from .enums import AttachmentTarget, RealtimeStrategy

__all__ = [
    "Base",
    "User",
    "Channel",
    "ChannelMember",
    "Message",
    "DirectMessage",
    "MessageReaction",
    "DirectMessageReaction",
    "MessageAttachment",
    "TypingIndicator",
    "ReadReceipt",
    "PushSubscription",
    "AttachmentTarget",
    "RealtimeStrategy",
]
