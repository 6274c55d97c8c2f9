"""Pydantic schemas for API payloads."""

from .auth import LoginRequest, Token, UserCreate, UserRead
from .channels import (
    ChannelCreate,
    ChannelMemberAdd,
    ChannelRead,
    ChannelWithMembers,
    ReadStateRead,
    TypingUsersRead,
    UnreadSummary,
)
from .messages import (
    DirectMessagePage,
    DirectMessageRead,
    MessageAttachmentRead,
    MessageCreate,
    MessagePage,
    MessageReactionSummary,
    MessageRead,
    MessageUpdate,
    ReactionRequest,
    ReactionsRead,
)
from .push import PushSendRequest, PushSubscriptionCreate, PushSubscriptionDelete, PushSubscriptionStatus
from .users import (
    AdminUserRead,
    AdminUserUpdate,
    HeartbeatRequest,
    OnlineUsersRead,
    PublicUser,
    UserProfileUpdate,
)

__all__ = [
    "LoginRequest",
    "Token",
    "UserCreate",
    "UserRead",
    "PublicUser",
    "UserProfileUpdate",
    "AdminUserRead",
    "AdminUserUpdate",
    "HeartbeatRequest",
    "OnlineUsersRead",
    "ChannelCreate",
    "ChannelRead",
    "ChannelWithMembers",
    "ChannelMemberAdd",
    "TypingUsersRead",
    "ReadStateRead",
    "UnreadSummary",
    "MessageRead",
    "DirectMessageRead",
    "DirectMessagePage",
    "MessageCreate",
    "MessageUpdate",
    "MessagePage",
    "MessageReactionSummary",
    "MessageAttachmentRead",
    "ReactionRequest",
    "ReactionsRead",
    "PushSubscriptionCreate",
    "PushSubscriptionDelete",
    "PushSubscriptionStatus",
    "PushSendRequest",
]
