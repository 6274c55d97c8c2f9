from __future__ import annotations

from enum import Enum


class AttachmentTarget(str, Enum):
    """Kind of conversation an uploaded file is posted into."""

    CHANNEL = "channel"
    DIRECT = "dm"


class RealtimeStrategy(str, Enum):
    """How clients learn about new messages."""

    POLLING = "polling"
    PUSH = "push"
