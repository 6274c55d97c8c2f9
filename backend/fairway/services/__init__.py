"""Application service helpers."""

from .events import get_message_feed, polling_feed, push_feed

__all__ = [
    "get_message_feed",
    "polling_feed",
    "push_feed",
]
