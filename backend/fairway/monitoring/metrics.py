"""Metric definitions for chat traffic and push delivery."""

from __future__ import annotations

from .registry import registry


messages_created_total = registry.counter(
    "chat_messages_created_total",
    "Messages stored, by conversation kind.",
    label_names=("kind",),
)

message_polls_total = registry.counter(
    "chat_message_polls_total",
    "Message fetches served, by conversation kind and fetch mode.",
    label_names=("kind", "mode"),
)

reaction_toggles_total = registry.counter(
    "chat_reaction_toggles_total",
    "Reaction toggles, by conversation kind and resulting action.",
    label_names=("kind", "action"),
)

push_deliveries_total = registry.counter(
    "push_deliveries_total",
    "Web push delivery attempts, by outcome.",
    label_names=("outcome",),
)

feed_subscribers = registry.gauge(
    "chat_feed_subscribers",
    "WebSocket connections attached to the in-process message feed.",
)
