"""New-message notification to connected clients.

Two interchangeable strategies implement :class:`MessageFeed`:

* ``PollingFeed`` keeps no server state; clients discover messages by
  polling the message endpoints.
* ``PushFeed`` fans events out to WebSocket subscribers of ``/ws/feed``
  held in this process.

Only the strategy selected by ``realtime_strategy`` is active.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, Dict, Iterable, Protocol, Set

import anyio
from fastapi.websockets import WebSocket, WebSocketDisconnect, WebSocketState

from fairway.config import Settings
from fairway.models import RealtimeStrategy
from fairway.monitoring.metrics import feed_subscribers

logger = logging.getLogger(__name__)


class MessageFeed(Protocol):
    strategy: RealtimeStrategy

    def publish(self, recipients: Iterable[int], event: dict[str, Any]) -> None:
        """Announce ``event`` to ``recipients``; must not raise."""


class PollingFeed:
    strategy = RealtimeStrategy.POLLING

    def publish(self, recipients: Iterable[int], event: dict[str, Any]) -> None:
        return None


class PushFeed:
    """Tracks WebSocket subscribers per user and pushes events to them."""

    strategy = RealtimeStrategy.PUSH

    def __init__(self) -> None:
        self._connections: Dict[int, Set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()
        self._pending: Set[asyncio.Task[None]] = set()

    def _update_gauge(self) -> None:
        feed_subscribers.set(sum(len(sockets) for sockets in self._connections.values()))

    async def connect(self, user_id: int, websocket: WebSocket) -> None:
        async with self._lock:
            self._connections[user_id].add(websocket)
            self._update_gauge()

    async def disconnect(self, user_id: int, websocket: WebSocket) -> None:
        async with self._lock:
            sockets = self._connections.get(user_id)
            if not sockets:
                return
            sockets.discard(websocket)
            if not sockets:
                self._connections.pop(user_id, None)
            self._update_gauge()

    async def broadcast(self, recipients: Iterable[int], payload: dict[str, Any]) -> int:
        unique_recipients = set(recipients)
        if not unique_recipients:
            return 0
        async with self._lock:
            targets = [
                socket
                for recipient_id in unique_recipients
                for socket in self._connections.get(recipient_id, set())
            ]
        delivered = 0
        for socket in targets:
            if socket.application_state != WebSocketState.CONNECTED:
                continue
            try:
                await socket.send_json(payload)
            except (WebSocketDisconnect, RuntimeError):
                continue
            delivered += 1
        return delivered

    def publish(self, recipients: Iterable[int], event: dict[str, Any]) -> None:
        """Schedule a broadcast from either the event loop or a worker thread."""

        if not self._connections:
            return
        targets = list(recipients)

        async def _send() -> None:
            await self.broadcast(targets, event)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            try:
                anyio.from_thread.run(_send)
            except RuntimeError:
                logger.debug("No event loop available to push %s", event.get("type"))
        else:
            task = loop.create_task(_send())
            self._pending.add(task)
            task.add_done_callback(self._finish)

    def _finish(self, task: asyncio.Task[None]) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.warning("Push feed broadcast failed", exc_info=task.exception())


polling_feed = PollingFeed()
push_feed = PushFeed()
"""Singleton feeds; handlers pick one through ``get_message_feed``."""


def get_message_feed(settings: Settings) -> MessageFeed:
    if settings.realtime_strategy == RealtimeStrategy.PUSH.value:
        return push_feed
    return polling_feed
