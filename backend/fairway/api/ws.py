"""WebSocket endpoint for the push message feed."""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect, status

from fairway.api.deps import get_user_from_token
from fairway.config import get_settings
from fairway.database import get_db_session
from fairway.models import RealtimeStrategy, User
from fairway.services.events import push_feed

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ws", tags=["realtime"])


async def _resolve_user(websocket: WebSocket) -> User | None:
    token = websocket.query_params.get("token")
    if not token:
        auth_header = websocket.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            token = auth_header.removeprefix("Bearer ").strip()
    if not token:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Missing token")
        return None

    try:
        with get_db_session() as db:
            return get_user_from_token(token, db)
    except HTTPException:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Invalid token")
        return None


@router.websocket("/feed")
async def websocket_feed(websocket: WebSocket) -> None:
    """Stream new-message events to the authenticated user.

    Only available with the push strategy; polling deployments refuse the
    connection so clients fall back to polling.
    """

    if get_settings().realtime_strategy != RealtimeStrategy.PUSH.value:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Push feed disabled")
        return

    user = await _resolve_user(websocket)
    if user is None:
        return
    user_id = user.id

    await websocket.accept()
    await push_feed.connect(user_id, websocket)
    try:
        await websocket.send_json({"type": "ready", "user_id": user_id})
        while True:
            raw_message = await websocket.receive_text()
            try:
                payload = json.loads(raw_message)
            except json.JSONDecodeError:
                continue
            if isinstance(payload, dict) and payload.get("type") == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        logger.debug("Feed subscriber %s disconnected", user_id)
    finally:
        await push_feed.disconnect(user_id, websocket)
