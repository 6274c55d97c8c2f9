"""Configuration endpoint exposing runtime options to the frontend."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from fairway.config import Settings, get_settings
from fairway.models import RealtimeStrategy

router = APIRouter(prefix="/config", tags=["config"])


def _is_secure_request(request: Request) -> bool:
    forwarded_proto = request.headers.get("x-forwarded-proto", "").split(",")[0].strip()
    if forwarded_proto:
        return forwarded_proto.lower() == "https"
    return request.url.scheme == "https"


def _feed_url(request: Request) -> str:
    """Absolute WebSocket URL of the push feed as seen by the browser."""

    host = request.headers.get("x-forwarded-host") or request.headers.get("host") or request.url.netloc
    host = host.split(",")[0].strip()
    scheme = "wss" if _is_secure_request(request) else "ws"
    return f"{scheme}://{host}/ws/feed"


@router.get("")
def read_client_config(request: Request, settings: Settings = Depends(get_settings)) -> dict[str, object]:
    """Expose polling intervals, limits and push settings."""

    push_strategy = settings.realtime_strategy == RealtimeStrategy.PUSH.value
    return {
        "realtime": {
            "strategy": settings.realtime_strategy,
            "pollIntervalSeconds": settings.poll_interval_seconds,
            "feedUrl": _feed_url(request) if push_strategy else None,
        },
        "presence": {
            "heartbeatIntervalSeconds": settings.heartbeat_interval_seconds,
            "onlineThresholdSeconds": settings.online_threshold_seconds,
        },
        "typing": {
            "visibleSeconds": settings.typing_visible_seconds,
        },
        "limits": {
            "historySize": settings.chat_history_limit,
            "pollBatchSize": settings.chat_poll_limit,
            "maxMessageLength": settings.chat_message_max_length,
            "maxUploadBytes": settings.max_upload_size,
        },
        "push": {
            "enabled": settings.push_enabled,
            "vapidPublicKey": settings.web_push_vapid_public_key if settings.push_enabled else None,
        },
    }
