"""Presence heartbeat and online-user listing."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from fairway.api.deps import RequestContext, get_request_context
from fairway.schemas import HeartbeatRequest, OnlineUsersRead, UserRead
from fairway.services.presence import heartbeat, online_user_ids

router = APIRouter(prefix="/presence", tags=["presence"])


@router.post("/heartbeat", response_model=UserRead)
def post_heartbeat(
    payload: HeartbeatRequest | None = None,
    ctx: RequestContext = Depends(get_request_context),
) -> UserRead:
    """Mark the caller as seen now; a ``status`` field also replaces their status text."""

    if payload is not None and "status" in payload.model_fields_set:
        user = heartbeat(ctx.user, ctx.db, status_text=payload.status)
    else:
        user = heartbeat(ctx.user, ctx.db)
    return UserRead.model_validate(user)


@router.get("/online", response_model=OnlineUsersRead)
def list_online(ctx: RequestContext = Depends(get_request_context)) -> OnlineUsersRead:
    return OnlineUsersRead(
        user_ids=online_user_ids(ctx.db, ctx.settings),
        threshold_seconds=ctx.settings.online_threshold_seconds,
    )
