"""Current-user profile and unread summary endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from fairway.api.deps import RequestContext, get_request_context
from fairway.schemas import UnreadSummary, UserProfileUpdate, UserRead
from fairway.services.read_state import unread_counts, unread_direct_counts

router = APIRouter(tags=["users"])


@router.get("/users/me", response_model=UserRead)
def read_me(ctx: RequestContext = Depends(get_request_context)) -> UserRead:
    return UserRead.model_validate(ctx.user)


@router.patch("/users/me", response_model=UserRead)
def update_me(payload: UserProfileUpdate, ctx: RequestContext = Depends(get_request_context)) -> UserRead:
    """Update display name, avatar URL or status text; omitted fields are left alone."""

    user = ctx.user
    fields = payload.model_fields_set
    if "display_name" in fields:
        user.display_name = payload.display_name
    if "avatar_url" in fields:
        user.avatar_url = payload.avatar_url or None
    if "status" in fields:
        user.status = payload.status or None
    ctx.db.add(user)
    ctx.db.commit()
    ctx.db.refresh(user)
    return UserRead.model_validate(user)


@router.get("/unread", response_model=UnreadSummary)
def read_unread_summary(ctx: RequestContext = Depends(get_request_context)) -> UnreadSummary:
    """Unread counts for every channel the caller belongs to and per direct-message peer."""

    channels = unread_counts(ctx.user.id, ctx.db)
    direct = unread_direct_counts(ctx.user.id, ctx.db)
    return UnreadSummary(
        channels=channels,
        direct_messages=direct,
        total=sum(channels.values()) + sum(direct.values()),
    )
