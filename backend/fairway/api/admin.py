"""Administrative channel, membership and account management."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import select

from fairway.api.deps import RequestContext, get_request_context, require_admin
from fairway.models import Channel, User
from fairway.schemas import (
    AdminUserRead,
    AdminUserUpdate,
    ChannelCreate,
    ChannelMemberAdd,
    ChannelWithMembers,
    UserRead,
)
from fairway.services import membership
from fairway.services.serialization import serialize_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


def _with_members(channel: Channel, ctx: RequestContext) -> ChannelWithMembers:
    members = membership.channel_members(channel.id, ctx.db)
    return ChannelWithMembers(
        id=channel.id,
        name=channel.name,
        description=channel.description,
        is_private=channel.is_private,
        created_by_id=channel.created_by_id,
        created_at=channel.created_at,
        members=[serialize_user(user) for user in members],
    )


@router.get("/channels", response_model=list[ChannelWithMembers])
def list_channels(ctx: RequestContext = Depends(require_admin)) -> list[ChannelWithMembers]:
    channels = ctx.db.execute(select(Channel).order_by(Channel.name.asc(), Channel.id.asc())).scalars()
    return [_with_members(channel, ctx) for channel in channels]


@router.post("/channels", response_model=ChannelWithMembers, status_code=status.HTTP_201_CREATED)
def create_channel(payload: ChannelCreate, ctx: RequestContext = Depends(require_admin)) -> ChannelWithMembers:
    """Create a channel; every active user becomes a member."""

    channel = membership.create_channel(
        payload.name,
        ctx.user,
        ctx.db,
        description=payload.description,
        is_private=payload.is_private,
    )
    return _with_members(channel, ctx)


@router.delete("/channels/{channel_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_channel(channel_id: int, ctx: RequestContext = Depends(require_admin)) -> Response:
    channel = membership.get_channel_or_404(channel_id, ctx.db)
    membership.delete_channel(channel, ctx.db)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/channels/{channel_id}/members",
    response_model=ChannelWithMembers,
    status_code=status.HTTP_201_CREATED,
)
def add_channel_member(
    channel_id: int,
    payload: ChannelMemberAdd,
    ctx: RequestContext = Depends(require_admin),
) -> ChannelWithMembers:
    channel = membership.get_channel_or_404(channel_id, ctx.db)
    user = membership.get_user_or_404(payload.user_id, ctx.db)
    membership.add_member(channel, user, ctx.db)
    return _with_members(channel, ctx)


@router.delete("/channels/{channel_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_channel_member(
    channel_id: int,
    user_id: int,
    ctx: RequestContext = Depends(require_admin),
) -> Response:
    channel = membership.get_channel_or_404(channel_id, ctx.db)
    membership.remove_member(channel, user_id, ctx.db)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/users", response_model=list[AdminUserRead])
def list_users(ctx: RequestContext = Depends(require_admin)) -> list[AdminUserRead]:
    users = ctx.db.execute(select(User).order_by(User.created_at.desc(), User.id.desc())).scalars()
    return [AdminUserRead.model_validate(user) for user in users]


@router.patch("/users/{user_id}", response_model=AdminUserRead)
def update_user(
    user_id: int,
    payload: AdminUserUpdate,
    ctx: RequestContext = Depends(require_admin),
) -> AdminUserRead:
    """Activate/deactivate an account or grant/revoke admin rights."""

    target = membership.get_user_or_404(user_id, ctx.db)
    user = membership.set_user_flags(
        ctx.user,
        target,
        ctx.db,
        is_active=payload.is_active,
        is_admin=payload.is_admin,
    )
    return AdminUserRead.model_validate(user)


@router.post("/bootstrap", response_model=UserRead)
def bootstrap(ctx: RequestContext = Depends(get_request_context)) -> UserRead:
    """Make the caller an admin, allowed only while no admin exists."""

    return UserRead.model_validate(membership.bootstrap_admin(ctx.user, ctx.db))


@router.post("/setup")
def setup_workspace(ctx: RequestContext = Depends(require_admin)) -> dict[str, object]:
    """Ensure the default channel exists and contains every active user."""

    result = membership.ensure_general_channel(ctx.user, ctx.db, ctx.settings)
    logger.info(
        "Workspace setup by user %s: channel %s (created=%s, added=%s)",
        ctx.user.id,
        result.channel.id,
        result.created,
        result.members_added,
    )
    return {
        "channel_id": result.channel.id,
        "channel_name": result.channel.name,
        "created": result.created,
        "members_added": result.members_added,
    }
