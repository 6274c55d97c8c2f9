"""Channel listing, message history, typing and read-state endpoints."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query, status

from fairway.api.deps import RequestContext, get_request_context, require_channel_member
from fairway.core.clock import as_utc
from fairway.schemas import (
    ChannelRead,
    MessageCreate,
    MessagePage,
    MessageRead,
    ReadStateRead,
    TypingUsersRead,
)
from fairway.services import get_message_feed
from fairway.services import messages as message_service
from fairway.services.membership import channel_member_ids, channels_for_user
from fairway.services.read_state import mark_channel_read
from fairway.services.serialization import serialize_message, serialize_messages, serialize_user
from fairway.services.sync import fetch_channel_messages
from fairway.services.typing_indicators import list_typing, set_typing

router = APIRouter(prefix="/channels", tags=["channels"])


@router.get("", response_model=list[ChannelRead])
def list_my_channels(ctx: RequestContext = Depends(get_request_context)) -> list[ChannelRead]:
    """Channels the caller is a member of."""

    return [ChannelRead.model_validate(channel) for channel in channels_for_user(ctx.user.id, ctx.db)]


@router.get("/{channel_id}/messages", response_model=MessagePage)
def list_channel_messages(
    channel_id: int,
    after: datetime | None = Query(
        default=None,
        description="Return messages created strictly after this timestamp (UTC when no offset)",
    ),
    cursor: str | None = Query(
        default=None,
        description="Opaque next_cursor from a previous page",
        max_length=256,
    ),
    ctx: RequestContext = Depends(get_request_context),
) -> MessagePage:
    """Latest messages, or the messages posted since ``after``/``cursor``."""

    channel = require_channel_member(channel_id, ctx)
    result = fetch_channel_messages(channel.id, ctx.db, ctx.settings, after=after, cursor=cursor)
    return MessagePage(
        items=serialize_messages(result.messages, ctx.user.id, ctx.db),
        next_cursor=result.next_cursor,
    )


@router.post(
    "/{channel_id}/messages",
    response_model=MessageRead,
    status_code=status.HTTP_201_CREATED,
)
def post_channel_message(
    channel_id: int,
    payload: MessageCreate,
    ctx: RequestContext = Depends(get_request_context),
) -> MessageRead:
    channel = require_channel_member(channel_id, ctx)
    message = message_service.create_channel_message(
        channel.id,
        ctx.user,
        payload.content,
        ctx.db,
        ctx.settings,
        reply_to_id=payload.reply_to_id,
    )
    serialized = serialize_message(message, ctx.user.id, ctx.db)
    get_message_feed(ctx.settings).publish(
        channel_member_ids(channel.id, ctx.db),
        {"type": "message.created", "channel_id": channel.id, "message_id": message.id},
    )
    return serialized


@router.get("/{channel_id}/pins", response_model=list[MessageRead])
def list_pinned_messages(
    channel_id: int, ctx: RequestContext = Depends(get_request_context)
) -> list[MessageRead]:
    """Pinned messages, most recently pinned first."""

    channel = require_channel_member(channel_id, ctx)
    return serialize_messages(message_service.list_pinned(channel.id, ctx.db), ctx.user.id, ctx.db)


@router.post("/{channel_id}/typing", status_code=status.HTTP_204_NO_CONTENT)
def report_typing(channel_id: int, ctx: RequestContext = Depends(get_request_context)) -> None:
    channel = require_channel_member(channel_id, ctx)
    set_typing(channel.id, ctx.user.id, ctx.db)


@router.get("/{channel_id}/typing", response_model=TypingUsersRead)
def read_typing(channel_id: int, ctx: RequestContext = Depends(get_request_context)) -> TypingUsersRead:
    """Members who reported typing within the visibility window, excluding the caller."""

    channel = require_channel_member(channel_id, ctx)
    users = list_typing(channel.id, ctx.user.id, ctx.db, ctx.settings)
    return TypingUsersRead(channel_id=channel.id, users=[serialize_user(user) for user in users])


@router.post("/{channel_id}/read", response_model=ReadStateRead)
def mark_read(channel_id: int, ctx: RequestContext = Depends(get_request_context)) -> ReadStateRead:
    channel = require_channel_member(channel_id, ctx)
    receipt = mark_channel_read(channel.id, ctx.user.id, ctx.db)
    return ReadStateRead(
        channel_id=channel.id,
        last_read_at=as_utc(receipt.last_read_at),
        last_message_id=receipt.last_message_id,
    )
