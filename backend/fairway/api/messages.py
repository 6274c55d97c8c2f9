"""Endpoints acting on a single channel message."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from fairway.api.deps import RequestContext, get_request_context, require_channel_member
from fairway.schemas import MessageRead, MessageUpdate, ReactionRequest, ReactionsRead
from fairway.services import get_message_feed
from fairway.services import messages as message_service
from fairway.services.membership import channel_member_ids
from fairway.services.reactions import toggle_message_reaction
from fairway.services.serialization import serialize_message, summarize_reactions

router = APIRouter(prefix="/messages", tags=["messages"])


@router.patch("/{message_id}", response_model=MessageRead)
def edit_message(
    message_id: int,
    payload: MessageUpdate,
    ctx: RequestContext = Depends(get_request_context),
) -> MessageRead:
    message = message_service.get_message_or_404(message_id, ctx.db)
    require_channel_member(message.channel_id, ctx)
    message = message_service.edit_message(message, ctx.user, payload.content, ctx.db, ctx.settings)
    return serialize_message(message, ctx.user.id, ctx.db)


@router.delete("/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_message(message_id: int, ctx: RequestContext = Depends(get_request_context)) -> Response:
    """Delete a message; allowed for its sender and for admins."""

    message = message_service.get_message_or_404(message_id, ctx.db)
    channel_id = message.channel_id
    message_service.delete_channel_message(message, ctx.user, ctx.db)
    get_message_feed(ctx.settings).publish(
        channel_member_ids(channel_id, ctx.db),
        {"type": "message.deleted", "channel_id": channel_id, "message_id": message_id},
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{message_id}/reactions", response_model=ReactionsRead)
def toggle_reaction(
    message_id: int,
    payload: ReactionRequest,
    ctx: RequestContext = Depends(get_request_context),
) -> ReactionsRead:
    """Add the reaction if absent, remove it if present.

    Sending the same request twice restores the original state.
    """

    message = message_service.get_message_or_404(message_id, ctx.db)
    require_channel_member(message.channel_id, ctx)
    added, reactions = toggle_message_reaction(message.id, ctx.user.id, payload.emoji, ctx.db)
    return ReactionsRead(
        message_id=message_id,
        added=added,
        reactions=summarize_reactions(reactions, ctx.user.id),
    )


@router.post("/{message_id}/pin", response_model=MessageRead)
def pin_message(message_id: int, ctx: RequestContext = Depends(get_request_context)) -> MessageRead:
    message = message_service.get_message_or_404(message_id, ctx.db)
    require_channel_member(message.channel_id, ctx)
    message = message_service.set_pinned(message, ctx.user, True, ctx.db)
    return serialize_message(message, ctx.user.id, ctx.db)


@router.delete("/{message_id}/pin", response_model=MessageRead)
def unpin_message(message_id: int, ctx: RequestContext = Depends(get_request_context)) -> MessageRead:
    message = message_service.get_message_or_404(message_id, ctx.db)
    require_channel_member(message.channel_id, ctx)
    message = message_service.set_pinned(message, ctx.user, False, ctx.db)
    return serialize_message(message, ctx.user.id, ctx.db)
