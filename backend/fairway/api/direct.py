"""Direct message endpoints between two users."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Response, status

from fairway.api.deps import RequestContext, get_request_context
from fairway.models import DirectMessage, User
from fairway.schemas import (
    DirectMessagePage,
    DirectMessageRead,
    MessageCreate,
    MessageUpdate,
    ReactionRequest,
    ReactionsRead,
)
from fairway.services import get_message_feed
from fairway.services import messages as message_service
from fairway.services.membership import get_user_or_404
from fairway.services.notifications import notify_direct_message
from fairway.services.reactions import toggle_direct_reaction
from fairway.services.read_state import mark_direct_read
from fairway.services.serialization import (
    serialize_direct_message,
    serialize_direct_messages,
    summarize_reactions,
)
from fairway.services.sync import fetch_direct_messages

router = APIRouter(prefix="/direct-messages", tags=["direct-messages"])


def _ensure_participant(message: DirectMessage, user: User) -> None:
    if user.id not in (message.sender_id, message.recipient_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not a participant of this conversation",
        )


@router.get("/{peer_id}", response_model=DirectMessagePage)
def list_direct_messages(
    peer_id: int,
    after: datetime | None = Query(default=None),
    cursor: str | None = Query(default=None, max_length=256),
    ctx: RequestContext = Depends(get_request_context),
) -> DirectMessagePage:
    """Conversation between the caller and ``peer_id``; same paging as channel history."""

    peer = get_user_or_404(peer_id, ctx.db)
    result = fetch_direct_messages(ctx.user.id, peer.id, ctx.db, ctx.settings, after=after, cursor=cursor)
    return DirectMessagePage(
        items=serialize_direct_messages(result.messages, ctx.user.id, ctx.db),
        next_cursor=result.next_cursor,
    )


@router.post("/{peer_id}", response_model=DirectMessageRead, status_code=status.HTTP_201_CREATED)
def send_direct_message(
    peer_id: int,
    payload: MessageCreate,
    background_tasks: BackgroundTasks,
    ctx: RequestContext = Depends(get_request_context),
) -> DirectMessageRead:
    recipient = get_user_or_404(peer_id, ctx.db)
    if not recipient.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    message = message_service.create_direct_message(
        ctx.user,
        recipient,
        payload.content,
        ctx.db,
        ctx.settings,
        reply_to_id=payload.reply_to_id,
    )
    serialized = serialize_direct_message(message, ctx.user.id, ctx.db)
    get_message_feed(ctx.settings).publish(
        {ctx.user.id, recipient.id},
        {"type": "direct_message.created", "peer_ids": [ctx.user.id, recipient.id], "message_id": message.id},
    )
    if recipient.id != ctx.user.id:
        background_tasks.add_task(notify_direct_message, message.id, ctx.settings)
    return serialized


@router.patch("/messages/{message_id}", response_model=DirectMessageRead)
def edit_direct_message(
    message_id: int,
    payload: MessageUpdate,
    ctx: RequestContext = Depends(get_request_context),
) -> DirectMessageRead:
    message = message_service.get_direct_message_or_404(message_id, ctx.db)
    _ensure_participant(message, ctx.user)
    message = message_service.edit_message(message, ctx.user, payload.content, ctx.db, ctx.settings)
    return serialize_direct_message(message, ctx.user.id, ctx.db)


@router.delete("/messages/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_direct_message(
    message_id: int, ctx: RequestContext = Depends(get_request_context)
) -> Response:
    message = message_service.get_direct_message_or_404(message_id, ctx.db)
    _ensure_participant(message, ctx.user)
    message_service.delete_direct_message(message, ctx.user, ctx.db)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/messages/{message_id}/reactions", response_model=ReactionsRead)
def toggle_direct_message_reaction(
    message_id: int,
    payload: ReactionRequest,
    ctx: RequestContext = Depends(get_request_context),
) -> ReactionsRead:
    message = message_service.get_direct_message_or_404(message_id, ctx.db)
    _ensure_participant(message, ctx.user)
    added, reactions = toggle_direct_reaction(message.id, ctx.user.id, payload.emoji, ctx.db)
    return ReactionsRead(
        message_id=message_id,
        added=added,
        reactions=summarize_reactions(reactions, ctx.user.id),
    )


@router.post("/{peer_id}/read")
def mark_conversation_read(
    peer_id: int, ctx: RequestContext = Depends(get_request_context)
) -> dict[str, int]:
    """Flag everything ``peer_id`` sent to the caller as read."""

    peer = get_user_or_404(peer_id, ctx.db)
    updated = mark_direct_read(ctx.user.id, peer.id, ctx.db)
    return {"peer_id": peer.id, "updated": updated}
