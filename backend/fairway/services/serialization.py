"""Turn message rows into API schemas with their related rows joined in.

Related rows are fetched with one ``select()`` per relation for the whole
batch rather than through lazy relationship loads.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from fairway.core.clock import as_utc
from fairway.models import (
    DirectMessage,
    DirectMessageReaction,
    Message,
    MessageAttachment,
    MessageReaction,
    User,
)
from fairway.schemas.messages import (
    DirectMessageRead,
    MessageAttachmentRead,
    MessageReactionSummary,
    MessageRead,
    ReplyPreview,
)
from fairway.schemas.users import PublicUser


def serialize_user(user: User | None) -> PublicUser | None:
    if user is None:
        return None
    return PublicUser(
        id=user.id,
        email=user.email,
        display_name=user.display_name,
        avatar_url=user.avatar_url,
        status=user.status,
    )


def summarize_reactions(
    reactions: Iterable[MessageReaction | DirectMessageReaction],
    current_user_id: int | None,
) -> list[MessageReactionSummary]:
    grouped: dict[str, list[int]] = defaultdict(list)
    for reaction in reactions:
        grouped[reaction.emoji].append(reaction.user_id)

    return [
        MessageReactionSummary(
            emoji=emoji,
            count=len(user_ids),
            reacted=current_user_id in user_ids if current_user_id is not None else False,
            user_ids=sorted(user_ids),
        )
        for emoji, user_ids in sorted(grouped.items())
    ]


def load_users(user_ids: Iterable[int], db: Session) -> dict[int, User]:
    ids = {user_id for user_id in user_ids if user_id is not None}
    if not ids:
        return {}
    rows = db.execute(select(User).where(User.id.in_(ids))).scalars()
    return {user.id: user for user in rows}


@dataclass(slots=True)
class _Related:
    users: dict[int, User]
    reactions: dict[int, list[Any]]
    attachments: dict[int, list[MessageAttachment]]
    replies: dict[int, Any]


def _load_related(
    messages: Sequence[Message] | Sequence[DirectMessage],
    db: Session,
    *,
    message_model: type[Message] | type[DirectMessage],
    reaction_model: type[MessageReaction] | type[DirectMessageReaction],
    attachment_owner: str,
) -> _Related:
    message_ids = [message.id for message in messages]
    reply_ids = {message.reply_to_id for message in messages if message.reply_to_id is not None}

    replies: dict[int, Any] = {}
    if reply_ids:
        rows = db.execute(select(message_model).where(message_model.id.in_(reply_ids))).scalars()
        replies = {row.id: row for row in rows}

    reactions: dict[int, list[Any]] = defaultdict(list)
    attachments: dict[int, list[MessageAttachment]] = defaultdict(list)
    if message_ids:
        reaction_stmt = (
            select(reaction_model)
            .where(reaction_model.message_id.in_(message_ids))
            .order_by(reaction_model.id.asc())
        )
        for reaction in db.execute(reaction_stmt).scalars():
            reactions[reaction.message_id].append(reaction)

        attachment_stmt = (
            select(MessageAttachment)
            .where(getattr(MessageAttachment, attachment_owner).in_(message_ids))
            .order_by(MessageAttachment.id.asc())
        )
        for attachment in db.execute(attachment_stmt).scalars():
            attachments[getattr(attachment, attachment_owner)].append(attachment)

    sender_ids = {message.sender_id for message in messages}
    sender_ids.update(reply.sender_id for reply in replies.values())
    return _Related(
        users=load_users(sender_ids, db),
        reactions=reactions,
        attachments=attachments,
        replies=replies,
    )


def _serialize_attachments(rows: Iterable[MessageAttachment]) -> list[MessageAttachmentRead]:
    return [
        MessageAttachmentRead(
            id=row.id,
            filename=row.filename,
            url=row.url,
            mime_type=row.mime_type,
            size=row.size,
        )
        for row in rows
    ]


def _reply_preview(reply_to_id: int | None, related: _Related) -> ReplyPreview | None:
    if reply_to_id is None:
        return None
    target = related.replies.get(reply_to_id)
    if target is None:
        return None
    return ReplyPreview(
        id=target.id,
        content=target.content,
        sender=serialize_user(related.users.get(target.sender_id)),
    )


def serialize_messages(
    messages: Sequence[Message], current_user_id: int | None, db: Session
) -> list[MessageRead]:
    related = _load_related(
        messages,
        db,
        message_model=Message,
        reaction_model=MessageReaction,
        attachment_owner="message_id",
    )
    return [
        MessageRead(
            id=message.id,
            channel_id=message.channel_id,
            sender_id=message.sender_id,
            sender=serialize_user(related.users.get(message.sender_id)),
            content=message.content,
            reply_to_id=message.reply_to_id,
            reply_to=_reply_preview(message.reply_to_id, related),
            is_edited=message.is_edited,
            is_pinned=message.is_pinned,
            pinned_at=as_utc(message.pinned_at) if message.pinned_at else None,
            pinned_by_id=message.pinned_by_id,
            created_at=as_utc(message.created_at),
            updated_at=as_utc(message.updated_at),
            attachments=_serialize_attachments(related.attachments.get(message.id, [])),
            reactions=summarize_reactions(related.reactions.get(message.id, []), current_user_id),
        )
        for message in messages
    ]


def serialize_message(message: Message, current_user_id: int | None, db: Session) -> MessageRead:
    return serialize_messages([message], current_user_id, db)[0]


def serialize_direct_messages(
    messages: Sequence[DirectMessage], current_user_id: int | None, db: Session
) -> list[DirectMessageRead]:
    related = _load_related(
        messages,
        db,
        message_model=DirectMessage,
        reaction_model=DirectMessageReaction,
        attachment_owner="direct_message_id",
    )
    return [
        DirectMessageRead(
            id=message.id,
            sender_id=message.sender_id,
            recipient_id=message.recipient_id,
            sender=serialize_user(related.users.get(message.sender_id)),
            content=message.content,
            reply_to_id=message.reply_to_id,
            reply_to=_reply_preview(message.reply_to_id, related),
            is_edited=message.is_edited,
            is_read=message.is_read,
            created_at=as_utc(message.created_at),
            updated_at=as_utc(message.updated_at),
            attachments=_serialize_attachments(related.attachments.get(message.id, [])),
            reactions=summarize_reactions(related.reactions.get(message.id, []), current_user_id),
        )
        for message in messages
    ]


def serialize_direct_message(
    message: DirectMessage, current_user_id: int | None, db: Session
) -> DirectMessageRead:
    return serialize_direct_messages([message], current_user_id, db)[0]
