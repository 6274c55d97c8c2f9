"""Creation and mutation of channel and direct messages."""

from __future__ import annotations

import logging

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from fairway.config import Settings
from fairway.core.clock import utcnow
from fairway.core.storage import StoredFile
from fairway.models import DirectMessage, Message, MessageAttachment, User
from fairway.monitoring.metrics import messages_created_total

logger = logging.getLogger(__name__)


def ensure_content_length(content: str, settings: Settings) -> str:
    if len(content) > settings.chat_message_max_length:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Message exceeds {settings.chat_message_max_length} characters",
        )
    return content


def _attachment_from(stored: StoredFile) -> MessageAttachment:
    return MessageAttachment(
        filename=stored.file_name,
        url=stored.data_url,
        mime_type=stored.mime_type,
        size=stored.file_size,
    )


def get_message_or_404(message_id: int, db: Session) -> Message:
    message = db.get(Message, message_id)
    if message is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Message not found")
    return message


def get_direct_message_or_404(message_id: int, db: Session) -> DirectMessage:
    message = db.get(DirectMessage, message_id)
    if message is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Message not found")
    return message


def _ensure_channel_reply_target(channel_id: int, reply_to_id: int | None, db: Session) -> None:
    if reply_to_id is None:
        return
    target = db.get(Message, reply_to_id)
    if target is None or target.channel_id != channel_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Reply target must be a message in the same channel",
        )


def _ensure_direct_reply_target(
    sender_id: int, recipient_id: int, reply_to_id: int | None, db: Session
) -> None:
    if reply_to_id is None:
        return
    target = db.get(DirectMessage, reply_to_id)
    if target is None or {target.sender_id, target.recipient_id} != {sender_id, recipient_id}:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Reply target must be a message in the same conversation",
        )


def create_channel_message(
    channel_id: int,
    sender: User,
    content: str,
    db: Session,
    settings: Settings,
    *,
    reply_to_id: int | None = None,
    attachment: StoredFile | None = None,
) -> Message:
    """Store a channel message (and optional attachment) in one transaction."""

    ensure_content_length(content, settings)
    _ensure_channel_reply_target(channel_id, reply_to_id, db)

    message = Message(
        channel_id=channel_id,
        sender_id=sender.id,
        content=content,
        reply_to_id=reply_to_id,
    )
    if attachment is not None:
        message.attachments.append(_attachment_from(attachment))
    db.add(message)
    db.commit()
    db.refresh(message)
    messages_created_total.inc(kind="channel")
    logger.info("User %s posted message %s in channel %s", sender.id, message.id, channel_id)
    return message


def create_direct_message(
    sender: User,
    recipient: User,
    content: str,
    db: Session,
    settings: Settings,
    *,
    reply_to_id: int | None = None,
    attachment: StoredFile | None = None,
) -> DirectMessage:
    ensure_content_length(content, settings)
    _ensure_direct_reply_target(sender.id, recipient.id, reply_to_id, db)

    message = DirectMessage(
        sender_id=sender.id,
        recipient_id=recipient.id,
        content=content,
        reply_to_id=reply_to_id,
    )
    if attachment is not None:
        message.attachments.append(_attachment_from(attachment))
    db.add(message)
    db.commit()
    db.refresh(message)
    messages_created_total.inc(kind="direct")
    logger.info("User %s sent direct message %s to %s", sender.id, message.id, recipient.id)
    return message


def edit_message(
    message: Message | DirectMessage, editor: User, content: str, db: Session, settings: Settings
) -> Message | DirectMessage:
    """Replace a message's content; only its sender may do this."""

    if message.sender_id != editor.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the sender can edit this message",
        )
    message.content = ensure_content_length(content, settings)
    message.is_edited = True
    message.updated_at = utcnow()
    db.add(message)
    db.commit()
    db.refresh(message)
    return message


def delete_channel_message(message: Message, actor: User, db: Session) -> None:
    if message.sender_id != actor.id and not actor.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the sender or an admin can delete this message",
        )
    message_id = message.id
    db.delete(message)
    db.commit()
    logger.info("User %s deleted message %s", actor.id, message_id)


def delete_direct_message(message: DirectMessage, actor: User, db: Session) -> None:
    if message.sender_id != actor.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the sender can delete this message",
        )
    db.delete(message)
    db.commit()


def set_pinned(message: Message, actor: User, pinned: bool, db: Session) -> Message:
    if pinned:
        message.is_pinned = True
        message.pinned_at = utcnow()
        message.pinned_by_id = actor.id
    else:
        message.is_pinned = False
        message.pinned_at = None
        message.pinned_by_id = None
    db.add(message)
    db.commit()
    db.refresh(message)
    return message


def list_pinned(channel_id: int, db: Session) -> list[Message]:
    stmt = (
        select(Message)
        .where(Message.channel_id == channel_id, Message.is_pinned.is_(True))
        .order_by(Message.pinned_at.desc(), Message.id.desc())
    )
    return list(db.execute(stmt).scalars())
