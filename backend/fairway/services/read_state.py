"""Per-user read receipts and unread counters."""

from __future__ import annotations

import logging

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fairway.core.clock import utcnow
from fairway.models import ChannelMember, DirectMessage, Message, ReadReceipt

logger = logging.getLogger(__name__)


def _find_receipt(channel_id: int, user_id: int, db: Session) -> ReadReceipt | None:
    stmt = select(ReadReceipt).where(
        ReadReceipt.channel_id == channel_id,
        ReadReceipt.user_id == user_id,
    )
    return db.execute(stmt).scalar_one_or_none()


def mark_channel_read(channel_id: int, user_id: int, db: Session) -> ReadReceipt:
    """Move the caller's high-water mark to now and the latest message."""

    latest_id = db.execute(
        select(Message.id)
        .where(Message.channel_id == channel_id)
        .order_by(Message.created_at.desc(), Message.id.desc())
        .limit(1)
    ).scalar_one_or_none()

    receipt = _find_receipt(channel_id, user_id, db)
    if receipt is None:
        receipt = ReadReceipt(
            channel_id=channel_id, user_id=user_id, last_read_at=utcnow(), last_message_id=latest_id
        )
        db.add(receipt)
        try:
            db.commit()
        except IntegrityError:
            # A parallel mark-read created the receipt; move that one forward.
            db.rollback()
            logger.debug("Read receipt for user %s in channel %s created concurrently", user_id, channel_id)
            receipt = _find_receipt(channel_id, user_id, db)
            if receipt is None:
                raise
        else:
            db.refresh(receipt)
            return receipt

    receipt.last_read_at = utcnow()
    receipt.last_message_id = latest_id
    db.commit()
    db.refresh(receipt)
    return receipt


def _unread_filter(user_id: int):
    return and_(
        Message.sender_id != user_id,
        or_(ReadReceipt.last_read_at.is_(None), Message.created_at > ReadReceipt.last_read_at),
    )


def unread_counts(user_id: int, db: Session) -> dict[int, int]:
    """Unread message count for every channel the user belongs to.

    Computed with one grouped query; channels with nothing unread map to 0.
    """

    stmt = (
        select(ChannelMember.channel_id, func.count(Message.id))
        .select_from(ChannelMember)
        .outerjoin(
            ReadReceipt,
            and_(
                ReadReceipt.channel_id == ChannelMember.channel_id,
                ReadReceipt.user_id == ChannelMember.user_id,
            ),
        )
        .outerjoin(
            Message,
            and_(Message.channel_id == ChannelMember.channel_id, _unread_filter(user_id)),
        )
        .where(ChannelMember.user_id == user_id)
        .group_by(ChannelMember.channel_id)
    )
    return {channel_id: count for channel_id, count in db.execute(stmt).all()}


def unread_count(channel_id: int, user_id: int, db: Session) -> int:
    stmt = (
        select(func.count(Message.id))
        .select_from(Message)
        .outerjoin(
            ReadReceipt,
            and_(ReadReceipt.channel_id == Message.channel_id, ReadReceipt.user_id == user_id),
        )
        .where(Message.channel_id == channel_id, _unread_filter(user_id))
    )
    return int(db.execute(stmt).scalar_one())


def unread_direct_counts(user_id: int, db: Session) -> dict[int, int]:
    """Unread direct messages addressed to the user, keyed by sender."""

    stmt = (
        select(DirectMessage.sender_id, func.count(DirectMessage.id))
        .where(
            DirectMessage.recipient_id == user_id,
            DirectMessage.sender_id != user_id,
            DirectMessage.is_read.is_(False),
        )
        .group_by(DirectMessage.sender_id)
    )
    return {sender_id: count for sender_id, count in db.execute(stmt).all()}


def mark_direct_read(user_id: int, peer_id: int, db: Session) -> int:
    """Flag every message from ``peer_id`` to the user as read; return how many changed."""

    result = db.execute(
        update(DirectMessage)
        .where(
            DirectMessage.sender_id == peer_id,
            DirectMessage.recipient_id == user_id,
            DirectMessage.is_read.is_(False),
        )
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    logger.debug("User %s marked %s messages from %s as read", user_id, result.rowcount, peer_id)
    return result.rowcount or 0
