"""Short-lived "user is typing" markers per channel."""

from __future__ import annotations

import logging
from datetime import timedelta

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from fairway.config import Settings
from fairway.core.clock import utcnow
from fairway.models import TypingIndicator, User

logger = logging.getLogger(__name__)


def _find_indicator(channel_id: int, user_id: int, db: Session) -> TypingIndicator | None:
    stmt = select(TypingIndicator).where(
        TypingIndicator.channel_id == channel_id,
        TypingIndicator.user_id == user_id,
    )
    return db.execute(stmt).scalar_one_or_none()


def set_typing(channel_id: int, user_id: int, db: Session) -> TypingIndicator:
    """Upsert the caller's marker with the current time."""

    indicator = _find_indicator(channel_id, user_id, db)
    if indicator is None:
        indicator = TypingIndicator(channel_id=channel_id, user_id=user_id, updated_at=utcnow())
        db.add(indicator)
        try:
            db.commit()
            return indicator
        except IntegrityError:
            # Another request created the marker first; refresh that one instead.
            db.rollback()
            indicator = _find_indicator(channel_id, user_id, db)
            if indicator is None:
                raise
    indicator.updated_at = utcnow()
    db.commit()
    return indicator


def _purge_stale(channel_id: int, db: Session, settings: Settings) -> None:
    cutoff = utcnow() - timedelta(seconds=settings.typing_expiry_seconds)
    try:
        db.execute(
            delete(TypingIndicator).where(
                TypingIndicator.channel_id == channel_id,
                TypingIndicator.updated_at < cutoff,
            )
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Failed to purge stale typing indicators for channel %s", channel_id, exc_info=True)


def list_typing(channel_id: int, exclude_user_id: int, db: Session, settings: Settings) -> list[User]:
    """Users with a fresh marker in the channel, excluding the caller."""

    cutoff = utcnow() - timedelta(seconds=settings.typing_visible_seconds)
    stmt = (
        select(User)
        .join(TypingIndicator, TypingIndicator.user_id == User.id)
        .where(
            TypingIndicator.channel_id == channel_id,
            TypingIndicator.user_id != exclude_user_id,
            TypingIndicator.updated_at > cutoff,
        )
        .order_by(TypingIndicator.updated_at.desc())
    )
    users = list(db.execute(stmt).scalars())
    _purge_stale(channel_id, db, settings)
    return users
