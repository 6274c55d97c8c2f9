"""Reaction toggling for channel and direct messages.

A toggle is not idempotent: repeating the same request flips the reaction
back. Clients retrying after a network error may undo their own reaction.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fairway.models import DirectMessageReaction, MessageReaction
from fairway.monitoring.metrics import reaction_toggles_total

logger = logging.getLogger(__name__)


def _toggle(
    model: type[MessageReaction] | type[DirectMessageReaction],
    message_id: int,
    user_id: int,
    emoji: str,
    db: Session,
    *,
    kind: str,
) -> tuple[bool, list]:
    stmt = select(model).where(
        model.message_id == message_id,
        model.user_id == user_id,
        model.emoji == emoji,
    )
    existing = db.execute(stmt).scalar_one_or_none()
    if existing is not None:
        db.delete(existing)
        db.commit()
        added = False
    else:
        db.add(model(message_id=message_id, user_id=user_id, emoji=emoji))
        try:
            db.commit()
        except IntegrityError:
            # A concurrent toggle inserted the same triple first.
            db.rollback()
            logger.debug("Reaction %s on %s %s already present", emoji, kind, message_id)
        added = True

    reaction_toggles_total.inc(kind=kind, action="added" if added else "removed")
    rows = db.execute(
        select(model).where(model.message_id == message_id).order_by(model.id.asc())
    ).scalars()
    return added, list(rows)


def toggle_message_reaction(
    message_id: int, user_id: int, emoji: str, db: Session
) -> tuple[bool, list[MessageReaction]]:
    """Add or remove ``emoji`` and return the message's full reaction set."""

    return _toggle(MessageReaction, message_id, user_id, emoji, db, kind="channel")


def toggle_direct_reaction(
    message_id: int, user_id: int, emoji: str, db: Session
) -> tuple[bool, list[DirectMessageReaction]]:
    return _toggle(DirectMessageReaction, message_id, user_id, emoji, db, kind="direct")
