"""Heartbeat-based online presence."""

from __future__ import annotations

from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from fairway.config import Settings
from fairway.core.clock import utcnow
from fairway.models import User

_UNSET = object()


def heartbeat(user: User, db: Session, *, status_text: str | None | object = _UNSET) -> User:
    """Record that ``user`` is alive; optionally replace their status text.

    An empty status string clears the status.
    """

    user.last_seen_at = utcnow()
    if status_text is not _UNSET:
        user.status = status_text or None
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def online_user_ids(db: Session, settings: Settings) -> list[int]:
    cutoff = utcnow() - timedelta(seconds=settings.online_threshold_seconds)
    stmt = (
        select(User.id)
        .where(User.is_active.is_(True), User.last_seen_at.is_not(None), User.last_seen_at > cutoff)
        .order_by(User.id.asc())
    )
    return list(db.execute(stmt).scalars())
