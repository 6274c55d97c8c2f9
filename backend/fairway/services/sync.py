"""Message fetching for the polling synchronization protocol.

A fetch is one of three modes:

* ``latest``: the most recent ``chat_history_limit`` messages, oldest first.
* ``after``: messages with ``created_at`` strictly greater than a timestamp,
  capped at ``chat_poll_limit``. Messages sharing that exact timestamp are
  not returned; clients that need a gap-free feed should poll with
  ``cursor`` instead.
* ``cursor``: messages strictly after an opaque ``(created_at, id)`` marker,
  capped at ``chat_poll_limit``.
"""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

from fastapi import HTTPException, status
from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from fairway.config import Settings
from fairway.core.clock import as_utc
from fairway.models import DirectMessage, Message
from fairway.monitoring.metrics import message_polls_total

logger = logging.getLogger(__name__)

FetchMode = Literal["latest", "after", "cursor"]

_CURSOR_VERSION = "v1"


@dataclass(slots=True)
class FetchResult:
    messages: list[Any]
    next_cursor: str | None
    mode: FetchMode


def encode_cursor(created_at: datetime, message_id: int) -> str:
    payload = f"{_CURSOR_VERSION}|{as_utc(created_at).isoformat()}|{message_id}"
    return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii")


def decode_cursor(cursor: str) -> tuple[datetime, int]:
    try:
        raw = base64.urlsafe_b64decode(cursor.encode("ascii")).decode("utf-8")
        version, timestamp, message_id = raw.split("|", 2)
        if version != _CURSOR_VERSION:
            raise ValueError("Unsupported cursor version")
        return as_utc(datetime.fromisoformat(timestamp)), int(message_id)
    except (binascii.Error, UnicodeError, ValueError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid cursor") from exc


def _fetch(
    model: type[Message] | type[DirectMessage],
    scope: Any,
    db: Session,
    settings: Settings,
    *,
    kind: str,
    after: datetime | None,
    cursor: str | None,
) -> FetchResult:
    if after is not None and cursor is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Pass either 'after' or 'cursor', not both",
        )

    stmt = select(model).where(scope)
    mode: FetchMode = "latest"
    if cursor is not None:
        mode = "cursor"
        pivot_time, pivot_id = decode_cursor(cursor)
        stmt = stmt.where(
            or_(
                model.created_at > pivot_time,
                and_(model.created_at == pivot_time, model.id > pivot_id),
            )
        )
    elif after is not None:
        mode = "after"
        stmt = stmt.where(model.created_at > as_utc(after))

    if mode == "latest":
        stmt = stmt.order_by(model.created_at.desc(), model.id.desc()).limit(settings.chat_history_limit)
        rows = list(db.execute(stmt).scalars())
        rows.reverse()
    else:
        stmt = stmt.order_by(model.created_at.asc(), model.id.asc()).limit(settings.chat_poll_limit)
        rows = list(db.execute(stmt).scalars())

    if rows:
        next_cursor = encode_cursor(rows[-1].created_at, rows[-1].id)
    else:
        next_cursor = cursor

    message_polls_total.inc(kind=kind, mode=mode)
    logger.debug("Fetched %s %s messages (mode=%s)", len(rows), kind, mode)
    return FetchResult(messages=rows, next_cursor=next_cursor, mode=mode)


def fetch_channel_messages(
    channel_id: int,
    db: Session,
    settings: Settings,
    *,
    after: datetime | None = None,
    cursor: str | None = None,
) -> FetchResult:
    """Fetch channel messages; membership must be checked by the caller."""

    return _fetch(
        Message,
        Message.channel_id == channel_id,
        db,
        settings,
        kind="channel",
        after=after,
        cursor=cursor,
    )


def direct_pair_clause(user_id: int, peer_id: int) -> Any:
    return or_(
        and_(DirectMessage.sender_id == user_id, DirectMessage.recipient_id == peer_id),
        and_(DirectMessage.sender_id == peer_id, DirectMessage.recipient_id == user_id),
    )


def fetch_direct_messages(
    user_id: int,
    peer_id: int,
    db: Session,
    settings: Settings,
    *,
    after: datetime | None = None,
    cursor: str | None = None,
) -> FetchResult:
    """Fetch the conversation between ``user_id`` and ``peer_id``."""

    return _fetch(
        DirectMessage,
        direct_pair_clause(user_id, peer_id),
        db,
        settings,
        kind="direct",
        after=after,
        cursor=cursor,
    )
