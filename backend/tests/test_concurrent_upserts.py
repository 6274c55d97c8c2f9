"""Upserts that lose the insert race to another request update the winner's row."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Iterator

import pytest
from sqlalchemy import create_engine, event, select
from sqlalchemy.orm import Session, sessionmaker

from fairway.core.clock import as_utc
from fairway.core.security import get_password_hash
from fairway.models import Base, Channel, PushSubscription, ReadReceipt, TypingIndicator, User
from fairway.services import notifications
from fairway.services.read_state import mark_channel_read
from fairway.services.typing_indicators import set_typing

LONG_AGO = datetime(2026, 1, 1, tzinfo=timezone.utc)


@pytest.fixture()
def shared_factory(tmp_path) -> Iterator[sessionmaker[Session]]:
    """File-backed SQLite so two sessions use separate connections."""

    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'chat.db'}", future=True)
    Base.metadata.create_all(engine)
    try:
        yield sessionmaker(bind=engine, future=True)
    finally:
        engine.dispose()


@pytest.fixture()
def seeded(shared_factory) -> tuple[int, int]:
    with shared_factory() as session:
        user = User(email="alice@example.com", hashed_password=get_password_hash("secret-pass"))
        channel = Channel(name="General")
        session.add_all([user, channel])
        session.commit()
        return user.id, channel.id


def insert_first(db: Session, factory: sessionmaker[Session], make_row: Callable[[], object]) -> None:
    """Commit ``make_row()`` from another session right before ``db`` flushes its insert."""

    @event.listens_for(db, "before_flush", once=True)
    def _competing_insert(session, flush_context, instances) -> None:
        with factory() as other:
            other.add(make_row())
            other.commit()


def test_set_typing_refreshes_concurrently_created_marker(shared_factory, seeded):
    user_id, channel_id = seeded
    with shared_factory() as db:
        insert_first(
            db,
            shared_factory,
            lambda: TypingIndicator(channel_id=channel_id, user_id=user_id, updated_at=LONG_AGO),
        )

        indicator = set_typing(channel_id, user_id, db)

        assert as_utc(indicator.updated_at) > LONG_AGO
        assert len(db.execute(select(TypingIndicator)).scalars().all()) == 1


def test_mark_read_moves_concurrently_created_receipt(shared_factory, seeded):
    user_id, channel_id = seeded
    with shared_factory() as db:
        insert_first(
            db,
            shared_factory,
            lambda: ReadReceipt(channel_id=channel_id, user_id=user_id, last_read_at=LONG_AGO),
        )

        receipt = mark_channel_read(channel_id, user_id, db)

        stored = db.execute(select(ReadReceipt)).scalars().all()
        assert [item.id for item in stored] == [receipt.id]
        assert as_utc(receipt.last_read_at) > LONG_AGO


def test_subscription_upsert_overwrites_concurrent_registration(shared_factory, seeded):
    user_id, _ = seeded
    endpoint = "https://push.example/laptop"
    with shared_factory() as db:
        insert_first(
            db,
            shared_factory,
            lambda: PushSubscription(
                user_id=user_id,
                endpoint=endpoint,
                endpoint_hash=notifications.endpoint_hash(endpoint),
                p256dh="theirs",
                auth="theirs",
            ),
        )

        subscription = notifications.upsert_subscription(user_id, endpoint, "mine", "mine", db)

        stored = db.execute(select(PushSubscription)).scalars().all()
        assert [item.id for item in stored] == [subscription.id]
        assert (subscription.p256dh, subscription.auth) == ("mine", "mine")
