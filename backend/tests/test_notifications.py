"""Browser push: subscriptions, fan-out and pruning of expired endpoints."""

from __future__ import annotations

import json
from contextlib import contextmanager
from types import SimpleNamespace
from typing import Any

import pytest
from pywebpush import WebPushException
from sqlalchemy import Integer, select
from sqlalchemy.dialects import mysql
from sqlalchemy.schema import CreateTable

from fairway.config import Settings
from fairway.core.security import get_password_hash
from fairway.models import DirectMessage, PushSubscription, User
from fairway.monitoring.metrics import push_deliveries_total
from fairway.services import notifications


class RecordingWebPush:
    """Stand-in for ``pywebpush.webpush`` that records calls and can fail per endpoint."""

    def __init__(self, failures: dict[str, int] | None = None) -> None:
        self.calls: list[dict[str, Any]] = []
        self.failures = failures or {}

    def __call__(self, **kwargs: Any) -> None:
        self.calls.append(kwargs)
        endpoint = kwargs["subscription_info"]["endpoint"]
        if endpoint in self.failures:
            response = SimpleNamespace(status_code=self.failures[endpoint])
            raise WebPushException("push service error", response=response)


@pytest.fixture()
def push_settings(settings: Settings, monkeypatch) -> Settings:
    monkeypatch.setattr(settings, "web_push_vapid_public_key", "public-key")
    monkeypatch.setattr(settings, "web_push_vapid_private_key", "private-key")
    monkeypatch.setattr(settings, "web_push_contact", "mailto:ops@example.com")
    return settings


@pytest.fixture()
def fake_webpush(monkeypatch) -> RecordingWebPush:
    recorder = RecordingWebPush()
    monkeypatch.setattr(notifications, "webpush", recorder)
    return recorder


@pytest.fixture()
def users(db_session) -> tuple[User, User]:
    alice = User(email="alice@example.com", hashed_password=get_password_hash("secret-pass"), display_name="Alice")
    bob = User(email="bob@example.com", hashed_password=get_password_hash("secret-pass"))
    db_session.add_all([alice, bob])
    db_session.commit()
    return alice, bob


def test_contact_is_normalised_to_mailto():
    assert Settings(web_push_contact="ops@example.com").web_push_contact == "mailto:ops@example.com"
    assert Settings(web_push_contact="https://example.com/contact").web_push_contact == "https://example.com/contact"
    assert Settings(web_push_contact="").web_push_contact is None


def test_build_payload_defaults(settings):
    payload = notifications.build_payload("Title", "Body", settings)

    assert payload == {"title": "Title", "body": "Body", "url": "/", "tag": settings.web_push_default_tag}


def test_send_is_skipped_when_push_is_not_configured(db_session, settings, fake_webpush, users):
    alice, _ = users
    notifications.upsert_subscription(alice.id, "https://push.example/a", "key", "auth", db_session)
    disabled_before = push_deliveries_total.value(outcome="disabled")

    assert notifications.send_to_users([alice.id], {"title": "x"}, db_session, settings) is False

    assert fake_webpush.calls == []
    assert push_deliveries_total.value(outcome="disabled") == disabled_before + 1


def test_send_reaches_every_endpoint(db_session, push_settings, fake_webpush, users):
    alice, bob = users
    notifications.upsert_subscription(alice.id, "https://push.example/phone", "k1", "a1", db_session)
    notifications.upsert_subscription(alice.id, "https://push.example/laptop", "k2", "a2", db_session)
    notifications.upsert_subscription(bob.id, "https://push.example/bob", "k3", "a3", db_session)
    payload = notifications.build_payload("Hello", "World", push_settings, tag="greeting")

    assert notifications.send_to_users([alice.id, alice.id], payload, db_session, push_settings) is True

    endpoints = sorted(call["subscription_info"]["endpoint"] for call in fake_webpush.calls)
    assert endpoints == ["https://push.example/laptop", "https://push.example/phone"]
    first = fake_webpush.calls[0]
    assert json.loads(first["data"])["tag"] == "greeting"
    assert first["vapid_private_key"] == "private-key"
    assert first["vapid_claims"] == {"sub": "mailto:ops@example.com"}


def test_gone_endpoints_are_pruned(db_session, push_settings, monkeypatch, users):
    alice, _ = users
    recorder = RecordingWebPush(
        failures={"https://push.example/gone": 410, "https://push.example/flaky": 503}
    )
    monkeypatch.setattr(notifications, "webpush", recorder)
    for endpoint in ("https://push.example/gone", "https://push.example/flaky", "https://push.example/ok"):
        notifications.upsert_subscription(alice.id, endpoint, "key", "auth", db_session)

    assert notifications.send_to_users([alice.id], {"title": "t"}, db_session, push_settings) is True

    assert len(recorder.calls) == 3
    remaining = {subscription.endpoint for subscription in notifications.list_subscriptions(alice.id, db_session)}
    assert remaining == {"https://push.example/flaky", "https://push.example/ok"}


def test_upsert_refreshes_keys_instead_of_duplicating(db_session, users):
    alice, _ = users
    first = notifications.upsert_subscription(alice.id, "https://push.example/a", "old", "old", db_session)
    second = notifications.upsert_subscription(alice.id, "https://push.example/a", "new", "new", db_session)

    assert first.id == second.id
    stored = db_session.execute(select(PushSubscription)).scalars().all()
    assert [(item.p256dh, item.auth) for item in stored] == [("new", "new")]
    assert notifications.remove_subscription(alice.id, "https://push.example/a", db_session) == 1
    assert notifications.remove_subscription(alice.id, "https://push.example/a", db_session) == 0


def test_direct_message_notification(db_session, session_factory, push_settings, fake_webpush, monkeypatch, users):
    alice, bob = users
    notifications.upsert_subscription(bob.id, "https://push.example/bob", "key", "auth", db_session)
    message = DirectMessage(sender_id=alice.id, recipient_id=bob.id, content="x" * 200)
    db_session.add(message)
    db_session.commit()

    @contextmanager
    def test_db_session():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    monkeypatch.setattr(notifications, "get_db_session", test_db_session)

    assert notifications.notify_direct_message(message.id, push_settings) is True

    (call,) = fake_webpush.calls
    data = json.loads(call["data"])
    assert data["title"] == "New message from Alice"
    assert data["url"] == f"/dm/{alice.id}"
    assert len(data["body"]) == 120
    assert data["body"].endswith("…")


def test_direct_message_notification_disabled(settings, fake_webpush):
    assert notifications.notify_direct_message(1, settings) is False
    assert fake_webpush.calls == []


def test_subscription_endpoints(client, register):
    _, headers = register("alice@example.com")
    subscription = {
        "endpoint": "https://push.example/alice",
        "keys": {"p256dh": "client-key", "auth": "client-auth"},
    }

    created = client.post("/api/push/subscriptions", json=subscription, headers=headers)
    assert created.status_code == 201
    assert created.json()["endpoint"] == "https://push.example/alice"

    status = client.get("/api/push/subscriptions", headers=headers).json()
    assert status["enabled"] is False
    assert status["public_key"] is None
    assert status["subscription_count"] == 1

    removed = client.request(
        "DELETE", "/api/push/subscriptions", json={"endpoint": "https://push.example/alice"}, headers=headers
    )
    assert removed.status_code == 204
    assert client.get("/api/push/subscriptions", headers=headers).json()["subscription_count"] == 0


def test_manual_send(client, register, push_settings, fake_webpush):
    _, alice_headers = register("alice@example.com")
    bob_user, bob_headers = register("bob@example.com")
    client.post(
        "/api/push/subscriptions",
        json={"endpoint": "https://push.example/bob", "keys": {"p256dh": "k", "auth": "a"}},
        headers=bob_headers,
    )

    unknown = client.post(
        "/api/push/send", json={"user_id": 9999, "title": "Hi", "body": "there"}, headers=alice_headers
    )
    assert unknown.status_code == 404

    sent = client.post(
        "/api/push/send",
        json={"user_id": bob_user["id"], "title": "Hi", "body": "there"},
        headers=alice_headers,
    )
    assert sent.json() == {"success": True}
    assert len(fake_webpush.calls) == 1


def test_manual_send_fails_when_push_disabled(client, register):
    _, alice_headers = register("alice@example.com")
    bob_user, _ = register("bob@example.com")

    response = client.post(
        "/api/push/send",
        json={"user_id": bob_user["id"], "title": "Hi", "body": "there"},
        headers=alice_headers,
    )

    assert response.status_code == 500
    assert response.json() == {"detail": "Failed to send notification", "error": "internal"}


def test_test_notification_needs_a_subscription(client, admin):
    _, headers = admin

    response = client.post("/api/push/test", headers=headers)

    assert response.status_code == 400


def test_subscription_unique_key_fits_innodb_limit():
    table = PushSubscription.__table__
    ddl = str(CreateTable(table).compile(dialect=mysql.dialect()))

    assert "endpoint TEXT NOT NULL" in ddl
    assert "endpoint_hash CHAR(64) NOT NULL" in ddl
    assert "UNIQUE (user_id, endpoint_hash)" in ddl

    unique = next(item for item in table.constraints if item.name == "uq_push_subscription_endpoint")
    # utf8mb4 reserves four bytes per character.
    key_bytes = sum(4 if isinstance(column.type, Integer) else column.type.length * 4 for column in unique.columns)
    assert key_bytes <= 3072


def test_long_endpoints_are_matched_by_hash(db_session, users):
    alice, bob = users
    endpoint = "https://push.example/" + "x" * 1500

    stored = notifications.upsert_subscription(alice.id, endpoint, "key", "auth", db_session)
    notifications.upsert_subscription(bob.id, endpoint, "key", "auth", db_session)

    assert stored.endpoint == endpoint
    assert stored.endpoint_hash == notifications.endpoint_hash(endpoint)
    assert len(stored.endpoint_hash) == 64
    assert notifications.remove_subscription(alice.id, endpoint, db_session) == 1
    assert [item.user_id for item in db_session.execute(select(PushSubscription)).scalars()] == [bob.id]
