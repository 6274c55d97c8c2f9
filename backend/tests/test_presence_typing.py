"""Heartbeat presence, typing indicators and channel read state."""

from __future__ import annotations

from datetime import timedelta

from sqlalchemy import func, select

from fairway.core.clock import utcnow
from fairway.models import TypingIndicator, User
from fairway.services.presence import heartbeat, online_user_ids
from fairway.services.read_state import unread_count


def test_heartbeat_marks_user_online(client, register):
    user, headers = register("alice@example.com")

    assert client.get("/api/presence/online", headers=headers).json()["user_ids"] == []

    beat = client.post("/api/presence/heartbeat", headers=headers)
    assert beat.status_code == 200
    assert beat.json()["last_seen_at"] is not None

    online = client.get("/api/presence/online", headers=headers).json()
    assert online == {"user_ids": [user["id"]], "threshold_seconds": 60}


def test_heartbeat_can_set_and_clear_status(client, register):
    _, headers = register("alice@example.com")

    with_status = client.post("/api/presence/heartbeat", json={"status": "In a meeting"}, headers=headers)
    assert with_status.json()["status"] == "In a meeting"

    unchanged = client.post("/api/presence/heartbeat", headers=headers)
    assert unchanged.json()["status"] == "In a meeting"

    cleared = client.post("/api/presence/heartbeat", json={"status": ""}, headers=headers)
    assert cleared.json()["status"] is None


def test_stale_heartbeat_is_offline(db_session, settings):
    fresh = User(email="fresh@example.com", hashed_password="x")
    stale = User(email="stale@example.com", hashed_password="x")
    inactive = User(email="gone@example.com", hashed_password="x", is_active=False)
    db_session.add_all([fresh, stale, inactive])
    db_session.commit()

    heartbeat(fresh, db_session)
    heartbeat(inactive, db_session)
    stale.last_seen_at = utcnow() - timedelta(seconds=settings.online_threshold_seconds + 30)
    db_session.commit()

    assert online_user_ids(db_session, settings) == [fresh.id]


def test_typing_is_visible_to_others_only(client, admin, register, general_id):
    admin_user, admin_headers = admin
    _, bob_headers = register("bob@example.com", "Bob")

    response = client.post(f"/api/channels/{general_id}/typing", headers=admin_headers)
    assert response.status_code == 204

    seen_by_bob = client.get(f"/api/channels/{general_id}/typing", headers=bob_headers).json()
    assert seen_by_bob["channel_id"] == general_id
    assert [user["id"] for user in seen_by_bob["users"]] == [admin_user["id"]]

    seen_by_admin = client.get(f"/api/channels/{general_id}/typing", headers=admin_headers).json()
    assert seen_by_admin["users"] == []


def test_old_typing_markers_are_hidden_and_purged(client, admin, register, general_id, session_factory, settings):
    admin_user, admin_headers = admin
    bob_user, _ = register("bob@example.com")

    with session_factory() as session:
        session.add(
            TypingIndicator(
                channel_id=general_id,
                user_id=bob_user["id"],
                updated_at=utcnow() - timedelta(seconds=settings.typing_expiry_seconds + 5),
            )
        )
        session.commit()

    response = client.get(f"/api/channels/{general_id}/typing", headers=admin_headers)
    assert response.json()["users"] == []

    with session_factory() as session:
        remaining = session.execute(select(func.count(TypingIndicator.id))).scalar_one()
    assert remaining == 0


def test_typing_requires_membership(client, admin, register, general_id):
    _, admin_headers = admin
    bob_user, bob_headers = register("bob@example.com")
    client.delete(f"/api/admin/channels/{general_id}/members/{bob_user['id']}", headers=admin_headers)

    assert client.post(f"/api/channels/{general_id}/typing", headers=bob_headers).status_code == 403


def test_read_state_tracks_last_message(client, admin, register, general_id, session_factory):
    admin_user, admin_headers = admin
    _, bob_headers = register("bob@example.com")
    for content in ("one", "two"):
        client.post(f"/api/channels/{general_id}/messages", json={"content": content}, headers=bob_headers)

    assert client.get("/api/unread", headers=admin_headers).json()["channels"] == {str(general_id): 2}
    # Own messages never count as unread.
    assert client.get("/api/unread", headers=bob_headers).json()["channels"] == {str(general_id): 0}

    marked = client.post(f"/api/channels/{general_id}/read", headers=admin_headers).json()
    latest = client.get(f"/api/channels/{general_id}/messages", headers=admin_headers).json()["items"][-1]
    assert marked["channel_id"] == general_id
    assert marked["last_message_id"] == latest["id"]

    client.post(f"/api/channels/{general_id}/messages", json={"content": "three"}, headers=bob_headers)

    with session_factory() as session:
        assert unread_count(general_id, admin_user["id"], session) == 1
