"""Integration tests exercising API endpoints via FastAPI's TestClient."""

from __future__ import annotations

from fastapi.testclient import TestClient

from fairway.models import Message


def test_register_and_login_flow(client: TestClient):
    """End-to-end flow for registering and logging in a user."""

    payload = {"email": "Alice@Example.com", "password": "wonderland", "full_name": "Alice"}
    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == 201, response.text
    data = response.json()
    assert data["email"] == "alice@example.com"
    assert data["display_name"] == "Alice"
    assert data["is_admin"] is False
    assert data["is_active"] is True
    assert "hashed_password" not in data

    login_response = client.post(
        "/api/auth/login", json={"email": "ALICE@example.com", "password": "wonderland"}
    )
    assert login_response.status_code == 200
    token_data = login_response.json()
    assert token_data["token_type"] == "bearer"
    assert isinstance(token_data["access_token"], str)
    assert token_data["expires_in"] == 24 * 60 * 60

    me = client.get(
        "/api/users/me", headers={"Authorization": f"Bearer {token_data['access_token']}"}
    )
    assert me.status_code == 200
    assert me.json()["id"] == data["id"]


def test_duplicate_registration_is_rejected(client: TestClient, register):
    register("bob@example.com")

    response = client.post(
        "/api/auth/register", json={"email": "BOB@example.com", "password": "another-pass"}
    )

    assert response.status_code == 400
    assert response.json() == {"detail": "Email is already registered", "error": "bad_request"}


def test_wrong_password_is_unauthorized(client: TestClient, register):
    register("carol@example.com")

    response = client.post(
        "/api/auth/login", json={"email": "carol@example.com", "password": "not-her-password"}
    )

    assert response.status_code == 401
    assert response.json()["error"] == "unauthorized"


def test_requests_without_token_are_unauthorized(client: TestClient):
    response = client.get("/api/channels")

    assert response.status_code == 401
    assert response.json()["error"] == "unauthorized"


def test_validation_errors_share_the_error_shape(client: TestClient):
    response = client.post(
        "/api/auth/register", json={"email": "not-an-email", "password": "short"}
    )

    assert response.status_code == 422
    body = response.json()
    assert body["detail"] == "Validation failed"
    assert body["error"] == "validation"
    failed_fields = {tuple(error["loc"])[-1] for error in body["errors"]}
    assert {"email", "password"} <= failed_fields


def test_unknown_route_is_classified_not_found(client: TestClient):
    response = client.get("/api/does-not-exist")

    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


def test_team_conversation_in_general_channel(client: TestClient, admin, register, general_id):
    """A new teammate lands in General, posts, and the admin sees it as unread."""

    _, admin_headers = admin
    bob, bob_headers = register("bob@example.com", "Bob")

    channels = client.get("/api/channels", headers=bob_headers)
    assert channels.status_code == 200
    assert [channel["name"] for channel in channels.json()] == ["General"]

    response = client.post(
        f"/api/channels/{general_id}/messages",
        json={"content": "  Hello team!  "},
        headers=bob_headers,
    )
    assert response.status_code == 201, response.text
    message = response.json()
    assert message["content"] == "Hello team!"
    assert message["sender"]["id"] == bob["id"]
    assert message["sender"]["display_name"] == "Bob"
    assert message["is_edited"] is False

    history = client.get(f"/api/channels/{general_id}/messages", headers=admin_headers)
    assert history.status_code == 200
    page = history.json()
    assert [item["id"] for item in page["items"]] == [message["id"]]
    assert page["next_cursor"]

    unread = client.get("/api/unread", headers=admin_headers).json()
    assert unread["channels"] == {str(general_id): 1}
    assert unread["total"] == 1

    assert client.post(f"/api/channels/{general_id}/read", headers=admin_headers).status_code == 200
    unread = client.get("/api/unread", headers=admin_headers).json()
    assert unread["channels"] == {str(general_id): 0}
    assert unread["total"] == 0


def test_seeded_messages_are_listed_oldest_first(client: TestClient, admin, general_id, session_factory):
    admin_user, admin_headers = admin

    # Seed messages directly through the session factory
    session = session_factory()
    try:
        for content in ("first", "second", "third"):
            session.add(Message(channel_id=general_id, sender_id=admin_user["id"], content=content))
            session.commit()
    finally:
        session.close()

    response = client.get(f"/api/channels/{general_id}/messages", headers=admin_headers)

    assert response.status_code == 200
    assert [item["content"] for item in response.json()["items"]] == ["first", "second", "third"]


def test_non_member_cannot_read_or_post(client: TestClient, admin, register, general_id):
    _, admin_headers = admin
    bob, bob_headers = register("bob@example.com")

    removed = client.delete(
        f"/api/admin/channels/{general_id}/members/{bob['id']}", headers=admin_headers
    )
    assert removed.status_code == 204

    read = client.get(f"/api/channels/{general_id}/messages", headers=bob_headers)
    assert read.status_code == 403
    assert read.json() == {"detail": "Not a channel member", "error": "forbidden"}

    post = client.post(
        f"/api/channels/{general_id}/messages", json={"content": "let me in"}, headers=bob_headers
    )
    assert post.status_code == 403

    assert client.get("/api/channels", headers=bob_headers).json() == []


def test_missing_channel_returns_not_found(client: TestClient, admin):
    _, admin_headers = admin

    response = client.get("/api/channels/9999/messages", headers=admin_headers)

    assert response.status_code == 404
    assert response.json() == {"detail": "Channel not found", "error": "not_found"}


def test_profile_update(client: TestClient, register):
    _, headers = register("dora@example.com", "Dora")

    response = client.patch(
        "/api/users/me",
        json={"display_name": "Dora the Explorer", "status": "Out hiking"},
        headers=headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["display_name"] == "Dora the Explorer"
    assert body["status"] == "Out hiking"

    cleared = client.patch("/api/users/me", json={"status": ""}, headers=headers).json()
    assert cleared["status"] is None
    assert cleared["display_name"] == "Dora the Explorer"


def test_root_and_health(client: TestClient):
    assert client.get("/health").json()["status"] == "ok"
    assert "Fairway" in client.get("/api/").json()["message"]
