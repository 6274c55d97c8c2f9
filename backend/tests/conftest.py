"""Shared pytest fixtures for backend tests."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Callable, Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from fairway.config import Settings, get_settings
from fairway.database import get_db
from fairway.main import app
from fairway.models import Base

DEFAULT_PASSWORD = "correct-horse"

RegisterFn = Callable[..., tuple[dict[str, Any], dict[str, str]]]


@pytest.fixture()
def test_engine() -> Iterator[Engine]:
    """Provide an in-memory SQLite engine for isolated tests."""

    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture()
def session_factory(test_engine) -> sessionmaker[Session]:
    """Return a session factory bound to the test engine."""

    return sessionmaker(bind=test_engine, future=True)


@pytest.fixture()
def db_session(session_factory) -> Iterator[Session]:
    """Yield a SQLAlchemy session for unit tests."""

    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def settings() -> Settings:
    """The cached settings object; tweak it through ``monkeypatch.setattr``."""

    return get_settings()


@pytest.fixture()
def client(session_factory) -> Iterator[TestClient]:
    """Yield a FastAPI TestClient with the database dependency overridden."""

    def override_get_db() -> Iterator[Session]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def register(client: TestClient) -> RegisterFn:
    """Register and log in a user, returning its JSON body and auth headers."""

    def _register(
        email: str,
        full_name: str | None = None,
        password: str = DEFAULT_PASSWORD,
    ) -> tuple[dict[str, Any], dict[str, str]]:
        payload: dict[str, Any] = {"email": email, "password": password}
        if full_name is not None:
            payload["full_name"] = full_name
        response = client.post("/api/auth/register", json=payload)
        assert response.status_code == 201, response.text
        login = client.post("/api/auth/login", json={"email": email, "password": password})
        assert login.status_code == 200, login.text
        return response.json(), auth_headers(login.json()["access_token"])

    return _register


@pytest.fixture()
def admin(client: TestClient, register: RegisterFn) -> tuple[dict[str, Any], dict[str, str]]:
    """First user of the workspace, promoted to admin with the General channel set up."""

    user, headers = register("admin@example.com", "Admin")
    response = client.post("/api/admin/bootstrap", headers=headers)
    assert response.status_code == 200, response.text
    response = client.post("/api/admin/setup", headers=headers)
    assert response.status_code == 200, response.text
    return user, headers


@pytest.fixture()
def general_id(client: TestClient, admin) -> int:
    """Id of the General channel; setup is idempotent so it can be asked again."""

    _, headers = admin
    response = client.post("/api/admin/setup", headers=headers)
    assert response.status_code == 200, response.text
    return response.json()["channel_id"]
