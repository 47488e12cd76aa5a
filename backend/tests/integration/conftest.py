"""
tests/integration/conftest.py — Fixtures and helpers for integration tests.

Design:
  - The app is created once per session with create_app("testing"), which
    points at an in-memory SQLite database (Flask-SQLAlchemy keeps a single
    shared connection for it, so every request sees the same data).
  - Tables are created once with db.create_all().
  - Between tests every row is deleted in FK-safe order.
  - Users are inserted directly: accounts and tokens come from an external
    identity service, so tests mint their own HS256 tokens.

Helper functions (not fixtures) cover the common API calls:
  - make_user(app, ...)       → {"id", "name", "email", "token"}
  - auth_headers(token)       → {"Authorization": "Bearer <token>"}
  - make_event(client, ...)   → event data dict
  - add_participant(...)      → HTTP response
  - make_split(...)           → HTTP response
  - make_payment(...)         → HTTP response
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest
from sqlalchemy import text

from backend.app import create_app
from backend.app.extensions import db as _db
from backend.app.models.user import User

TEST_JWT_SECRET = "testing-secret-key"


# ═══════════════════════════════════════════════════════════════════════════
# App, isolation, client
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app():
    flask_app = create_app("testing")

    with flask_app.app_context():
        _db.create_all()

    yield flask_app

    with flask_app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def clean_tables(app):
    """Deletes all rows after every test, children before parents."""
    yield

    with app.app_context():
        _db.session.rollback()
        with _db.engine.connect() as conn:
            for table in (
                "split_participants",
                "splits",
                "payments",
                "event_settled_confirmations",
                "event_participants",
                "events",
                "users",
            ):
                conn.execute(text(f"DELETE FROM {table}"))
            conn.commit()


@pytest.fixture
def client(app):
    return app.test_client()


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def make_token(user_id: int, expires_in: timedelta = timedelta(hours=1), secret: str = TEST_JWT_SECRET) -> str:
    payload = {
        "sub": str(user_id),
        "exp": datetime.now(timezone.utc) + expires_in,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def make_user(app, name: str = "alice", email: str | None = None) -> dict:
    """Inserts a user row and returns its profile plus a valid token."""
    with app.app_context():
        user = User(name=name, email=email or f"{name}@test.com")
        _db.session.add(user)
        _db.session.commit()
        profile = user.to_profile()
    return {**profile, "token": make_token(profile["id"])}


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def make_event(client, token: str, name: str = "Weekend Trip", **extra) -> dict:
    """Creates an event; the token owner becomes creator and first participant."""
    resp = client.post(
        "/api/v1/events",
        json={"name": name, **extra},
        headers=auth_headers(token),
    )
    assert resp.status_code == 201, f"make_event failed: {resp.get_json()}"
    return resp.get_json()["data"]


def add_participant(client, token: str, event_id: int, user_id: int):
    return client.post(
        f"/api/v1/events/{event_id}/participants",
        json={"user_id": user_id},
        headers=auth_headers(token),
    )


def make_split(
    client,
    token: str,
    event_id: int,
    paid_by_user_id: int,
    amount: str,
    participant_ids: list[int] | None = None,
    participants: list[dict] | None = None,
    split_mode: str = "equal",
    title: str = "Test Split",
):
    """
    Creates a split and returns the HTTP response.
    equal  → pass participant_ids, or None for every event participant.
    custom → pass participants as [{user_id, amount_owed}].
    """
    payload: dict = {
        "title": title,
        "amount": amount,
        "paid_by_user_id": paid_by_user_id,
        "split_mode": split_mode,
    }
    if participant_ids is not None:
        payload["participant_ids"] = participant_ids
    if participants is not None:
        payload["participants"] = participants

    return client.post(
        f"/api/v1/events/{event_id}/splits",
        json=payload,
        headers=auth_headers(token),
    )


def make_payment(client, token: str, event_id: int, to_user_id: int, amount: str, **extra):
    return client.post(
        f"/api/v1/events/{event_id}/payments",
        json={"to_user_id": to_user_id, "amount": amount, **extra},
        headers=auth_headers(token),
    )


def event_balances(client, token: str, event_id: int) -> dict:
    resp = client.get(f"/api/v1/events/{event_id}/balances", headers=auth_headers(token))
    assert resp.status_code == 200, f"balances failed: {resp.get_json()}"
    return resp.get_json()["data"]


def balance_of(data: dict, user_id: int) -> str:
    """Picks one participant's net balance out of an event balances payload."""
    for row in data["balances"]:
        if row["user"]["id"] == user_id:
            return row["balance"]
    raise AssertionError(f"user {user_id} not in balances")
