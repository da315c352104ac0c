"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - Every test gets its own app from create_app("testing") backed by a
    throwaway SQLite file (users, refresh tokens) and a fresh in-memory item
    store (trips, expenses, itinerary, messages). Nothing leaks between tests.
  - test_sql_store.py builds its app with the sql item store instead, via
    make_app(..., ITEM_STORE_BACKEND="sql").
  - Third-party clients are swapped for ones built on httpx.MockTransport by
    replacing their entries in app.extensions. Tests never reach the network.

Helper functions (not fixtures) are provided for common operations:
  - signup(client, ...)          -> dict with user + tokens
  - auth_headers(token)          -> {"Authorization": "Bearer <token>"}
  - make_trip(client, token)     -> trip document
  - join(client, token, code)    -> HTTP response
  - make_expense(...)            -> HTTP response

They are plain functions so they can be called with arbitrary arguments in
any test.
"""

from __future__ import annotations

import httpx
import pytest

from backend.app import create_app
from backend.app.extensions import db as _db


# ═══════════════════════════════════════════════════════════════════════════
# App fixtures
# ═══════════════════════════════════════════════════════════════════════════

def make_app(tmp_path, **overrides):
    """Creates a testing app with its own database file and upload folder."""
    config = {
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'tripsync_test.db'}",
        "ITEM_STORE_BACKEND": "memory",
        "LOCAL_STORE_DIR": "",
        "UPLOAD_FOLDER": str(tmp_path / "uploads"),
    }
    config.update(overrides)
    flask_app = create_app("testing", overrides=config)
    with flask_app.app_context():
        _db.create_all()
    return flask_app


@pytest.fixture
def app(tmp_path):
    flask_app = make_app(tmp_path)
    yield flask_app
    _teardown(flask_app)


def _teardown(flask_app) -> None:
    from backend.app.extensions import get_item_store

    with flask_app.app_context():
        get_item_store().close()
        _db.session.remove()
        _db.drop_all()
        _db.engine.dispose()


@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (function-scoped)."""
    return app.test_client()


@pytest.fixture
def store(app):
    """The app's item store, for arranging data or asserting on it directly."""
    from backend.app.extensions import ITEM_STORE_KEY
    return app.extensions[ITEM_STORE_KEY]


def mock_http_client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def signup(
    client,
    name: str = "Alice",
    email: str | None = None,
    password: str = "Password1",
) -> dict:
    """
    Signs up a new user and returns the response data dict.
    Returns: {"user": {...}, "access_token": "...", "refresh_token": "..."}
    """
    if email is None:
        email = f"{name.lower()}@test.com"
    resp = client.post(
        "/api/v1/auth/signup",
        json={"name": name, "email": email, "password": password},
    )
    assert resp.status_code == 201, f"signup failed: {resp.get_json()}"
    return resp.get_json()["data"]


def auth_headers(token: str) -> dict:
    """Returns the Authorization header dict for use in test requests."""
    return {"Authorization": f"Bearer {token}"}


def make_trip(client, token: str, **overrides) -> dict:
    """Creates a trip as the token owner (organizer) and returns it."""
    payload = {
        "title": "Bangkok Getaway",
        "destination": "Bangkok",
        "start_date": "2026-11-01",
        "end_date": "2026-11-03",
    }
    payload.update(overrides)
    resp = client.post("/api/v1/trips", json=payload, headers=auth_headers(token))
    assert resp.status_code == 201, f"make_trip failed: {resp.get_json()}"
    return resp.get_json()["data"]


def join(client, token: str, code: str):
    """Joins a trip by code. Returns the HTTP response."""
    return client.post("/api/v1/trips/join", json={"code": code}, headers=auth_headers(token))


def make_expense(client, token: str, trip_id: str, amount: str, **fields):
    """Creates an expense and returns the HTTP response."""
    payload = {"title": fields.pop("title", "Test Expense"), "amount": amount}
    payload.update(fields)
    return client.post(
        f"/api/v1/trips/{trip_id}/expenses",
        json=payload,
        headers=auth_headers(token),
    )


def trip_with_members(client, *names: str) -> tuple[list[dict], dict]:
    """
    Signs up every name, the first creates a trip, the rest join it.
    Returns (users, trip) with users in join order.
    """
    users = [signup(client, name) for name in names]
    trip = make_trip(client, users[0]["access_token"])
    for user in users[1:]:
        resp = join(client, user["access_token"], trip["code"])
        assert resp.status_code == 200, f"join failed: {resp.get_json()}"
    return users, trip
