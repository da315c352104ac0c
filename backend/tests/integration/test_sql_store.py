"""
tests/integration/test_sql_store.py — SqlItemStore against a real database.

Runs the same flows as the memory-store tests with ITEM_STORE_BACKEND="sql"
so documents round-trip through the trips / expenses / itinerary / messages
tables: ISO dates, Decimal amounts, JSON list columns and appends.
"""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import patch

import pytest

from backend.app.errors import AppError, ErrorCode
from backend.app.extensions import ITEM_STORE_KEY
from backend.app.services import trip_service
from backend.app.store import SqlItemStore

from .conftest import _teardown, auth_headers, make_app, make_expense, signup, trip_with_members


@pytest.fixture
def app(tmp_path):
    flask_app = make_app(tmp_path, ITEM_STORE_BACKEND="sql")
    yield flask_app
    _teardown(flask_app)


@pytest.fixture
def sql_store(app) -> SqlItemStore:
    store = app.extensions[ITEM_STORE_KEY]
    assert isinstance(store, SqlItemStore)
    return store


def _trip_data(**overrides) -> dict:
    data = {
        "title": "Lisbon",
        "destination": "Lisbon",
        "start_date": "2026-05-01",
        "end_date": "2026-05-04",
        "days": 4,
        "code": "LSB001",
        "organizer": 1,
        "members": [1],
    }
    data.update(overrides)
    return data


class TestDocuments:

    def test_trip_round_trip(self, sql_store):
        trip = sql_store.add("trips", _trip_data())

        fetched = sql_store.get("trips", trip["id"])

        assert fetched["start_date"] == "2026-05-01"
        assert fetched["members"] == [1]
        assert fetched["created_at"] == trip["created_at"]
        assert len(trip["id"]) == 32

    def test_amount_is_exact_decimal(self, sql_store):
        trip = sql_store.add("trips", _trip_data())

        expense = sql_store.add("expenses", {
            "trip_id": trip["id"], "title": "Tram", "amount": Decimal("3.10"), "paid_by": 1,
        })

        assert sql_store.get("expenses", expense["id"])["amount"] == Decimal("3.10")

    def test_unknown_fields_are_dropped(self, sql_store):
        trip = sql_store.add("trips", _trip_data(colour="blue"))

        assert "colour" not in sql_store.get("trips", trip["id"])

    def test_update_and_missing_update(self, sql_store):
        trip = sql_store.add("trips", _trip_data())

        updated = sql_store.update("trips", trip["id"], {"title": "Porto", "id": "hijack"})

        assert updated["title"] == "Porto"
        assert updated["id"] == trip["id"]
        with pytest.raises(AppError) as exc_info:
            sql_store.update("trips", "missing", {"title": "x"})
        assert exc_info.value.code == ErrorCode.ITEM_NOT_FOUND

    def test_find_by_and_members(self, sql_store):
        first = sql_store.add("trips", _trip_data(code="AAA111", members=[1, 2]))
        sql_store.add("trips", _trip_data(code="BBB222", members=[3]))

        assert [t["id"] for t in sql_store.find_by("trips", "code", "AAA111")] == [first["id"]]
        assert [t["id"] for t in sql_store.list_for_member(2)] == [first["id"]]

    def test_find_by_unknown_field(self, sql_store):
        with pytest.raises(ValueError):
            sql_store.find_by("trips", "colour", "blue")

    def test_delete_for_trip(self, sql_store):
        trip = sql_store.add("trips", _trip_data())
        for text in ("a", "b"):
            sql_store.add("messages", {
                "trip_id": trip["id"], "sender_id": 1, "sender_name": "A", "text": text,
            })

        assert sql_store.delete_for_trip("messages", trip["id"]) == 2
        assert sql_store.list_for_trip("messages", trip["id"]) == []

    def test_duplicate_join_code_is_item_conflict(self, sql_store):
        sql_store.add("trips", _trip_data(code="DUP123"))

        with pytest.raises(AppError) as exc_info:
            sql_store.add("trips", _trip_data(code="DUP123"))

        assert exc_info.value.code == ErrorCode.ITEM_CONFLICT
        assert exc_info.value.http_status == 409
        assert len(sql_store.find_by("trips", "code", "DUP123")) == 1


class TestAppend:

    def test_append_unique(self, sql_store):
        trip = sql_store.add("trips", _trip_data())

        assert sql_store.append_unique("trips", trip["id"], "members", 2) is True
        assert sql_store.append_unique("trips", trip["id"], "members", 2) is False
        assert sql_store.get("trips", trip["id"])["members"] == [1, 2]

    def test_append_keeps_order(self, sql_store):
        trip = sql_store.add("trips", _trip_data())
        activity = sql_store.add("itinerary", {
            "trip_id": trip["id"], "day": 1, "time": "09:00", "title": "Walk",
        })

        sql_store.append("itinerary", activity["id"], "comments", {"user": "A", "text": "1"})
        result = sql_store.append("itinerary", activity["id"], "comments", {"user": "B", "text": "2"})

        assert [c["text"] for c in result["comments"]] == ["1", "2"]


class TestSubscriptions:

    def test_snapshot_on_subscribe_and_after_write(self, sql_store):
        trip = sql_store.add("trips", _trip_data())
        snapshots = []

        with sql_store.subscribe("messages", trip["id"], snapshots.append):
            sql_store.add("messages", {
                "trip_id": trip["id"], "sender_id": 1, "sender_name": "A", "text": "hi",
            })

        assert [len(s) for s in snapshots] == [0, 1]
        assert sql_store.subscription_count == 0


class TestHttpFlow:

    def test_trip_expense_balance_flow(self, client):
        (alice, bob), trip = trip_with_members(client, "Alice", "Bob")
        make_expense(client, alice["access_token"], trip["id"], "25.00")

        resp = client.get(f"/api/v1/trips/{trip['id']}/balances", headers=auth_headers(bob["access_token"]))

        balances = {row["user_id"]: Decimal(row["balance"]) for row in resp.get_json()["data"]["balances"]}
        assert balances == {
            alice["user"]["id"]: Decimal("12.50"),
            bob["user"]["id"]: Decimal("-12.50"),
        }

    def test_trip_delete_cascades(self, client, sql_store):
        (alice, bob), trip = trip_with_members(client, "Alice", "Bob")
        make_expense(client, bob["access_token"], trip["id"], "9.99")

        resp = client.delete(f"/api/v1/trips/{trip['id']}", headers=auth_headers(alice["access_token"]))

        assert resp.status_code == 200
        assert sql_store.get("trips", trip["id"]) is None
        assert sql_store.list_for_trip("expenses", trip["id"]) == []

    def test_code_taken_by_concurrent_create_is_redrawn(self, client, sql_store):
        alice = signup(client, "Alice")
        sql_store.add("trips", _trip_data(code="RACE01"))

        # The lookup misses the competing row, as it would if that row
        # committed between our check and our insert.
        with patch.object(sql_store, "find_by", return_value=[]), \
                patch.object(trip_service, "generate_join_code", side_effect=["RACE01", "FRESH2"]):
            resp = client.post("/api/v1/trips", json={
                "title": "Alps",
                "destination": "Chamonix",
                "start_date": "2026-12-01",
                "end_date": "2026-12-05",
            }, headers=auth_headers(alice["access_token"]))

        assert resp.status_code == 201
        assert resp.get_json()["data"]["code"] == "FRESH2"
