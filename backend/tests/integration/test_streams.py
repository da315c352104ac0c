"""
tests/integration/test_streams.py — Server-sent snapshot feeds.

Responses are read unbuffered: each next() on the body iterator returns one
event. Writes made while a feed is open go straight through the item store
so no second request context is pushed while the stream holds one.
"""

from __future__ import annotations

import json

from .conftest import auth_headers, signup, trip_with_members


def _open(client, url, token):
    return client.get(url, headers=auth_headers(token), buffered=False)


def _next_snapshot(body) -> list[dict]:
    """Skips keep-alive comments and returns the next snapshot's payload."""
    while True:
        chunk = next(body)
        text = chunk.decode() if isinstance(chunk, bytes) else chunk
        if text.startswith(":"):
            continue
        event, data = text.strip().split("\n", 1)
        assert event == "event: snapshot"
        return json.loads(data.removeprefix("data: "))


class TestTripCollectionStream:

    def test_initial_snapshot_then_updates(self, client, store):
        (alice, bob), trip = trip_with_members(client, "Alice", "Bob")
        store.add("messages", {"trip_id": trip["id"], "sender_id": 1, "sender_name": "Alice", "text": "first"})

        resp = _open(client, f"/api/v1/trips/{trip['id']}/messages/stream", bob["access_token"])
        try:
            assert resp.status_code == 200
            assert resp.mimetype == "text/event-stream"
            body = iter(resp.response)

            assert [m["text"] for m in _next_snapshot(body)] == ["first"]

            store.add("messages", {"trip_id": trip["id"], "sender_id": 2, "sender_name": "Bob", "text": "second"})

            assert [m["text"] for m in _next_snapshot(body)] == ["first", "second"]
        finally:
            resp.close()

        assert store.subscription_count == 0

    def test_other_trips_do_not_trigger_events(self, client, store):
        (alice,), trip = trip_with_members(client, "Alice")

        resp = _open(client, f"/api/v1/trips/{trip['id']}/expenses/stream", alice["access_token"])
        try:
            body = iter(resp.response)
            assert _next_snapshot(body) == []

            store.add("expenses", {"trip_id": "another-trip", "title": "x", "amount": "1.00", "paid_by": 1})
            store.add("expenses", {"trip_id": trip["id"], "title": "Fuel", "amount": "20.00", "paid_by": 1})

            assert [e["title"] for e in _next_snapshot(body)] == ["Fuel"]
        finally:
            resp.close()

    def test_trip_document_stream_sees_deletion(self, client, store):
        (alice,), trip = trip_with_members(client, "Alice")

        resp = _open(client, f"/api/v1/trips/{trip['id']}/trips/stream", alice["access_token"])
        try:
            body = iter(resp.response)
            assert [t["id"] for t in _next_snapshot(body)] == [trip["id"]]

            store.delete("trips", trip["id"])

            assert _next_snapshot(body) == []
        finally:
            resp.close()

    def test_heartbeat_while_idle(self, client, app):
        app.config["STREAM_HEARTBEAT_SECONDS"] = 0.05
        (alice,), trip = trip_with_members(client, "Alice")

        resp = _open(client, f"/api/v1/trips/{trip['id']}/itinerary/stream", alice["access_token"])
        try:
            body = iter(resp.response)
            _next_snapshot(body)
            assert next(body) in (b": keep-alive\n\n", ": keep-alive\n\n")
        finally:
            resp.close()

    def test_non_member_gets_json_403(self, client, store):
        (alice,), trip = trip_with_members(client, "Alice")
        eve = signup(client, "Eve")

        resp = client.get(
            f"/api/v1/trips/{trip['id']}/messages/stream",
            headers=auth_headers(eve["access_token"]),
        )

        assert resp.status_code == 403
        assert resp.get_json()["error"]["code"] == "FORBIDDEN"
        assert store.subscription_count == 0

    def test_unknown_collection_gets_404(self, client):
        (alice,), trip = trip_with_members(client, "Alice")

        resp = client.get(
            f"/api/v1/trips/{trip['id']}/photos/stream",
            headers=auth_headers(alice["access_token"]),
        )

        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "UNKNOWN_COLLECTION"

    def test_requires_auth(self, client):
        resp = client.get("/api/v1/trips/anything/messages/stream")

        assert resp.status_code == 401


class TestMemberTripsStream:

    def test_joining_adds_trip_to_feed(self, client, store):
        alice, bob = signup(client, "Alice"), signup(client, "Bob")
        resp_trip = client.post("/api/v1/trips", json={
            "title": "Alps",
            "destination": "Chamonix",
            "start_date": "2026-12-01",
            "end_date": "2026-12-05",
        }, headers=auth_headers(alice["access_token"]))
        trip = resp_trip.get_json()["data"]

        resp = _open(client, "/api/v1/trips/stream", bob["access_token"])
        try:
            body = iter(resp.response)
            assert _next_snapshot(body) == []

            store.append_unique("trips", trip["id"], "members", bob["user"]["id"])

            assert [t["id"] for t in _next_snapshot(body)] == [trip["id"]]
        finally:
            resp.close()

        assert store.subscription_count == 0
