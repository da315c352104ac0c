"""
tests/integration/test_itinerary.py — Itinerary activities over HTTP.

The Gemini client is replaced by one on httpx.MockTransport for the
/generate endpoint.
"""

from __future__ import annotations

import json

import httpx
import pytest

from backend.app.extensions import AI_CLIENT_KEY
from backend.app.services.ai_service import GeminiClient

from .conftest import auth_headers, mock_http_client, signup, trip_with_members


def _add(client, token, trip_id, **fields):
    payload = {"day": 1, "time": "10:00", "title": "Grand Palace"}
    payload.update(fields)
    return client.post(
        f"/api/v1/trips/{trip_id}/itinerary",
        json=payload,
        headers=auth_headers(token),
    )


def _gemini_reply(text: str):
    def handler(request):
        return httpx.Response(200, json={
            "candidates": [{"content": {"parts": [{"text": text}]}}],
        })
    return handler


@pytest.fixture
def members(client):
    return trip_with_members(client, "Alice", "Bob")


class TestActivities:

    def test_add_activity(self, client, members):
        (alice, _), trip = members

        resp = _add(client, alice["access_token"], trip["id"], description="  Temple tour ")

        assert resp.status_code == 201
        activity = resp.get_json()["data"]
        assert activity["trip_id"] == trip["id"]
        assert activity["description"] == "Temple tour"
        assert activity["votes"] == []
        assert activity["comments"] == []

    def test_list_sorted_by_day_then_time(self, client, members):
        (alice, bob), trip = members
        _add(client, alice["access_token"], trip["id"], day=2, time="09:00", title="C")
        _add(client, alice["access_token"], trip["id"], day=1, time="18:30", title="B")
        _add(client, bob["access_token"], trip["id"], day=1, time="08:15", title="A")

        resp = client.get(
            f"/api/v1/trips/{trip['id']}/itinerary",
            headers=auth_headers(bob["access_token"]),
        )

        assert [a["title"] for a in resp.get_json()["data"]] == ["A", "B", "C"]

    def test_invalid_time_rejected(self, client, members):
        (alice, _), trip = members

        resp = _add(client, alice["access_token"], trip["id"], time="25:00")

        assert resp.status_code == 400
        assert resp.get_json()["error"]["field"] == "time"

    def test_patch_updates_only_given_fields(self, client, members):
        (alice, bob), trip = members
        activity = _add(client, alice["access_token"], trip["id"]).get_json()["data"]

        resp = client.patch(
            f"/api/v1/itinerary/{activity['id']}",
            json={"time": "11:30", "day": 2},
            headers=auth_headers(bob["access_token"]),
        )

        assert resp.status_code == 200
        updated = resp.get_json()["data"]
        assert (updated["day"], updated["time"]) == (2, "11:30")
        assert updated["title"] == "Grand Palace"

    def test_delete_activity(self, client, members):
        (alice, bob), trip = members
        activity = _add(client, alice["access_token"], trip["id"]).get_json()["data"]

        resp = client.delete(f"/api/v1/itinerary/{activity['id']}", headers=auth_headers(bob["access_token"]))

        assert resp.status_code == 200
        listing = client.get(
            f"/api/v1/trips/{trip['id']}/itinerary",
            headers=auth_headers(alice["access_token"]),
        ).get_json()["data"]
        assert listing == []

    def test_unknown_activity(self, client, members):
        (alice, _), _trip = members

        resp = client.patch(
            "/api/v1/itinerary/nope",
            json={"title": "x"},
            headers=auth_headers(alice["access_token"]),
        )

        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "ACTIVITY_NOT_FOUND"

    def test_outsider_cannot_touch_activity(self, client, members):
        (alice, _), trip = members
        eve = signup(client, "Eve")
        activity = _add(client, alice["access_token"], trip["id"]).get_json()["data"]

        resp = client.post(
            f"/api/v1/itinerary/{activity['id']}/votes",
            headers=auth_headers(eve["access_token"]),
        )

        assert resp.status_code == 403


class TestVotesAndComments:

    def test_vote_is_idempotent(self, client, members):
        (alice, bob), trip = members
        activity = _add(client, alice["access_token"], trip["id"]).get_json()["data"]
        url = f"/api/v1/itinerary/{activity['id']}/votes"

        first = client.post(url, headers=auth_headers(bob["access_token"])).get_json()["data"]
        second = client.post(url, headers=auth_headers(bob["access_token"])).get_json()["data"]

        assert first["added"] is True
        assert second["added"] is False
        assert second["activity"]["votes"] == [bob["user"]["id"]]

    def test_votes_from_several_members(self, client, members):
        (alice, bob), trip = members
        activity = _add(client, alice["access_token"], trip["id"]).get_json()["data"]
        url = f"/api/v1/itinerary/{activity['id']}/votes"

        client.post(url, headers=auth_headers(alice["access_token"]))
        resp = client.post(url, headers=auth_headers(bob["access_token"]))

        assert resp.get_json()["data"]["activity"]["votes"] == [alice["user"]["id"], bob["user"]["id"]]

    def test_comments_keep_posting_order_and_author(self, client, members):
        (alice, bob), trip = members
        activity = _add(client, alice["access_token"], trip["id"]).get_json()["data"]
        url = f"/api/v1/itinerary/{activity['id']}/comments"

        client.post(url, json={"text": "Dress code?"}, headers=auth_headers(bob["access_token"]))
        resp = client.post(url, json={"text": "Long trousers"}, headers=auth_headers(alice["access_token"]))

        assert resp.status_code == 201
        comments = resp.get_json()["data"]["comments"]
        assert [(c["user"], c["text"]) for c in comments] == [
            ("Bob", "Dress code?"),
            ("Alice", "Long trousers"),
        ]
        assert all(c["time"] for c in comments)

    def test_blank_comment_rejected(self, client, members):
        (alice, _), trip = members
        activity = _add(client, alice["access_token"], trip["id"]).get_json()["data"]

        resp = client.post(
            f"/api/v1/itinerary/{activity['id']}/comments",
            json={"text": "  "},
            headers=auth_headers(alice["access_token"]),
        )

        assert resp.status_code == 400


class TestGenerate:

    def test_generated_activities_are_stored(self, client, app, members):
        (alice, _), trip = members
        plan = [
            {"title": "Wat Pho", "time": "9:00 AM", "description": "Reclining Buddha.", "day": 1},
            {"title": "Chatuchak", "time": "10:00", "description": "Weekend market.", "day": 2},
            {"title": "Rooftop bar", "time": "20:00", "description": "Skyline views.", "day": 1},
        ]
        app.extensions[AI_CLIENT_KEY] = GeminiClient(
            api_key="test-key",
            http_client=mock_http_client(_gemini_reply("```json\n" + json.dumps(plan) + "\n```")),
        )

        resp = client.post(
            f"/api/v1/trips/{trip['id']}/itinerary/generate",
            headers=auth_headers(alice["access_token"]),
        )

        assert resp.status_code == 201
        created = resp.get_json()["data"]
        assert [(a["day"], a["time"], a["title"]) for a in created] == [
            (1, "09:00", "Wat Pho"),
            (1, "20:00", "Rooftop bar"),
            (2, "10:00", "Chatuchak"),
        ]
        listing = client.get(
            f"/api/v1/trips/{trip['id']}/itinerary",
            headers=auth_headers(alice["access_token"]),
        ).get_json()["data"]
        assert len(listing) == 3

    def test_prompt_mentions_destination_and_days(self, client, app, members):
        (alice, _), trip = members
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return _gemini_reply("[]")(request)

        app.extensions[AI_CLIENT_KEY] = GeminiClient(api_key="k", http_client=mock_http_client(handler))

        client.post(
            f"/api/v1/trips/{trip['id']}/itinerary/generate",
            headers=auth_headers(alice["access_token"]),
        )

        prompt = seen["body"]["contents"][0]["parts"][0]["text"]
        assert "Bangkok" in prompt
        assert "3-day" in prompt

    def test_without_key_returns_503(self, client, members):
        (alice, _), trip = members

        resp = client.post(
            f"/api/v1/trips/{trip['id']}/itinerary/generate",
            headers=auth_headers(alice["access_token"]),
        )

        assert resp.status_code == 503
        assert resp.get_json()["error"]["code"] == "AI_UNAVAILABLE"

    def test_malformed_reply_returns_502_and_stores_nothing(self, client, app, members, store):
        (alice, _), trip = members
        app.extensions[AI_CLIENT_KEY] = GeminiClient(
            api_key="k",
            http_client=mock_http_client(_gemini_reply("Sorry, I can't help with that.")),
        )

        resp = client.post(
            f"/api/v1/trips/{trip['id']}/itinerary/generate",
            headers=auth_headers(alice["access_token"]),
        )

        assert resp.status_code == 502
        assert resp.get_json()["error"]["code"] == "AI_GENERATION_FAILED"
        assert store.list_for_trip("itinerary", trip["id"]) == []
