"""
tests/integration/test_messages.py — Group chat and its AI summary over HTTP.
"""

from __future__ import annotations

import json

import httpx

from backend.app.extensions import AI_CLIENT_KEY
from backend.app.services.ai_service import NO_MESSAGES, SUMMARY_FAILED, SUMMARY_KEY_MISSING, GeminiClient

from .conftest import auth_headers, mock_http_client, signup, trip_with_members


def _post(client, token, trip_id, text):
    return client.post(
        f"/api/v1/trips/{trip_id}/messages",
        json={"text": text},
        headers=auth_headers(token),
    )


def _summary(client, token, trip_id):
    resp = client.get(f"/api/v1/trips/{trip_id}/messages/summary", headers=auth_headers(token))
    assert resp.status_code == 200
    return resp.get_json()["data"]["summary"]


class TestChat:

    def test_message_carries_sender(self, client):
        (alice, bob), trip = trip_with_members(client, "Alice", "Bob")

        resp = _post(client, bob["access_token"], trip["id"], "  Who books the boat?  ")

        assert resp.status_code == 201
        message = resp.get_json()["data"]
        assert message["sender_id"] == bob["user"]["id"]
        assert message["sender_name"] == "Bob"
        assert message["text"] == "Who books the boat?"
        assert message["created_at"]

    def test_listing_is_oldest_first(self, client):
        (alice, bob), trip = trip_with_members(client, "Alice", "Bob")
        _post(client, alice["access_token"], trip["id"], "one")
        _post(client, bob["access_token"], trip["id"], "two")
        _post(client, alice["access_token"], trip["id"], "three")

        resp = client.get(f"/api/v1/trips/{trip['id']}/messages", headers=auth_headers(bob["access_token"]))

        assert [m["text"] for m in resp.get_json()["data"]] == ["one", "two", "three"]

    def test_outsider_cannot_post_or_read(self, client):
        (alice,), trip = trip_with_members(client, "Alice")
        eve = signup(client, "Eve")

        assert _post(client, eve["access_token"], trip["id"], "hi").status_code == 403
        resp = client.get(f"/api/v1/trips/{trip['id']}/messages", headers=auth_headers(eve["access_token"]))
        assert resp.status_code == 403

    def test_empty_text_rejected(self, client):
        (alice,), trip = trip_with_members(client, "Alice")

        resp = _post(client, alice["access_token"], trip["id"], "")

        assert resp.status_code == 400


class TestSummary:

    def test_no_messages(self, client):
        (alice,), trip = trip_with_members(client, "Alice")

        assert _summary(client, alice["access_token"], trip["id"]) == NO_MESSAGES

    def test_without_key(self, client):
        (alice,), trip = trip_with_members(client, "Alice")
        _post(client, alice["access_token"], trip["id"], "Beach on day two")

        assert _summary(client, alice["access_token"], trip["id"]) == SUMMARY_KEY_MISSING

    def test_summary_from_provider(self, client, app):
        (alice, bob), trip = trip_with_members(client, "Alice", "Bob")
        _post(client, alice["access_token"], trip["id"], "Beach on day two")
        _post(client, bob["access_token"], trip["id"], "Agreed")
        seen = {}

        def handler(request):
            seen["prompt"] = json.loads(request.content)["contents"][0]["parts"][0]["text"]
            return httpx.Response(200, json={
                "candidates": [{"content": {"parts": [{"text": "- Beach on day two\n"}]}}],
            })

        app.extensions[AI_CLIENT_KEY] = GeminiClient(api_key="k", http_client=mock_http_client(handler))

        assert _summary(client, bob["access_token"], trip["id"]) == "- Beach on day two"
        assert "Alice: Beach on day two\nBob: Agreed" in seen["prompt"]

    def test_provider_failure_still_returns_200(self, client, app):
        (alice,), trip = trip_with_members(client, "Alice")
        _post(client, alice["access_token"], trip["id"], "hello")
        app.extensions[AI_CLIENT_KEY] = GeminiClient(
            api_key="k",
            http_client=mock_http_client(lambda request: httpx.Response(500)),
        )

        assert _summary(client, alice["access_token"], trip["id"]) == SUMMARY_FAILED
