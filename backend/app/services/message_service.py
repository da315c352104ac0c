"""
services/message_service.py — Trip group chat.

Messages are immutable. The sender's id and display name come from the
authenticated user and are passed in by the route.
"""

from __future__ import annotations

import logging

from backend.app.services import trip_service
from backend.app.store import MESSAGES, ItemStore

logger = logging.getLogger(__name__)


def post_message(
        trip_id: str,
        sender_id: int,
        sender_name: str,
        text: str,
        store: ItemStore,
) -> dict:
    trip_service.get_trip_for_member(trip_id, sender_id, store)
    return store.add(MESSAGES, {
        "trip_id": trip_id,
        "sender_id": sender_id,
        "sender_name": sender_name,
        "text": text.strip(),
    })


def list_messages(trip_id: str, caller_id: int, store: ItemStore) -> list[dict]:
    """Oldest first."""
    trip_service.get_trip_for_member(trip_id, caller_id, store)
    return store.list_for_trip(MESSAGES, trip_id)


def summarize_messages(trip_id: str, caller_id: int, store: ItemStore, ai_client) -> str:
    """Never raises for provider problems; see GeminiClient.summarize_chat()."""
    messages = list_messages(trip_id, caller_id, store)
    return ai_client.summarize_chat(messages)
