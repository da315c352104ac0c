"""
services/itinerary_service.py — Trip itinerary activities.

Every operation requires the caller to be a member of the activity's trip.

Votes are an array-union: voting twice is a no-op and there is no unvote.
Comments are appended as {"user", "text", "time"} in posting order.
"""

from __future__ import annotations

import logging

from backend.app.errors import AppError, ErrorCode
from backend.app.services import trip_service
from backend.app.store import ITINERARY, ItemStore
from backend.app.store.base import utc_now_iso
from backend.app.store.collections import sort_items

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "description", "day", "time")


def _get_activity_for_member(activity_id: str, caller_id: int, store: ItemStore) -> dict:
    activity = store.get(ITINERARY, activity_id)
    if activity is None:
        raise AppError(
            ErrorCode.ACTIVITY_NOT_FOUND,
            f"Activity {activity_id} does not exist.",
            404,
        )
    trip_service.get_trip_for_member(activity["trip_id"], caller_id, store)
    return activity


def _new_activity(trip_id: str, data: dict) -> dict:
    return {
        "trip_id": trip_id,
        "day": data["day"],
        "time": data["time"],
        "title": data["title"].strip(),
        "description": (data.get("description") or "").strip(),
        "votes": [],
        "comments": [],
    }


def add_activity(trip_id: str, caller_id: int, data: dict, store: ItemStore) -> dict:
    trip_service.get_trip_for_member(trip_id, caller_id, store)
    return store.add(ITINERARY, _new_activity(trip_id, data))


def list_activities(trip_id: str, caller_id: int, store: ItemStore) -> list[dict]:
    """Activities ordered by day, then time."""
    trip_service.get_trip_for_member(trip_id, caller_id, store)
    return store.list_for_trip(ITINERARY, trip_id)


def update_activity(activity_id: str, caller_id: int, changes: dict, store: ItemStore) -> dict:
    """Shallow-merges title / description / day / time; other keys are ignored."""
    _get_activity_for_member(activity_id, caller_id, store)
    partial = {key: changes[key] for key in EDITABLE_FIELDS if key in changes}
    return store.update(ITINERARY, activity_id, partial)


def delete_activity(activity_id: str, caller_id: int, store: ItemStore) -> None:
    _get_activity_for_member(activity_id, caller_id, store)
    store.delete(ITINERARY, activity_id)


def toggle_vote(activity_id: str, member_id: int, store: ItemStore) -> dict:
    """
    Adds member_id to the activity's votes if absent. Idempotent.

    Returns {"activity": {...}, "added": bool}.
    """
    _get_activity_for_member(activity_id, member_id, store)
    added = store.append_unique(ITINERARY, activity_id, "votes", member_id)
    return {"activity": store.get(ITINERARY, activity_id), "added": added}


def add_comment(
        activity_id: str,
        caller_id: int,
        author_name: str,
        text: str,
        store: ItemStore,
) -> dict:
    _get_activity_for_member(activity_id, caller_id, store)
    comment = {"user": author_name, "text": text.strip(), "time": utc_now_iso()}
    return store.append(ITINERARY, activity_id, "comments", comment)


def generate_itinerary(trip_id: str, caller_id: int, store: ItemStore, ai_client) -> list[dict]:
    """
    Asks the generative-text provider for a plan covering the trip's days and
    stores each suggestion as a new activity.

    Raises:
        AppError(AI_UNAVAILABLE, 503)
        AppError(AI_GENERATION_FAILED, 502)
    """
    trip = trip_service.get_trip_for_member(trip_id, caller_id, store)
    suggestions = ai_client.generate_itinerary(trip["destination"], trip.get("days") or 3)

    created = [store.add(ITINERARY, _new_activity(trip_id, item)) for item in suggestions]
    logger.info("Generated %d activities for trip %s", len(created), trip_id)
    return sort_items(ITINERARY, created)
