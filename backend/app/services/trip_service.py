"""
services/trip_service.py — Trip creation, membership and deletion.

Layer rules:
  - No Flask imports. The store arrives as an argument; user ids are ints.
  - Returns plain document dicts.

Membership rules:
  - The organizer is the first member and is never removed.
  - members has set semantics. join_trip() appends through
    ItemStore.append_unique(), which is atomic per backend, so two people
    joining at the same moment both land exactly once.
  - Every read or write on a trip's data goes through require_member().

Join codes are 6 characters from A-Z0-9 drawn with `secrets`. A code that
is already taken is re-drawn, up to JOIN_CODE_MAX_ATTEMPTS times.
"""

from __future__ import annotations

import logging
import secrets
import string
from datetime import date

from sqlalchemy.orm import Session

from backend.app.errors import AppError, ErrorCode
from backend.app.services import auth_service
from backend.app.store import EXPENSES, ITINERARY, MESSAGES, TRIPS, ItemStore

logger = logging.getLogger(__name__)

JOIN_CODE_ALPHABET = string.ascii_uppercase + string.digits
JOIN_CODE_LENGTH = 6

# Deleted before the trip itself.
_DEPENDENT_COLLECTIONS = (EXPENSES, ITINERARY, MESSAGES)


# ── Join codes ─────────────────────────────────────────────────────────────

def generate_join_code() -> str:
    return "".join(secrets.choice(JOIN_CODE_ALPHABET) for _ in range(JOIN_CODE_LENGTH))


def normalize_join_code(code: str) -> str:
    """Codes are matched case-insensitively and ignore surrounding spaces."""
    return code.strip().upper()


def _unused_join_code(store: ItemStore) -> str | None:
    code = generate_join_code()
    if store.find_by(TRIPS, "code", code):
        return None
    return code


def _join_code_exhausted() -> AppError:
    return AppError(
        ErrorCode.JOIN_CODE_EXHAUSTED,
        "Could not allocate a unique join code. Please try again.",
        409,
    )


# ── Guards ─────────────────────────────────────────────────────────────────

def require_member(trip: dict, user_id: int) -> None:
    """
    Raises:
        AppError(FORBIDDEN, 403) -- user_id is not in the trip's members.
    """
    if user_id not in (trip.get("members") or []):
        raise AppError(
            ErrorCode.FORBIDDEN,
            f"You are not a member of trip {trip['id']}.",
            403,
        )


def get_trip(trip_id: str, store: ItemStore) -> dict:
    """
    Raises:
        AppError(TRIP_NOT_FOUND, 404)
    """
    trip = store.get(TRIPS, trip_id)
    if trip is None:
        raise AppError(
            ErrorCode.TRIP_NOT_FOUND,
            f"Trip {trip_id} does not exist.",
            404,
        )
    return trip


def get_trip_for_member(trip_id: str, user_id: int, store: ItemStore) -> dict:
    """get_trip() followed by require_member(); the common entry point for trip data."""
    trip = get_trip(trip_id, store)
    require_member(trip, user_id)
    return trip


# ── Public service functions ───────────────────────────────────────────────

def create_trip(
        data: dict,
        creator_id: int,
        store: ItemStore,
        max_attempts: int = 5,
) -> dict:
    """
    Creates a trip with the creator as organizer and only member.

    `data` is the output of CreateTripSchema: title, destination, and
    start_date / end_date as date objects (end >= start already checked).

    Raises:
        AppError(JOIN_CODE_EXHAUSTED, 409) -- no free code after max_attempts.
    """
    start: date = data["start_date"]
    end: date = data["end_date"]
    fields = {
        "title": data["title"].strip(),
        "destination": data["destination"].strip(),
        "start_date": start.isoformat(),
        "end_date": end.isoformat(),
        "days": (end - start).days + 1,
        "organizer": creator_id,
        "members": [creator_id],
    }

    # A code can pass the lookup and still be taken by a concurrent insert
    # before ours lands; the store then reports ITEM_CONFLICT.
    for _ in range(max_attempts):
        code = _unused_join_code(store)
        if code is None:
            logger.info("Join code collision; drawing another")
            continue
        try:
            trip = store.add(TRIPS, {**fields, "code": code})
        except AppError as exc:
            if exc.code != ErrorCode.ITEM_CONFLICT:
                raise
            logger.info("Join code %s taken concurrently; drawing another", code)
            continue
        logger.info("User %s created trip %s", creator_id, trip["id"])
        return trip
    raise _join_code_exhausted()


def join_trip(code: str, member_id: int, store: ItemStore) -> str:
    """
    Adds member_id to the trip whose join code matches and returns its id.

    Raises:
        AppError(TRIP_NOT_FOUND, 404) -- no trip has this code; nothing changes.
        AppError(ALREADY_MEMBER, 409) -- member_id is already in the trip.
    """
    normalized = normalize_join_code(code)
    matches = store.find_by(TRIPS, "code", normalized)
    if not matches:
        raise AppError(
            ErrorCode.TRIP_NOT_FOUND,
            "No trip matches that join code.",
            404,
            field="code",
        )

    trip = matches[0]
    if member_id in trip["members"]:
        raise AppError(
            ErrorCode.ALREADY_MEMBER,
            "You are already a member of this trip.",
            409,
        )

    # The membership check above can race with a concurrent join; the
    # conditional append is what actually decides.
    if not store.append_unique(TRIPS, trip["id"], "members", member_id):
        raise AppError(
            ErrorCode.ALREADY_MEMBER,
            "You are already a member of this trip.",
            409,
        )

    logger.info("User %s joined trip %s", member_id, trip["id"])
    return trip["id"]


def list_trips(member_id: int, store: ItemStore) -> list[dict]:
    """Trips the user belongs to, oldest first."""
    return store.list_for_member(member_id)


def get_trip_detail(
        trip_id: str,
        caller_id: int,
        store: ItemStore,
        session: Session,
) -> dict:
    """
    The trip document plus display names for its members.

    Raises:
        AppError(TRIP_NOT_FOUND, 404)
        AppError(FORBIDDEN, 403)
    """
    trip = get_trip_for_member(trip_id, caller_id, store)
    names = auth_service.get_display_names(trip["members"], session)
    trip["member_details"] = [
        {"user_id": uid, "name": names.get(uid, f"user_{uid}")}
        for uid in trip["members"]
    ]
    return trip


def delete_trip(trip_id: str, caller_id: int, store: ItemStore) -> None:
    """
    Deletes a trip and everything recorded under it.

    Raises:
        AppError(TRIP_NOT_FOUND, 404)
        AppError(FORBIDDEN, 403) -- only the organizer may delete a trip.
    """
    trip = get_trip(trip_id, store)
    if trip["organizer"] != caller_id:
        raise AppError(
            ErrorCode.FORBIDDEN,
            "Only the trip organizer can delete this trip.",
            403,
        )

    for collection in _DEPENDENT_COLLECTIONS:
        store.delete_for_trip(collection, trip_id)
    store.delete(TRIPS, trip_id)
    logger.info("User %s deleted trip %s", caller_id, trip_id)
