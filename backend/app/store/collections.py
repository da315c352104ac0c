"""
store/collections.py — Collection names and snapshot ordering.
"""

from __future__ import annotations

from typing import Callable, Iterable

from backend.app.errors import AppError, ErrorCode

TRIPS = "trips"
EXPENSES = "expenses"
ITINERARY = "itinerary"
MESSAGES = "messages"

# Collections whose documents carry a trip_id.
TRIP_SCOPED = (EXPENSES, ITINERARY, MESSAGES)
ALL_COLLECTIONS = (TRIPS,) + TRIP_SCOPED


def _created(item: dict) -> str:
    return str(item.get("created_at") or "")


_SORT_KEYS: dict[str, Callable[[dict], object]] = {
    TRIPS:     _created,
    EXPENSES:  _created,
    MESSAGES:  _created,
    # Day, then wall-clock time; created_at breaks ties between equal slots.
    ITINERARY: lambda item: (
        int(item.get("day") or 0),
        str(item.get("time") or ""),
        _created(item),
    ),
}


def require_collection(name: str) -> str:
    """Returns `name` if it is a known collection, else raises UNKNOWN_COLLECTION."""
    if name not in ALL_COLLECTIONS:
        raise AppError(
            ErrorCode.UNKNOWN_COLLECTION,
            f"'{name}' is not a known collection.",
            404,
        )
    return name


def require_trip_scoped(name: str) -> str:
    require_collection(name)
    if name not in TRIP_SCOPED:
        raise AppError(
            ErrorCode.UNKNOWN_COLLECTION,
            f"'{name}' is not scoped to a trip.",
            404,
        )
    return name


def sort_items(collection: str, items: Iterable[dict]) -> list[dict]:
    """Returns `items` in the snapshot order of `collection` (stable)."""
    return sorted(items, key=_SORT_KEYS[collection])
