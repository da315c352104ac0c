"""
services/feed_service.py — Opening live snapshot feeds.

Checks access and the collection name, then subscribes on the store. The
caller owns the returned Subscription and must cancel it.
"""

from __future__ import annotations

from typing import Callable

from backend.app.services import trip_service
from backend.app.store import ItemStore, Subscription
from backend.app.store.collections import require_collection


def open_trip_feed(
        trip_id: str,
        collection: str,
        caller_id: int,
        store: ItemStore,
        on_change: Callable[[list[dict]], None],
) -> Subscription:
    """
    Raises:
        AppError(UNKNOWN_COLLECTION, 404)
        AppError(TRIP_NOT_FOUND, 404)
        AppError(FORBIDDEN, 403)
    """
    require_collection(collection)
    trip_service.get_trip_for_member(trip_id, caller_id, store)
    return store.subscribe(collection, trip_id, on_change)


def open_member_trips_feed(
        member_id: int,
        store: ItemStore,
        on_change: Callable[[list[dict]], None],
) -> Subscription:
    return store.subscribe_member_trips(member_id, on_change)

