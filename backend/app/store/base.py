"""
store/base.py — ItemStore interface shared by both backends.

Documents are plain dicts. Every document has an opaque string `id` and an
ISO-8601 `created_at`, both assigned by add(). Trip-scoped documents
(expenses, itinerary, messages) also carry `trip_id`.

The public methods live here and are the same for every backend. A backend
implements the protected primitives (_insert, _fetch, _merge, ...); this
class stamps new documents, raises ITEM_NOT_FOUND, sorts snapshots and
refreshes subscriptions after each write.

Layer rules:
  - No Flask imports. Services receive the store as an argument.
  - Returned documents are copies; mutating them never touches the store.
"""

from __future__ import annotations

import abc
import logging
import uuid
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Callable

from backend.app.errors import AppError, ErrorCode
from backend.app.store.collections import (
    TRIPS,
    require_collection,
    require_trip_scoped,
    sort_items,
)
from backend.app.store.poller import SnapshotPoller

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[list[dict]], None]


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class Subscription:
    """
    Handle for a live snapshot listener.

    Usable as a context manager; leaving the block cancels the listener.
    cancel() is idempotent.
    """

    def __init__(
            self,
            store: "ItemStore",
            collection: str,
            matches: Callable[[str, dict], bool],
            poller: SnapshotPoller,
    ) -> None:
        self.collection = collection
        self._store = store
        self._matches = matches
        self._poller = poller

    @property
    def active(self) -> bool:
        return not self._poller.stopped

    def wants(self, collection: str, item: dict) -> bool:
        return self._matches(collection, item)

    def refresh(self) -> bool:
        """Re-reads the snapshot now; returns True if a new one was delivered."""
        return self._poller.poll()

    def cancel(self) -> None:
        if not self.active:
            return
        self._store._unregister(self)
        self._poller.stop()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cancel()


class ItemStore(abc.ABC):

    def __init__(self, poll_interval: float = 0.0) -> None:
        self._poll_interval = poll_interval
        self._subscriptions: list[Subscription] = []
        self._subscriptions_lock = Lock()

    # ── Public API ─────────────────────────────────────────────────────────

    def add(self, collection: str, data: dict) -> dict:
        """Stores a new document and returns it with `id` and `created_at` set."""
        require_collection(collection)
        item = self._insert(collection, self._stamp(data))
        logger.debug("Added %s/%s", collection, item["id"])
        self._notify(collection, item)
        return item

    def get(self, collection: str, item_id: str) -> dict | None:
        require_collection(collection)
        return self._fetch(collection, item_id)

    def update(self, collection: str, item_id: str, partial: dict) -> dict:
        """
        Shallow-merges `partial` into the document and returns the result.

        `id` and `created_at` are never overwritten.

        Raises:
            AppError(ITEM_NOT_FOUND, 404) -- no document with this id.
        """
        require_collection(collection)
        changes = {
            key: value
            for key, value in partial.items()
            if key not in ("id", "created_at")
        }
        item = self._merge(collection, item_id, changes)
        if item is None:
            raise _not_found(collection, item_id)
        self._notify(collection, item)
        return item

    def delete(self, collection: str, item_id: str) -> bool:
        """Removes the document. Returns False if it did not exist."""
        require_collection(collection)
        removed = self._remove(collection, item_id)
        if removed is None:
            return False
        logger.debug("Deleted %s/%s", collection, item_id)
        self._notify(collection, removed)
        return True

    def list_for_trip(self, collection: str, trip_id: str) -> list[dict]:
        require_trip_scoped(collection)
        return sort_items(collection, self._query(collection, "trip_id", trip_id))

    def find_by(self, collection: str, field: str, value: Any) -> list[dict]:
        """Returns every document whose `field` equals `value`, in snapshot order."""
        require_collection(collection)
        return sort_items(collection, self._query(collection, field, value))

    def list_for_member(self, member_id: int) -> list[dict]:
        """Returns the trips whose member list contains `member_id`."""
        return sort_items(TRIPS, self._trips_for_member(member_id))

    def append_unique(
            self,
            collection: str,
            item_id: str,
            field: str,
            value: Any,
    ) -> bool:
        """
        Array-union: appends `value` to the list in `field` unless present.

        The check and the write happen atomically inside the backend, so two
        concurrent callers cannot both append the same value.

        Returns True if the list changed.

        Raises:
            AppError(ITEM_NOT_FOUND, 404) -- no document with this id.
        """
        require_collection(collection)
        item, changed = self._append(collection, item_id, field, value, unique=True)
        if item is None:
            raise _not_found(collection, item_id)
        if changed:
            self._notify(collection, item)
        return changed

    def append(self, collection: str, item_id: str, field: str, value: Any) -> dict:
        """Appends `value` to the list in `field` unconditionally."""
        require_collection(collection)
        item, _ = self._append(collection, item_id, field, value, unique=False)
        if item is None:
            raise _not_found(collection, item_id)
        self._notify(collection, item)
        return item

    def delete_for_trip(self, collection: str, trip_id: str) -> int:
        """Removes every document of `collection` that belongs to the trip."""
        require_trip_scoped(collection)
        count = self._remove_for_trip(collection, trip_id)
        if count:
            logger.info("Deleted %d %s for trip %s", count, collection, trip_id)
            self._notify(collection, {"trip_id": trip_id})
        return count

    # ── Subscriptions ──────────────────────────────────────────────────────

    def subscribe(
            self,
            collection: str,
            trip_id: str,
            on_change: SnapshotCallback,
    ) -> Subscription:
        """
        Listens to one trip's documents in `collection`.

        on_change receives the full sorted snapshot right away, then again
        after every change. For the trips collection the snapshot is the
        single trip (or [] once it is deleted).
        """
        require_collection(collection)

        if collection == TRIPS:
            def fetch() -> list[dict]:
                trip = self._fetch(TRIPS, trip_id)
                return [trip] if trip is not None else []

            def matches(changed: str, item: dict) -> bool:
                return changed == TRIPS and item.get("id") == trip_id
        else:
            def fetch() -> list[dict]:
                return self.list_for_trip(collection, trip_id)

            def matches(changed: str, item: dict) -> bool:
                return changed == collection and item.get("trip_id") == trip_id

        return self._register(collection, fetch, matches, on_change,
                              name=f"{collection}:{trip_id}")

    def subscribe_member_trips(
            self,
            member_id: int,
            on_change: SnapshotCallback,
    ) -> Subscription:
        """Listens to the list of trips `member_id` belongs to."""

        def fetch() -> list[dict]:
            return self.list_for_member(member_id)

        # Any trip write may add or remove this member; the poller drops
        # refreshes that leave the snapshot unchanged.
        def matches(changed: str, item: dict) -> bool:
            return changed == TRIPS

        return self._register(TRIPS, fetch, matches, on_change,
                              name=f"trips:member:{member_id}")

    @property
    def subscription_count(self) -> int:
        with self._subscriptions_lock:
            return len(self._subscriptions)

    def close(self) -> None:
        """Cancels every live subscription."""
        with self._subscriptions_lock:
            subscriptions = list(self._subscriptions)
        for subscription in subscriptions:
            subscription.cancel()

    def _register(self, collection, fetch, matches, on_change, name) -> Subscription:
        poller = SnapshotPoller(fetch, on_change, self._poll_interval, name=name)
        subscription = Subscription(self, collection, matches, poller)
        with self._subscriptions_lock:
            self._subscriptions.append(subscription)
        try:
            poller.start()
        except Exception:
            self._unregister(subscription)
            raise
        return subscription

    def _unregister(self, subscription: Subscription) -> None:
        with self._subscriptions_lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def _notify(self, collection: str, item: dict) -> None:
        with self._subscriptions_lock:
            targets = [s for s in self._subscriptions if s.wants(collection, item)]
        for subscription in targets:
            try:
                subscription.refresh()
            except Exception:
                # The write already succeeded; a broken listener must not undo it.
                logger.exception("Subscription refresh failed after %s write", collection)

    # ── Helpers ────────────────────────────────────────────────────────────

    @staticmethod
    def _stamp(data: dict) -> dict:
        item = dict(data)
        item["id"] = uuid.uuid4().hex
        item["created_at"] = utc_now_iso()
        return item

    # ── Backend primitives ─────────────────────────────────────────────────

    @abc.abstractmethod
    def _insert(self, collection: str, item: dict) -> dict:
        """Persists a fully stamped document and returns the stored copy."""

    @abc.abstractmethod
    def _fetch(self, collection: str, item_id: str) -> dict | None:
        """Returns a copy of the document, or None."""

    @abc.abstractmethod
    def _merge(self, collection: str, item_id: str, changes: dict) -> dict | None:
        """Applies `changes` and returns the merged copy, or None if missing."""

    @abc.abstractmethod
    def _remove(self, collection: str, item_id: str) -> dict | None:
        """Deletes the document and returns what was removed, or None."""

    @abc.abstractmethod
    def _query(self, collection: str, field: str, value: Any) -> list[dict]:
        """Returns copies of every document with document[field] == value."""

    @abc.abstractmethod
    def _trips_for_member(self, member_id: int) -> list[dict]:
        """Returns copies of every trip whose members list contains member_id."""

    @abc.abstractmethod
    def _append(
            self,
            collection: str,
            item_id: str,
            field: str,
            value: Any,
            unique: bool,
    ) -> tuple[dict | None, bool]:
        """Atomically appends to a list field. Returns (document, changed)."""

    @abc.abstractmethod
    def _remove_for_trip(self, collection: str, trip_id: str) -> int:
        """Deletes every document of the trip; returns how many were removed."""


def _not_found(collection: str, item_id: str) -> AppError:
    return AppError(
        ErrorCode.ITEM_NOT_FOUND,
        f"No {collection} item with id {item_id}.",
        404,
    )
