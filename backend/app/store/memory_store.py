"""
store/memory_store.py — In-process ItemStore.

Used when no database is reachable (ITEM_STORE_BACKEND=memory) and by the
unit tests. All state sits behind one RLock, which also makes
append_unique() atomic.

With a directory configured, every write rewrites that collection's file
(`ts_<collection>.json`) and the files are read back at startup. Values
that JSON cannot hold (Decimal amounts) are written as strings.
"""

from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path
from threading import RLock
from typing import Any

from backend.app.errors import AppError, ErrorCode
from backend.app.store.base import ItemStore
from backend.app.store.collections import ALL_COLLECTIONS, TRIPS

logger = logging.getLogger(__name__)


class MemoryItemStore(ItemStore):

    def __init__(self, directory: str | None = None, poll_interval: float = 0.0) -> None:
        super().__init__(poll_interval)
        self._lock = RLock()
        self._directory = Path(directory) if directory else None
        self._items: dict[str, dict[str, dict]] = {name: {} for name in ALL_COLLECTIONS}
        if self._directory is not None:
            self._load()

    # ── Persistence ────────────────────────────────────────────────────────

    def _file_for(self, collection: str) -> Path:
        return self._directory / f"ts_{collection}.json"

    def _load(self) -> None:
        for collection in ALL_COLLECTIONS:
            path = self._file_for(collection)
            if not path.exists():
                continue
            try:
                items = json.loads(path.read_text(encoding="utf-8"))
            except OSError as exc:
                raise _unavailable(exc) from exc
            except ValueError:
                logger.exception("Ignoring unreadable store file %s", path)
                continue
            self._items[collection] = {item["id"]: item for item in items}
            logger.info("Loaded %d %s from %s", len(items), collection, path)

    def _commit(self, collection: str, items: dict[str, dict]) -> None:
        """Writes `items` to disk, then makes it the collection's live state.

        A failed write leaves the previous state in place.
        """
        self._save(collection, items)
        self._items[collection] = items

    def _save(self, collection: str, items: dict[str, dict]) -> None:
        if self._directory is None:
            return
        path = self._file_for(collection)
        payload = json.dumps(
            list(items.values()),
            default=str,
            indent=2,
        )
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_suffix(".json.tmp")
            tmp_path.write_text(payload, encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as exc:
            raise _unavailable(exc) from exc

    # ── Backend primitives ─────────────────────────────────────────────────
    # Writes never touch the live dicts: they build a new collection mapping
    # and hand it to _commit().

    def _insert(self, collection: str, item: dict) -> dict:
        with self._lock:
            items = dict(self._items[collection])
            items[item["id"]] = copy.deepcopy(item)
            self._commit(collection, items)
            return copy.deepcopy(item)

    def _fetch(self, collection: str, item_id: str) -> dict | None:
        with self._lock:
            item = self._items[collection].get(item_id)
            return copy.deepcopy(item) if item is not None else None

    def _merge(self, collection: str, item_id: str, changes: dict) -> dict | None:
        with self._lock:
            item = self._items[collection].get(item_id)
            if item is None:
                return None
            merged = {**copy.deepcopy(item), **copy.deepcopy(changes)}
            items = dict(self._items[collection])
            items[item_id] = merged
            self._commit(collection, items)
            return copy.deepcopy(merged)

    def _remove(self, collection: str, item_id: str) -> dict | None:
        with self._lock:
            if item_id not in self._items[collection]:
                return None
            items = dict(self._items[collection])
            item = items.pop(item_id)
            self._commit(collection, items)
            return copy.deepcopy(item)

    def _query(self, collection: str, field: str, value: Any) -> list[dict]:
        with self._lock:
            return [
                copy.deepcopy(item)
                for item in self._items[collection].values()
                if item.get(field) == value
            ]

    def _trips_for_member(self, member_id: int) -> list[dict]:
        with self._lock:
            return [
                copy.deepcopy(trip)
                for trip in self._items[TRIPS].values()
                if member_id in (trip.get("members") or [])
            ]

    def _append(
            self,
            collection: str,
            item_id: str,
            field: str,
            value: Any,
            unique: bool,
    ) -> tuple[dict | None, bool]:
        with self._lock:
            item = self._items[collection].get(item_id)
            if item is None:
                return None, False
            current = list(item.get(field) or [])
            if unique and value in current:
                return copy.deepcopy(item), False
            current.append(copy.deepcopy(value))
            updated = {**copy.deepcopy(item), field: current}
            items = dict(self._items[collection])
            items[item_id] = updated
            self._commit(collection, items)
            return copy.deepcopy(updated), True

    def _remove_for_trip(self, collection: str, trip_id: str) -> int:
        with self._lock:
            kept = {
                item_id: item
                for item_id, item in self._items[collection].items()
                if item.get("trip_id") != trip_id
            }
            removed = len(self._items[collection]) - len(kept)
            if removed:
                self._commit(collection, kept)
            return removed


def _unavailable(exc: OSError) -> AppError:
    logger.error("Local item store I/O failed: %s", exc)
    return AppError(
        ErrorCode.STORE_UNAVAILABLE,
        "The local data store could not be read or written.",
        503,
    )
