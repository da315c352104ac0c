"""
store — Item store for trips, expenses, itinerary activities and messages.

Two interchangeable backends share the ItemStore interface:

    SqlItemStore     tables in the main SQLAlchemy database
    MemoryItemStore  in-process dicts, optionally mirrored to JSON files

The app factory picks one from ITEM_STORE_BACKEND (see build_item_store).
"""

from __future__ import annotations

from backend.app.store.base import ItemStore, Subscription
from backend.app.store.collections import (
    ALL_COLLECTIONS,
    EXPENSES,
    ITINERARY,
    MESSAGES,
    TRIPS,
)
from backend.app.store.memory_store import MemoryItemStore
from backend.app.store.sql_store import SqlItemStore

__all__ = [
    "ALL_COLLECTIONS",
    "EXPENSES",
    "ITINERARY",
    "MESSAGES",
    "TRIPS",
    "ItemStore",
    "MemoryItemStore",
    "SqlItemStore",
    "Subscription",
    "build_item_store",
]


def build_item_store(config, engine=None) -> ItemStore:
    """
    Builds the backend named by config["ITEM_STORE_BACKEND"].

    `engine` is required for the sql backend. Raises ValueError on an
    unknown backend name so a typo fails at startup, not on first request.
    """
    backend = config.get("ITEM_STORE_BACKEND", "sql")
    interval = float(config.get("STORE_POLL_INTERVAL_SECONDS", 0) or 0)

    if backend == "sql":
        if engine is None:
            raise ValueError("The sql item store needs a database engine.")
        return SqlItemStore(engine, poll_interval=interval)

    if backend == "memory":
        return MemoryItemStore(
            directory=config.get("LOCAL_STORE_DIR") or None,
            poll_interval=interval,
        )

    raise ValueError(
        f"Unknown ITEM_STORE_BACKEND {backend!r}; expected 'sql' or 'memory'."
    )
