"""
store/poller.py — Snapshot polling for backends without a push channel.

A SnapshotPoller re-reads a snapshot through `fetch`, compares it with the
last one it delivered, and calls `on_change` only when it differs. The first
poll always delivers, so a subscriber sees the current state immediately.

poll() may be called from any thread (the store calls it after local writes);
with interval > 0 a daemon thread also polls on a timer.
"""

from __future__ import annotations

import logging
from threading import Event, RLock, Thread, current_thread
from typing import Callable

logger = logging.getLogger(__name__)

_UNSET = object()


class SnapshotPoller:

    def __init__(
            self,
            fetch: Callable[[], list[dict]],
            on_change: Callable[[list[dict]], None],
            interval: float = 0.0,
            name: str = "snapshot-poller",
    ) -> None:
        self._fetch = fetch
        self._on_change = on_change
        self._interval = interval
        self._name = name
        self._last = _UNSET
        self._lock = RLock()
        self._stop_event = Event()
        self._thread: Thread | None = None

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def start(self) -> None:
        """Delivers the initial snapshot, then starts the timer thread if enabled."""
        self.poll()
        if self._interval > 0 and self._thread is None:
            self._thread = Thread(target=self._run, name=self._name, daemon=True)
            self._thread.start()

    def poll(self) -> bool:
        """
        Fetches a snapshot and delivers it if it changed.

        Returns True when on_change was called. Exceptions from fetch or
        on_change propagate to the caller.
        """
        with self._lock:
            if self.stopped:
                return False
            snapshot = self._fetch()
            if snapshot == self._last:
                return False
            self._last = snapshot
            self._on_change(snapshot)
            return True

    def stop(self) -> None:
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread.is_alive() and thread is not current_thread():
            thread.join(timeout=1.0)

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval):
            try:
                self.poll()
            except Exception:
                # Keep polling; a transient store outage should not end the feed.
                logger.exception("Snapshot poll failed (%s)", self._name)
