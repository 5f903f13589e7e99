"""
Debounced progress persistence.

Snapshots are written at most once per interval. A snapshot that arrives
inside the interval replaces any pending one and is written by the next
flush (a trailing timer when an event loop is running, or an explicit
flush() at the next lifecycle transition). The newest snapshot always
wins; an older one is never written after a newer one.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable

from loguru import logger

from quiz_engine.storage.store import PersistentStore, StorageKind


class ProgressWriter:
    """
    Last-write-wins debouncer for one quiz's progress entry.

    Args:
        store: Target store
        entity_id: Quiz slug
        sub_kind: Quiz type
        interval_ms: Minimum time between two writes
        clock: Returns the current time in seconds
    """

    def __init__(
        self,
        store: PersistentStore,
        entity_id: str,
        sub_kind: str,
        interval_ms: int = 500,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.entity_id = entity_id
        self.sub_kind = sub_kind
        self.interval = interval_ms / 1000
        self.clock = clock
        self._pending: Any = None
        self._last_write: float | None = None
        self._timer: asyncio.TimerHandle | None = None

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def schedule(self, snapshot: Any) -> bool:
        """
        Queue a snapshot. Writes immediately when the interval has elapsed.

        Returns:
            True if the snapshot was written now
        """
        self._pending = snapshot
        now = self.clock()
        if self._last_write is None or now - self._last_write >= self.interval:
            return self.flush()

        self._arm_timer(self.interval - (now - self._last_write))
        return False

    def flush(self) -> bool:
        """Write the pending snapshot, if any."""
        self._cancel_timer()
        if self._pending is None:
            return False
        snapshot, self._pending = self._pending, None
        self._last_write = self.clock()
        written = self.store.put(StorageKind.PROGRESS, self.entity_id, self.sub_kind, snapshot)
        if not written:
            logger.warning(f"Progress for {self.entity_id} could not be saved to any storage tier")
        return written

    def discard(self) -> None:
        """Drop the pending snapshot without writing it."""
        self._cancel_timer()
        self._pending = None

    def _arm_timer(self, delay: float) -> None:
        if self._timer is not None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop: the next transition flushes explicitly
            return
        self._timer = loop.call_later(max(0.0, delay), self._on_timer)

    def _on_timer(self) -> None:
        self._timer = None
        self.flush()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
