"""Per-room mutual exclusion for the booking check-then-insert sequence."""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator

from .errors import StorageError

logger = logging.getLogger(__name__)


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class RoomLockRegistry:
    """One lock per room id; entries are dropped once nobody holds or waits on them."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        self._guard = threading.Lock()
        self._entries: Dict[int, _Entry] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)

    @contextmanager
    def hold(self, room_id: int) -> Iterator[None]:
        with self._guard:
            entry = self._entries.get(room_id)
            if entry is None:
                entry = self._entries[room_id] = _Entry()
            entry.users += 1
        try:
            if not entry.lock.acquire(timeout=self.timeout):
                logger.warning("Timed out after %.1fs waiting for booking lock on room %s", self.timeout, room_id)
                raise StorageError("Timed out waiting for the room to become free for booking, re-query before retrying")
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    self._entries.pop(room_id, None)
