"""Per-actor mutual exclusion.

Each inbound event for an actor is handled under that actor's lock so
two deliveries for the same chat (platform retries, two devices) cannot
interleave their read-modify-write of the session and cart.  Events for
different actors never contend.

A lock lives in the registry only while some thread holds or waits for
it, so the registry stays as small as the number of in-flight actors.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.users = 0


class ActorLockRegistry:
    """Lazily allocates one re-entrant lock per actor id."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[str, _Entry] = {}

    def _checkout(self, actor_id: str) -> _Entry:
        with self._guard:
            entry = self._locks.get(actor_id)
            if entry is None:
                entry = self._locks[actor_id] = _Entry()
            entry.users += 1
            return entry

    def _checkin(self, actor_id: str, entry: _Entry) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[actor_id]

    @contextmanager
    def hold(self, actor_id: str) -> Iterator[None]:
        """Hold the exclusive lock for *actor_id* for the duration of the block."""
        entry = self._checkout(actor_id)
        try:
            entry.lock.acquire()
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            self._checkin(actor_id, entry)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
