"""In-memory implementation of the admin set."""

from __future__ import annotations

import threading
from typing import Dict, Iterable, List

from modules.admins.repositories.interfaces import IAdminRepository


class AdminMemoryRepository(IAdminRepository):
    def __init__(self, initial: Iterable[str] = ()) -> None:
        self._lock = threading.Lock()
        # dict keeps insertion order
        self._ids: Dict[str, None] = dict.fromkeys(str(i) for i in initial if i)

    def contains(self, actor_id: str) -> bool:
        with self._lock:
            return actor_id in self._ids

    def add(self, actor_id: str) -> bool:
        with self._lock:
            if actor_id in self._ids:
                return False
            self._ids[actor_id] = None
            return True

    def remove(self, actor_id: str) -> bool:
        with self._lock:
            if actor_id not in self._ids:
                return False
            del self._ids[actor_id]
            return True

    def list(self) -> List[str]:
        with self._lock:
            return list(self._ids)

    def count(self) -> int:
        with self._lock:
            return len(self._ids)
