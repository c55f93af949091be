"""In-memory implementation of the Session repository."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from modules.conversations.models import Session
from modules.conversations.repositories.interfaces import ISessionRepository


class SessionMemoryRepository(ISessionRepository):
    """Process-lifetime session store keyed by actor id."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._sessions: Dict[str, Session] = {}

    def get_by_id(self, id: str) -> Optional[Session]:
        with self._lock:
            return self._sessions.get(id)

    def list(self) -> List[Session]:
        with self._lock:
            return list(self._sessions.values())

    def save(self, entity: Session) -> Session:
        with self._lock:
            self._sessions[entity.actor_id] = entity
        return entity

    def delete(self, id: str) -> bool:
        with self._lock:
            return self._sessions.pop(id, None) is not None

    def count(self) -> int:
        with self._lock:
            return len(self._sessions)

    @contextmanager
    def locked(self) -> Iterator[None]:
        with self._lock:
            yield
