"""Session repository interface."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, ContextManager

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.conversations.models import Session


class ISessionRepository(IRepository["Session"]):
    """Repository contract for per-actor sessions, keyed by actor id."""

    @abstractmethod
    def locked(self) -> ContextManager[None]:
        """Hold the store lock across a read-modify-write of one or more carts.

        Re-entrant.  Callers may already hold an actor lock, never the
        other way round.
        """
