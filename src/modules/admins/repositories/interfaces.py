"""Admin set repository interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List


class IAdminRepository(ABC):
    """Set of actor ids holding admin rights besides the owner."""

    @abstractmethod
    def contains(self, actor_id: str) -> bool:
        """Whether the actor is in the admin set."""

    @abstractmethod
    def add(self, actor_id: str) -> bool:
        """Add an actor.  Returns ``False`` if already present."""

    @abstractmethod
    def remove(self, actor_id: str) -> bool:
        """Remove an actor.  Returns ``False`` if absent."""

    @abstractmethod
    def list(self) -> List[str]:
        """Admin ids in the order they were added."""

    @abstractmethod
    def count(self) -> int:
        """Size of the admin set."""
