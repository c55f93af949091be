"""Session repositories package."""

from modules.conversations.repositories.interfaces import ISessionRepository
from modules.conversations.repositories.memory_repository import (
    SessionMemoryRepository,
)

__all__ = ["ISessionRepository", "SessionMemoryRepository"]
