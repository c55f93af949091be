"""Admin repositories package."""

from modules.admins.repositories.interfaces import IAdminRepository
from modules.admins.repositories.memory_repository import AdminMemoryRepository

__all__ = ["IAdminRepository", "AdminMemoryRepository"]
