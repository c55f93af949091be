"""Product entity of the catalog store.

Business rules implemented:
- Prices (cost and sell) and stock are non-negative integers in the
  smallest currency unit.
- Stock never goes negative: decrements are clamped at zero by the
  repository (``adjust_stock``).
- ``code`` is a short human-readable identifier (``P001``) shown in chat;
  ``id`` (UUIDv7) is used in button payloads and internal references.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

import uuid6


def _new_id() -> str:
    return str(uuid6.uuid7())


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Product:
    """Catalog entry.  Mutated in place by price/stock edits."""

    code: str
    name: str
    price_sell: int
    stock: int = 0
    price_cost: int = 0
    category: str = ""
    unit: str = ""
    description: str = ""
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_now)

    @property
    def in_stock(self) -> bool:
        return self.stock > 0

    def __str__(self) -> str:
        return f"{self.code} {self.name} ({self.stock} {self.unit})".strip()
