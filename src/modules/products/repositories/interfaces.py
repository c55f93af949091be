"""Product repository interface.

Extends ``IRepository[Product]`` with the look-ups and the atomic stock
adjustment required by the cart engine and the order ledger.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.products.models import Product


class IProductRepository(IRepository["Product"]):
    """Repository contract for the Product aggregate."""

    @abstractmethod
    def adjust_stock(self, id: str, delta: int) -> Optional[int]:
        """Atomically add *delta* to the stock, clamping at zero.

        Returns the new stock, or ``None`` if the product does not exist.
        """

    @abstractmethod
    def next_code(self) -> str:
        """Reserve the next human-readable product code."""
