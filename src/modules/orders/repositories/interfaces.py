"""Order repository interface.

Extends ``IRepository[Order]`` with the methods required by the order
ledger: creation with invoice assignment, locked read for status
transitions, and idempotency-key look-up.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, ContextManager, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.models import Order


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    Orders are keyed by invoice and never deleted.
    """

    @abstractmethod
    def create(self, order: Order) -> Order:
        """Assign a unique invoice and append the order to the ledger."""

    @abstractmethod
    def get_for_update(self, id: str) -> ContextManager[Optional[Order]]:
        """Hold the ledger lock while the caller validates and mutates an order.

        Yields ``None`` for an unknown invoice.
        """

    @abstractmethod
    def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        """Retrieve an order by its idempotency key."""

    @abstractmethod
    def list_by_buyer(self, buyer_id: str) -> List[Order]:
        """Orders placed by one actor, in ledger order."""

    @abstractmethod
    def has_open_orders_for(self, product_id: str) -> bool:
        """Whether a non-terminal order references the product."""
