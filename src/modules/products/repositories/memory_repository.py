"""In-memory implementation of the Product repository.

Satisfies ``IProductRepository`` with a dict guarded by a re-entrant
lock.  Error handling follows the Null Object pattern: methods return
``None`` instead of raising, and the Service Layer decides how to
translate a missing entity.
"""

from __future__ import annotations

import threading
from typing import Dict, List, Optional

import structlog

from modules.products.models import Product
from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class ProductMemoryRepository(IProductRepository):
    """Process-lifetime product store."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._products: Dict[str, Product] = {}
        self._sequence = 0

    def get_by_id(self, id: str) -> Optional[Product]:
        with self._lock:
            return self._products.get(id)

    def list(self) -> List[Product]:
        with self._lock:
            return list(self._products.values())

    def save(self, entity: Product) -> Product:
        with self._lock:
            self._products[entity.id] = entity
        logger.info("product.saved", product_id=entity.id, code=entity.code)
        return entity

    def delete(self, id: str) -> bool:
        with self._lock:
            removed = self._products.pop(id, None)
        if removed is None:
            return False
        logger.info("product.deleted", product_id=id, code=removed.code)
        return True

    def count(self) -> int:
        with self._lock:
            return len(self._products)

    def adjust_stock(self, id: str, delta: int) -> Optional[int]:
        with self._lock:
            product = self._products.get(id)
            if product is None:
                return None
            product.stock = max(0, product.stock + delta)
            return product.stock

    def next_code(self) -> str:
        with self._lock:
            self._sequence += 1
            return f"P{self._sequence:03d}"
