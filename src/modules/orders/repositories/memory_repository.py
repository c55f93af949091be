"""In-memory implementation of the Order repository.

Satisfies ``IOrderRepository`` with an insertion-ordered dict guarded by
a re-entrant lock.  ``get_for_update`` plays the role of a row lock:
the caller validates the transition and mutates the order while no other
thread can touch the ledger.

Domain events collected on the aggregate are published to the event
bus on ``save``, after the change is visible to readers.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

import structlog

from modules.orders.constants import INVOICE_MAX_RETRIES, OPEN_STATES
from modules.orders.exceptions import OrderLedgerImmutable
from modules.orders.models import Order
from modules.orders.repositories.interfaces import IOrderRepository
from shared.domain.bus import IEventBus
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)


class OrderMemoryRepository(IOrderRepository):
    """Process-lifetime order ledger."""

    def __init__(self, bus: Optional[IEventBus] = None) -> None:
        self._lock = threading.RLock()
        self._orders: Dict[str, Order] = {}
        self._bus = bus if bus is not None else event_bus

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, order: Order) -> Order:
        with self._lock:
            for _attempt in range(INVOICE_MAX_RETRIES):
                candidate = Order.generate_invoice(order.created_at)
                if candidate not in self._orders:
                    order.invoice = candidate
                    break
            else:
                raise RuntimeError(
                    f"Failed to generate unique invoice after "
                    f"{INVOICE_MAX_RETRIES} attempts"
                )
            self._orders[order.invoice] = order

        logger.info(
            "order.created",
            invoice=order.invoice,
            line_count=len(order.lines),
            total_price=order.total_price,
        )
        self._publish(order)
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        with self._lock:
            return self._orders.get(id.strip().upper())

    @contextmanager
    def get_for_update(self, id: str) -> Iterator[Optional[Order]]:
        with self._lock:
            yield self._orders.get(id.strip().upper())

    def list(self) -> List[Order]:
        with self._lock:
            return list(self._orders.values())

    def list_by_buyer(self, buyer_id: str) -> List[Order]:
        with self._lock:
            return [o for o in self._orders.values() if o.buyer_id == buyer_id]

    def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        with self._lock:
            for order in self._orders.values():
                if order.idempotency_key == key:
                    return order
        return None

    def has_open_orders_for(self, product_id: str) -> bool:
        with self._lock:
            return any(
                order.status in OPEN_STATES and order.includes_product(product_id)
                for order in self._orders.values()
            )

    def count(self) -> int:
        with self._lock:
            return len(self._orders)

    # ------------------------------------------------------------------
    # Save / Delete (IRepository contract)
    # ------------------------------------------------------------------

    def save(self, entity: Order) -> Order:
        with self._lock:
            self._orders[entity.invoice] = entity
        logger.info("order.saved", invoice=entity.invoice, status=entity.status)
        self._publish(entity)
        return entity

    def delete(self, id: str) -> bool:
        raise OrderLedgerImmutable(f"Order {id} cannot be deleted from the ledger.")

    def _publish(self, order: Order) -> None:
        events = order.domain_events
        order.clear_domain_events()
        for event in events:
            self._bus.publish(event)
