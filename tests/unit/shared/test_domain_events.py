"""Unit tests for domain events registration on entities."""

from __future__ import annotations

import pytest

from modules.orders.constants import OrderStatus
from modules.orders.events import OrderCreated, OrderStatusChanged
from modules.orders.exceptions import OrderLedgerImmutable
from modules.orders.models import Order, OrderLine
from modules.orders.repositories import OrderMemoryRepository
from shared.domain.exceptions import AlreadyProcessed
from shared.infrastructure.bus import InMemoryEventBus

pytestmark = pytest.mark.unit


def _order():
    return Order(
        buyer_id="3000",
        buyer_name="Ayu",
        lines=(
            OrderLine(product_id="p1", name="Netflix", unit_price=15000, quantity=1),
        ),
        total_price=15000,
        status=OrderStatus.PENDING,
    )


def test_order_registers_and_clears_domain_events():
    order = _order()

    assert order.domain_events == []

    event = OrderCreated(aggregate_id="INV-20240101-ABC123")
    order.add_domain_event(event)

    assert order.domain_events == [event]
    assert event.event_name == "OrderCreated"

    order.clear_domain_events()
    assert order.domain_events == []


def test_events_are_immutable():
    event = OrderStatusChanged(aggregate_id="INV-1", old_status="PENDING")
    with pytest.raises(AttributeError):
        event.old_status = "PAID"


def test_repository_publishes_on_save_and_clears():
    bus = InMemoryEventBus()
    published = []

    class CapturingHandler:
        def handle(self, event) -> None:
            published.append(event)

    bus.subscribe(OrderCreated, CapturingHandler())
    repo = OrderMemoryRepository(bus=bus)

    order = repo.create(_order())
    order.add_domain_event(OrderCreated(aggregate_id=order.invoice))
    repo.save(order)
    repo.save(order)

    assert [e.aggregate_id for e in published] == [order.invoice]
    assert order.domain_events == []


def test_repository_refuses_to_delete_orders():
    repo = OrderMemoryRepository(bus=InMemoryEventBus())
    order = repo.create(_order())

    with pytest.raises(OrderLedgerImmutable):
        repo.delete(order.invoice)

    assert issubclass(OrderLedgerImmutable, AlreadyProcessed)
    assert repo.get_by_id(order.invoice) is order
