"""Unit tests for the Order verification state machine.

Covers:
- Model-level FSM helpers (can_transition_to, is_terminal).
- Every pair of statuses against VALID_TRANSITIONS.
- Invoice format.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone

import pytest

from modules.orders.constants import (
    OPEN_STATES,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    OrderStatus,
)
from modules.orders.models import Order, OrderLine

pytestmark = pytest.mark.unit

ALLOWED = {
    (OrderStatus.PENDING, OrderStatus.PAID),
    (OrderStatus.PENDING, OrderStatus.REJECTED),
    (OrderStatus.PAID, OrderStatus.SENT),
    (OrderStatus.PAID, OrderStatus.COMPLETED),
    (OrderStatus.SENT, OrderStatus.COMPLETED),
}


def _order(status):
    return Order(
        buyer_id="1",
        buyer_name="Ayu",
        lines=(
            OrderLine(product_id="p1", name="Netflix", unit_price=10000, quantity=2),
        ),
        total_price=20000,
        status=status,
    )


@pytest.mark.parametrize("current", list(OrderStatus))
@pytest.mark.parametrize("target", list(OrderStatus))
def test_transition_table(current, target):
    assert _order(current).can_transition_to(target) is ((current, target) in ALLOWED)


def test_table_covers_every_status():
    assert set(VALID_TRANSITIONS) == set(OrderStatus)


@pytest.mark.parametrize("status", list(OrderStatus))
def test_terminal_states_have_no_exit(status):
    order = _order(status)
    assert order.is_terminal is (status in TERMINAL_STATES)
    if order.is_terminal:
        assert VALID_TRANSITIONS[status] == set()


def test_open_and_terminal_partition_statuses():
    assert OPEN_STATES | TERMINAL_STATES == set(OrderStatus)
    assert not OPEN_STATES & TERMINAL_STATES


def test_invoice_format():
    invoice = Order.generate_invoice(datetime(2026, 5, 17, tzinfo=timezone.utc))
    assert re.fullmatch(r"INV-20260517-[0-9A-F]{6}", invoice)


def test_line_subtotal():
    line = OrderLine(product_id="p1", name="Netflix", unit_price=10000, quantity=2)
    assert line.subtotal == 20000
    assert str(line) == "Netflix x2"
