"""Order, OrderLine and StatusChange entities.

Business rules implemented:
- Invalid status transitions rejected (enforced at service layer via
  ``can_transition_to``).
- Each status change appends a ``StatusChange`` record.
- Idempotency via ``idempotency_key`` (the checkout nonce).
- Invoice number generated as human-readable identifier.
- ``OrderLine`` snapshots name and unit price at checkout time, and
  ``total_price`` is fixed at creation: neither is ever recomputed from
  the live catalog.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from modules.orders.constants import TERMINAL_STATES, VALID_TRANSITIONS, OrderStatus
from shared.domain.events import DomainEventMixin


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class OrderLine:
    """Immutable line item copied from the cart at checkout."""

    product_id: str
    name: str
    unit_price: int
    quantity: int

    @property
    def subtotal(self) -> int:
        return self.unit_price * self.quantity

    def __str__(self) -> str:
        return f"{self.name} x{self.quantity}"


@dataclass(frozen=True)
class StatusChange:
    """Append-only audit record of a single transition.

    ``old_status`` is ``None`` for the creation record.
    """

    old_status: Optional[str]
    new_status: str
    actor_id: str
    notes: str = ""
    created_at: datetime = field(default_factory=_now)


@dataclass(eq=False)
class Order(DomainEventMixin):
    """Order aggregate root.

    ``invoice`` is assigned by the repository on creation (format:
    ``INV-YYYYMMDD-XXXXXX``) and is the key used in button payloads,
    notifications and the exported report.
    """

    buyer_id: str
    buyer_name: str
    lines: Tuple[OrderLine, ...]
    total_price: int
    invoice: str = ""
    status: str = OrderStatus.PENDING
    payment_proof: str = ""
    notes: str = ""
    verified_by: Optional[str] = None
    verified_at: Optional[datetime] = None
    idempotency_key: Optional[str] = None
    created_at: datetime = field(default_factory=_now)
    history: List[StatusChange] = field(default_factory=list)

    # ------------------------------------------------------------------
    # State Machine helpers
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        """Return ``True`` if the order is in a terminal state."""
        return self.status in TERMINAL_STATES

    def can_transition_to(self, new_status: str) -> bool:
        """Check whether transitioning to *new_status* is valid."""
        allowed = VALID_TRANSITIONS.get(self.status, set())
        return new_status in allowed

    # ------------------------------------------------------------------
    # Invoice generation
    # ------------------------------------------------------------------

    @staticmethod
    def generate_invoice(now: Optional[datetime] = None) -> str:
        """Generate a human-readable invoice number: ``INV-YYYYMMDD-XXXXXX``."""
        now = now or _now()
        suffix = secrets.token_hex(3).upper()
        return f"INV-{now:%Y%m%d}-{suffix}"

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    @property
    def items_summary(self) -> str:
        return ", ".join(str(line) for line in self.lines)

    def includes_product(self, product_id: str) -> bool:
        return any(line.product_id == product_id for line in self.lines)

    def __str__(self) -> str:
        return f"{self.invoice} ({self.status})"
