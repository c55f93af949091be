"""Domain events for the order ledger."""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    """Raised when checkout produces a new order."""

    buyer_id: str = ""
    total_price: int = 0


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """Raised on every verification transition."""

    old_status: str = ""
    new_status: str = ""
    actor_id: str = ""
