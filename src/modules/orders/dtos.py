"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
DTOs are immutable (``frozen=True``).

- ``CreateOrderLineDTO``: a snapshotted cart line.
- ``CreateOrderDTO``: input for order creation (nested lines).
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator


class CreateOrderLineDTO(BaseModel):
    """Immutable DTO for a single order line.

    ``name`` and ``unit_price`` come from the cart snapshot, not from the
    live catalog.
    """

    model_config = ConfigDict(frozen=True)

    product_id: str
    name: str
    unit_price: int
    quantity: int

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v

    @field_validator("unit_price")
    @classmethod
    def price_must_be_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Price cannot be negative.")
        return v


class CreateOrderDTO(BaseModel):
    """Immutable DTO for order creation requests.

    Validates:
    - ``lines`` must contain at least one line.
    """

    model_config = ConfigDict(frozen=True)

    buyer_id: str
    buyer_name: str = ""
    lines: List[CreateOrderLineDTO]
    payment_proof: str = ""
    notes: str = ""
    idempotency_key: Optional[str] = None

    @field_validator("lines")
    @classmethod
    def lines_must_not_be_empty(
        cls, v: List[CreateOrderLineDTO]
    ) -> List[CreateOrderLineDTO]:
        if not v:
            raise ValueError("Order must have at least one line.")
        return v

    @property
    def total_price(self) -> int:
        return sum(line.unit_price * line.quantity for line in self.lines)
