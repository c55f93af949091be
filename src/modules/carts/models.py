"""Cart line value held in a session's cart."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class CartLine:
    """One product in a cart.

    ``name`` and ``unit_price`` are a **snapshot** taken when the product
    was first added, so a later catalog edit does not change what the
    buyer was shown.  ``quantity`` is always at least 1; a line reaching
    zero is removed from the cart instead of being kept.
    """

    product_id: str
    name: str
    unit_price: int
    quantity: int = 1

    @property
    def subtotal(self) -> int:
        return self.unit_price * self.quantity
