"""Cart domain exceptions."""

from __future__ import annotations

from shared.domain.exceptions import InvalidInput, NotFound, OutOfStock


class ProductOutOfStock(OutOfStock):
    """Adding the product would exceed its live stock."""


class CartLineNotFound(NotFound):
    """The product is not in the actor's cart."""


class InvalidQuantity(InvalidInput):
    """Quantities must be positive."""
