"""Product domain exceptions.

Raised by the Service Layer when business rules are violated.
The dispatcher catches the shared base classes and translates them into
notices for the actor.
"""

from __future__ import annotations

from shared.domain.exceptions import InvalidInput, NotFound


class ProductNotFound(NotFound):
    """The requested product does not exist or has been removed."""


class ProductInUse(InvalidInput):
    """The product is referenced by an order that is not yet terminal."""
