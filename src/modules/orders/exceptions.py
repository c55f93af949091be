"""Order domain exceptions.

Raised by the Service Layer when business rules are violated.
The dispatcher catches the shared base classes and translates them into
notices for the actor.
"""

from __future__ import annotations

from shared.domain.exceptions import (
    AlreadyProcessed,
    InvalidInput,
    NotFound,
    PrivilegeError,
)


class OrderNotFound(NotFound):
    """The requested invoice does not exist."""


class OrderAlreadyProcessed(AlreadyProcessed):
    """The order is not in the predecessor state the action requires."""


class EmptyCart(InvalidInput):
    """Checkout was attempted with nothing in the cart."""


class NotOrderOwner(PrivilegeError):
    """Only the buyer or an admin may confirm receipt of an order."""


class OrderLedgerImmutable(AlreadyProcessed):
    """Orders are recorded permanently; the ledger has no delete."""
