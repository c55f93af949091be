"""Error taxonomy shared by every bounded context.

Each module raises concrete subclasses from its own ``exceptions.py``.
The bot dispatcher catches these base classes and translates them into
notices for the actor, the same way API views translate service errors
into HTTP responses.
"""

from __future__ import annotations


class InvalidInput(Exception):
    """Input could not be parsed or validated; the actor is re-prompted."""


class NotFound(Exception):
    """A referenced product, order or actor does not exist."""


class OutOfStock(Exception):
    """Not enough live stock for the requested quantity."""


class PrivilegeError(Exception):
    """The actor is not allowed to perform a privileged operation."""


class AlreadyProcessed(Exception):
    """A status transition was attempted from the wrong predecessor state."""
