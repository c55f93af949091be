"""Bot boundary exceptions."""

from __future__ import annotations

from shared.domain.exceptions import InvalidInput


class MalformedUpdate(InvalidInput):
    """The webhook payload is not a valid platform update."""


class MessengerError(Exception):
    """The messaging platform refused or failed an outbound call."""
