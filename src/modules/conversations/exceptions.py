"""Conversation domain exceptions."""

from __future__ import annotations

from shared.domain.exceptions import InvalidInput


class NotANumber(InvalidInput):
    """A numeric step received text that is not a non-negative integer."""


class EmptyInput(InvalidInput):
    """A text step received an empty message."""


class ScratchMismatch(RuntimeError):
    """A step tried to read scratch written by a different flow."""


class PhotoRequired(InvalidInput):
    """A step that expects a photo received something else."""
