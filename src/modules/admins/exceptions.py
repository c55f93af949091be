"""Admin workflow exceptions."""

from __future__ import annotations

from shared.domain.exceptions import InvalidInput, PrivilegeError


class PermissionDenied(PrivilegeError):
    """The actor is not an admin (or not the owner, for owner-only actions)."""


class InvalidAdminTarget(InvalidInput):
    """The actor id given to grant/revoke is malformed or is the owner."""
