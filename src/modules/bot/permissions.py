"""Webhook caller verification.

The platform echoes the secret registered with ``setWebhook`` in the
``X-Telegram-Bot-Api-Secret-Token`` header of every delivery.  Actor ids
inside an update are only trusted once the header matches.

Fail Closed: when ``BOT_WEBHOOK_SECRET`` is set, a missing or different
header is answered with 403 and the update is never dispatched.  An empty
setting disables the check (local development).
"""

from __future__ import annotations

import hmac

import structlog
from django.conf import settings
from rest_framework.permissions import BasePermission

logger = structlog.get_logger(__name__)

SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"


class HasWebhookSecret(BasePermission):
    message = "Invalid webhook secret."

    def has_permission(self, request, view) -> bool:
        expected = getattr(settings, "BOT_WEBHOOK_SECRET", "")
        if not expected:
            return True
        received = request.headers.get(SECRET_HEADER, "")
        if hmac.compare_digest(received.encode(), expected.encode()):
            return True
        logger.warning(
            "webhook.secret_mismatch",
            header_present=bool(received),
            remote_addr=request.META.get("REMOTE_ADDR"),
        )
        return False
