"""Webhook endpoint.

The platform posts one update per request.  Every well-formed update is
answered with ``200 {"ok": true}``, including duplicates and updates the
bot ignores, so the platform stops retrying; a malformed body gets
``400``.  Deliveries without the configured secret header are refused
with ``403`` (see ``modules.bot.permissions``).
"""

from __future__ import annotations

import structlog
from rest_framework import status
from rest_framework.exceptions import ParseError
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from modules.bot.container import get_bot
from modules.bot.dispatcher import ERROR_MALFORMED
from modules.bot.permissions import HasWebhookSecret

logger = structlog.get_logger(__name__)


class WebhookView(APIView):
    authentication_classes: list = []
    permission_classes = [HasWebhookSecret]

    def post(self, request: Request) -> Response:
        try:
            raw = request.data
        except ParseError:
            logger.warning("webhook.invalid_json")
            return Response(
                {"ok": False, "error": ERROR_MALFORMED},
                status=status.HTTP_400_BAD_REQUEST,
            )

        result = get_bot().handle_update(raw)
        if result.error == ERROR_MALFORMED:
            return Response(result.as_dict(), status=status.HTTP_400_BAD_REQUEST)
        return Response(result.as_dict(), status=status.HTTP_200_OK)
