from django.http import HttpRequest, JsonResponse
from django.utils import timezone

import structlog

from modules.bot.container import get_bot

logger = structlog.get_logger()


def health_check(request: HttpRequest) -> JsonResponse:
    """Liveness probe exposing read-only store counters."""
    try:
        stats = get_bot().get_stats()
    except Exception:
        logger.exception("health_check_failure")
        return JsonResponse(
            {"status": "unhealthy", "timestamp": timezone.now().isoformat()},
            status=503,
        )

    logger.info("health_check_completed", status="healthy", **stats)

    return JsonResponse(
        {
            "status": "healthy",
            "timestamp": timezone.now().isoformat(),
            "stats": stats,
        },
        status=200,
    )
