"""Process-wide routine auto-logger and its startup/shutdown hooks."""

from typing import Any

import structlog

from app.config import get_settings

from .auto_logger import RoutineAutoLogger
from .timeinfo import zone_clock

logger = structlog.get_logger(__name__)
settings = get_settings()


def log_auto_logs_created(summary: dict[str, Any]) -> None:
    logger.info(
        "routine_auto_logs_reported",
        auto_logs_created=summary.get("auto_logs_created"),
        skipped=summary.get("skipped"),
        errors=summary.get("errors"),
    )


def log_auto_log_error(error: Exception) -> None:
    logger.warning("routine_auto_log_error_reported", error=str(error))


# Global instance
routine_auto_logger = RoutineAutoLogger(
    user_id=settings.auto_logger_user_id,
    check_interval_ms=settings.auto_logger_check_interval_ms,
    enabled=settings.auto_logger_enabled,
    clock=zone_clock(settings.auto_logger_timezone),
    on_auto_log_created=log_auto_logs_created,
    on_error=log_auto_log_error,
)


async def start_background_tasks():
    """Start the auto-logger when it is enabled and has a user."""
    await routine_auto_logger.update()
    logger.info(
        "routine_background_tasks_started",
        active=routine_auto_logger.is_active,
        user_id=routine_auto_logger.user_id or None,
    )


async def stop_background_tasks():
    """Stop the auto-logger, letting an in-flight tick finish."""
    await routine_auto_logger.stop(wait=True)
    logger.info("routine_background_tasks_stopped")
