"""Control and inspect the background routine auto-logger."""

from typing import Literal

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_current_user_id
from app.core.exceptions import AuthorizationError
from app.core.logging import get_logger
from app.services.routines.background_tasks import routine_auto_logger

logger = get_logger(__name__)

router = APIRouter()


def _require_owner(user_id: str) -> None:
    if routine_auto_logger.user_id and routine_auto_logger.user_id != user_id:
        raise AuthorizationError("Auto-logger is assigned to another user")


@router.get("/status")
async def get_status(user_id: str = Depends(get_current_user_id)):
    """Current auto-logger state."""
    _require_owner(user_id)
    return routine_auto_logger.status()


@router.post("/check")
async def check_now(user_id: str = Depends(get_current_user_id)):
    """Run one evaluation immediately."""
    _require_owner(user_id)
    result = await routine_auto_logger.check_routines()
    if result is None:
        return {"success": False, "skipped": True, "status": routine_auto_logger.status()}
    return result.to_dict()


@router.post("/start")
async def start(user_id: str = Depends(get_current_user_id)):
    """Enable the auto-logger for the current user."""
    _require_owner(user_id)
    await routine_auto_logger.update(enabled=True, user_id=user_id)
    logger.info("auto_logger_enabled_via_api", user_id=user_id)
    return routine_auto_logger.status()


@router.post("/stop")
async def stop(user_id: str = Depends(get_current_user_id)):
    """Disable the auto-logger."""
    _require_owner(user_id)
    await routine_auto_logger.update(enabled=False)
    logger.info("auto_logger_disabled_via_api", user_id=user_id)
    return routine_auto_logger.status()


@router.post("/clear")
async def clear(
    scope: Literal["today", "minute", "all"] = Query(default="all"),
    user_id: str = Depends(get_current_user_id),
):
    """Reset the duplicate-suppression state."""
    _require_owner(user_id)
    if scope in ("today", "all"):
        routine_auto_logger.clear_processed_today()
    if scope in ("minute", "all"):
        routine_auto_logger.clear_processed_this_minute()
    return {"status": "cleared", "scope": scope}
