"""Routine scheduling and auto-logging services package."""

from .auto_logger import RoutineAutoLogger
from .auto_logs import AutoLogOutcome, AutoLogService, describe, summarize
from .base import AutoLogResult, RoutineBinding, RoutineTime
from .client import AutoLogClient
from .matching import (
    MATCH_TOLERANCE_MS,
    ProcessedKeys,
    select_due_variables,
    should_auto_log_variable,
)
from .planned import BatchLogService, PlannedRoutineLog, generate_planned_routine_logs
from .repository import RoutineRepository, fetch_active_bindings
from .timeinfo import (
    TimeInfo,
    get_current_time_info,
    sunday_first_to_iso_weekday,
    zone_clock,
)

__all__ = [
    "RoutineAutoLogger",
    "AutoLogOutcome",
    "AutoLogService",
    "describe",
    "summarize",
    "AutoLogResult",
    "RoutineBinding",
    "RoutineTime",
    "AutoLogClient",
    "MATCH_TOLERANCE_MS",
    "ProcessedKeys",
    "select_due_variables",
    "should_auto_log_variable",
    "BatchLogService",
    "PlannedRoutineLog",
    "generate_planned_routine_logs",
    "RoutineRepository",
    "fetch_active_bindings",
    "TimeInfo",
    "get_current_time_info",
    "sunday_first_to_iso_weekday",
    "zone_clock",
]
