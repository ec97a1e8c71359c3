"""Decide which routine variables are due for auto-logging right now."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Optional

import structlog

from .base import RoutineBinding
from .timeinfo import TimeInfo, parse_time_of_day

logger = structlog.get_logger(__name__)

# Polling jitter allowance on either side of a scheduled time.
MATCH_TOLERANCE_MS = 60_000


@dataclass
class ProcessedKeys:
    """Suppression state for one auto-logger.

    ``today`` holds (variable_id, date) pairs already auto-logged; it caps each
    variable at one auto-log per date. ``this_minute`` holds
    (variable_id, date, HH:MM) triples and stops re-firing within a minute.
    """

    today: set[tuple[Any, str]] = field(default_factory=set)
    this_minute: set[tuple[Any, str, str]] = field(default_factory=set)
    last_minute: Optional[str] = None
    last_date: Optional[str] = None

    def is_processed_today(self, variable_id: Any, time_info: TimeInfo) -> bool:
        return (variable_id, time_info.current_date) in self.today

    def is_processed_this_minute(self, variable_id: Any, time_info: TimeInfo) -> bool:
        key = (variable_id, time_info.current_date, time_info.current_time_minute)
        return key in self.this_minute

    def mark_processed(self, variable_ids: Iterable[Any], time_info: TimeInfo) -> None:
        for variable_id in variable_ids:
            self.today.add((variable_id, time_info.current_date))
            self.this_minute.add(
                (variable_id, time_info.current_date, time_info.current_time_minute)
            )

    def clear_today(self) -> None:
        self.today.clear()

    def clear_this_minute(self) -> None:
        self.this_minute.clear()

    def roll_minute(self, time_info: TimeInfo) -> bool:
        """Clear the minute set if the clock minute changed since the last call."""
        minute = f"{time_info.current_date} {time_info.current_time_minute}"
        changed = self.last_minute is not None and minute != self.last_minute
        if changed:
            self.clear_this_minute()
        self.last_minute = minute
        return changed

    def roll_date(self, time_info: TimeInfo) -> bool:
        """Clear the day set if the date changed since the last call."""
        changed = self.last_date is not None and time_info.current_date != self.last_date
        if changed:
            self.clear_today()
        self.last_date = time_info.current_date
        return changed


def matches_time_slot(binding: RoutineBinding, time_info: TimeInfo) -> bool:
    """True if any of the binding's times is within tolerance of now.

    Distance is measured within a single day, so 23:59 does not match
    00:00:30 of the following day.
    """
    current_ms = parse_time_of_day(time_info.current_time)

    for slot in binding.times:
        try:
            slot_ms = parse_time_of_day(slot.time)
        except ValueError:
            logger.warning("invalid_routine_time", binding_id=binding.id, time=slot.time)
            continue
        if abs(current_ms - slot_ms) <= MATCH_TOLERANCE_MS:
            return True

    return False


def should_auto_log_variable(
    binding: RoutineBinding,
    time_info: TimeInfo,
    processed: ProcessedKeys,
) -> bool:
    """Whether ``binding`` should be auto-logged for ``time_info``."""
    if time_info.current_weekday not in binding.weekdays:
        return False

    if not matches_time_slot(binding, time_info):
        return False

    if processed.is_processed_today(binding.variable_id, time_info):
        return False

    if processed.is_processed_this_minute(binding.variable_id, time_info):
        return False

    return True


def select_due_variables(
    bindings: Iterable[RoutineBinding],
    time_info: TimeInfo,
    processed: ProcessedKeys,
) -> list[RoutineBinding]:
    """Bindings due now, in the order they were fetched."""
    return [b for b in bindings if should_auto_log_variable(b, time_info, processed)]
