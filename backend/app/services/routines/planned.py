"""Planned routine logs: expand bindings over a date range and batch-log them."""

from collections import defaultdict
from dataclasses import asdict, dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Iterable, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import ValidationError
from app.models import VariableLog

from .base import RoutineBinding
from .timeinfo import normalize_time_of_day, sunday_first_to_iso_weekday

logger = structlog.get_logger(__name__)

MAX_PLANNED_DAYS = 62


@dataclass
class PlannedRoutineLog:
    id: str
    routine_id: Any
    routine_name: Optional[str]
    variable_id: Any
    variable_name: str
    variable_slug: Optional[str]
    default_value: Any
    default_unit: str
    date: str
    time_of_day: str
    time_name: str
    weekday: int
    enabled: bool = True

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def generate_planned_routine_logs(
    bindings: Iterable[RoutineBinding],
    start_date: date,
    end_date: date,
) -> list[PlannedRoutineLog]:
    """One planned log per (day, binding, time slot) scheduled in the range.

    Both ends of the range are inclusive.
    """
    if end_date < start_date:
        raise ValidationError("end", "end date must not be before start date")
    if (end_date - start_date).days >= MAX_PLANNED_DAYS:
        raise ValidationError("end", f"range is limited to {MAX_PLANNED_DAYS} days")

    bindings = list(bindings)
    planned = []
    day = start_date
    while day <= end_date:
        weekday = sunday_first_to_iso_weekday(int(day.strftime("%w")))
        date_string = day.isoformat()

        for binding in bindings:
            if weekday not in binding.weekdays:
                continue
            for slot in binding.times:
                planned.append(
                    PlannedRoutineLog(
                        id=f"{binding.routine_id}_{binding.variable_id}_{date_string}_{slot.time}",
                        routine_id=binding.routine_id,
                        routine_name=binding.routine_name,
                        variable_id=binding.variable_id,
                        variable_name=binding.variable_name,
                        variable_slug=binding.variable_slug,
                        default_value=binding.default_value,
                        default_unit=binding.default_unit or "",
                        date=date_string,
                        time_of_day=slot.time,
                        time_name=slot.name or "",
                        weekday=weekday,
                    )
                )

        day += timedelta(days=1)

    return planned


def _group(logs: Iterable[PlannedRoutineLog], key) -> dict[str, list[PlannedRoutineLog]]:
    grouped: dict[str, list[PlannedRoutineLog]] = defaultdict(list)
    for log in logs:
        grouped[str(key(log))].append(log)
    return dict(grouped)


def group_by_routine(logs: Iterable[PlannedRoutineLog]) -> dict[str, list[PlannedRoutineLog]]:
    return _group(logs, lambda log: log.routine_id)


def group_by_date(logs: Iterable[PlannedRoutineLog]) -> dict[str, list[PlannedRoutineLog]]:
    return _group(logs, lambda log: log.date)


def group_by_variable(logs: Iterable[PlannedRoutineLog]) -> dict[str, list[PlannedRoutineLog]]:
    return _group(logs, lambda log: log.variable_id)


GROUPERS = {
    "routine": group_by_routine,
    "date": group_by_date,
    "variable": group_by_variable,
}


def _numeric_value(value: Any) -> str:
    """Default values are stored as numbers; unparseable ones become 0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return "0"
    return str(int(number)) if number.is_integer() else str(number)


class BatchLogService:
    """Writes a batch of planned routine logs for a user."""

    def __init__(self, db: Session):
        self.db = db

    def log_planned(self, user_id: str, logs: Iterable[dict[str, Any]]) -> dict[str, Any]:
        """Insert each planned log unless the variable already has a log that day."""
        created = 0
        skipped = 0
        errors: list[str] = []

        for entry in logs:
            name = entry.get("variable_name") or entry.get("variable_id")
            try:
                log_date = date.fromisoformat(entry["date"])
                time_of_day = time.fromisoformat(normalize_time_of_day(entry["time_of_day"]))
                variable_id = entry["variable_id"]
            except (KeyError, TypeError, ValueError) as e:
                errors.append(f"Error processing log for {name}: {e}")
                continue

            if self._log_exists(user_id, variable_id, log_date):
                skipped += 1
                continue

            routine_name = entry.get("routine_name")
            try:
                self.db.add(
                    VariableLog(
                        user_id=user_id,
                        variable_id=variable_id,
                        display_value=_numeric_value(entry.get("default_value")),
                        display_unit=entry.get("default_unit") or None,
                        source="routine",
                        logged_at=datetime.combine(log_date, time_of_day),
                        notes=(
                            f"Auto-generated from routine: {routine_name}"
                            if routine_name
                            else "Auto-generated from routine"
                        ),
                        context={"routine_id": entry.get("routine_id")},
                    )
                )
                self.db.commit()
            except SQLAlchemyError as e:
                self.db.rollback()
                errors.append(f"Failed to create log for {name}: {e}")
                continue
            created += 1

        logger.info(
            "routine_batch_logged", user_id=user_id, created=created, skipped=skipped, errors=len(errors)
        )

        message = f"Created {created} logs, skipped {skipped} duplicates"
        if errors:
            message += f", with {len(errors)} errors"
        return {
            "success": True,
            "created": created,
            "skipped": skipped,
            "errors": errors or None,
            "message": message,
        }

    def _log_exists(self, user_id: str, variable_id: Any, log_date: date) -> bool:
        return (
            self.db.query(VariableLog.id)
            .filter(
                VariableLog.user_id == user_id,
                VariableLog.variable_id == variable_id,
                VariableLog.logged_at >= datetime.combine(log_date, time.min),
                VariableLog.logged_at <= datetime.combine(log_date, time.max),
            )
            .first()
            is not None
        )
