"""Create routine auto-logs for a date.

Server side of the endpoint the auto-logger calls. Every active time slot of
every binding scheduled on the date's weekday gets one ``variable_logs`` row,
unless that slot was already auto-logged or the user logged the variable
manually that day.
"""

from dataclasses import asdict, dataclass
from datetime import date, datetime, time
from typing import Any, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from app.models import Routine, RoutineLogHistory, RoutineVariable, VariableLog

from .repository import binding_from_model
from .timeinfo import normalize_time_of_day, sunday_first_to_iso_weekday

logger = structlog.get_logger(__name__)

ALREADY_LOGGED = "Auto-log already exists"
MANUAL_LOG_EXISTS = "Manual log exists - skipped"
BENIGN_SKIPS = frozenset({ALREADY_LOGGED, MANUAL_LOG_EXISTS})


@dataclass
class AutoLogOutcome:
    """Result for one routine time slot."""

    routine_id: int
    routine_name: str
    time_name: Optional[str]
    time_of_day: str
    variable_id: int
    variable_name: str
    auto_logged: bool
    error_message: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def iso_weekday_of(target_date: date) -> int:
    return sunday_first_to_iso_weekday(int(target_date.strftime("%w")))


def _slot_sort_key(slot) -> str:
    try:
        return normalize_time_of_day(slot.time)
    except ValueError:
        return slot.time


def summarize(outcomes: list[AutoLogOutcome]) -> dict[str, int]:
    created = sum(1 for o in outcomes if o.auto_logged)
    errors = [
        o for o in outcomes
        if o.error_message and o.error_message not in BENIGN_SKIPS
    ]
    return {
        "total_routines_processed": len(outcomes),
        "auto_logs_created": created,
        "skipped": len(outcomes) - created,
        "errors": len(errors),
    }


def describe(summary: dict[str, int]) -> str:
    message = f"Successfully created {summary['auto_logs_created']} auto-logs"
    if summary["skipped"] > 0:
        message += f", skipped {summary['skipped']}"
    if summary["errors"] > 0:
        message += f", with {summary['errors']} errors"
    return message


class AutoLogService:
    """Creates auto-logs from stored routines."""

    def __init__(self, db: Session):
        self.db = db

    def create_routine_auto_logs(
        self, target_date: date, user_id: Optional[str] = None
    ) -> list[AutoLogOutcome]:
        """Create auto-logs for ``target_date``.

        Limited to ``user_id``'s routines when given.
        """
        weekday = iso_weekday_of(target_date)

        query = (
            self.db.query(Routine)
            .options(joinedload(Routine.variables).joinedload(RoutineVariable.variable))
            .filter(Routine.is_active.is_(True))
        )
        if user_id:
            query = query.filter(Routine.user_id == user_id)

        outcomes: list[AutoLogOutcome] = []
        for routine in query.order_by(Routine.id).all():
            created_for_routine = False
            for rv in routine.variables:
                binding = binding_from_model(routine, rv)
                if weekday not in binding.weekdays:
                    continue

                slots = sorted(binding.times, key=_slot_sort_key)
                for slot in slots:
                    outcome = self._log_slot(routine, rv, binding.variable_name, slot, target_date)
                    outcomes.append(outcome)
                    created_for_routine = created_for_routine or outcome.auto_logged

            if created_for_routine:
                routine.last_auto_logged = datetime.utcnow()
                self.db.commit()

        summary = summarize(outcomes)
        logger.info(
            "routine_auto_logs_created",
            user_id=user_id,
            target_date=target_date.isoformat(),
            **summary,
        )
        return outcomes

    def _log_slot(self, routine, rv, variable_name, slot, target_date) -> AutoLogOutcome:
        outcome = AutoLogOutcome(
            routine_id=routine.id,
            routine_name=routine.routine_name,
            time_name=slot.name,
            time_of_day=slot.time,
            variable_id=rv.variable_id,
            variable_name=variable_name,
            auto_logged=False,
        )

        try:
            time_of_day = normalize_time_of_day(slot.time)
        except ValueError as e:
            outcome.error_message = str(e)
            return outcome

        if self._history_exists(rv.id, target_date, time_of_day):
            outcome.error_message = ALREADY_LOGGED
            return outcome

        if self._manual_log_exists(routine.user_id, rv.variable_id, target_date):
            outcome.error_message = MANUAL_LOG_EXISTS
            return outcome

        logged_at = datetime.combine(target_date, time.fromisoformat(time_of_day))
        try:
            self.db.add(
                VariableLog(
                    user_id=routine.user_id,
                    variable_id=rv.variable_id,
                    display_value=rv.default_value,
                    display_unit=rv.default_unit,
                    source="routine",
                    logged_at=logged_at,
                    notes=routine.notes,
                    context={"routine_id": routine.id, "routine_variable_id": rv.id},
                )
            )
            self.db.add(
                RoutineLogHistory(
                    routine_id=routine.id,
                    routine_variable_id=rv.id,
                    user_id=routine.user_id,
                    variable_id=rv.variable_id,
                    log_date=target_date,
                    time_of_day=time_of_day,
                    auto_logged_value=rv.default_value,
                    auto_logged_unit=rv.default_unit,
                )
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning(
                "routine_auto_log_insert_failed",
                routine_id=routine.id,
                variable_id=rv.variable_id,
                error=str(e),
            )
            outcome.error_message = str(e)
            return outcome

        outcome.auto_logged = True
        return outcome

    def _history_exists(self, routine_variable_id: int, log_date: date, time_of_day: str) -> bool:
        return (
            self.db.query(RoutineLogHistory.id)
            .filter(
                RoutineLogHistory.routine_variable_id == routine_variable_id,
                RoutineLogHistory.log_date == log_date,
                RoutineLogHistory.time_of_day == time_of_day,
            )
            .first()
            is not None
        )

    def _manual_log_exists(self, user_id: str, variable_id: int, log_date: date) -> bool:
        day_start = datetime.combine(log_date, time.min)
        day_end = datetime.combine(log_date, time.max)
        return (
            self.db.query(VariableLog.id)
            .filter(
                VariableLog.user_id == user_id,
                VariableLog.variable_id == variable_id,
                VariableLog.source == "manual",
                VariableLog.logged_at >= day_start,
                VariableLog.logged_at <= day_end,
            )
            .first()
            is not None
        )
