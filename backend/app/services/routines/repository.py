"""Read and manage stored routines and their variable bindings."""

from collections.abc import Iterable
from datetime import datetime
from typing import Any, Optional

import structlog
from sqlalchemy.orm import Session, joinedload

from app.core.exceptions import NotFoundError, ValidationError
from app.database import SessionLocal
from app.models import Routine, RoutineVariable, Variable

from .base import RoutineBinding, RoutineTime
from .timeinfo import normalize_time_of_day

logger = structlog.get_logger(__name__)

ISO_WEEKDAYS = frozenset(range(1, 8))


def _clean_weekdays(values: Optional[Iterable[Any]]) -> frozenset[int]:
    result = set()
    for value in values or []:
        try:
            day = int(value)
        except (TypeError, ValueError):
            continue
        if day in ISO_WEEKDAYS:
            result.add(day)
    return frozenset(result)


def _clean_times(values: Optional[Iterable[Any]]) -> tuple[RoutineTime, ...]:
    times = (RoutineTime.from_dict(v) for v in values or [])
    return tuple(t for t in times if t is not None)


def binding_from_model(routine: Routine, rv: RoutineVariable) -> RoutineBinding:
    """Flatten a stored routine variable into a binding.

    Effective weekdays are the variable's own weekdays, narrowed to the
    routine's weekdays when the routine defines any.
    """
    weekdays = _clean_weekdays(rv.weekdays)
    routine_days = _clean_weekdays(routine.weekdays)
    if routine_days:
        weekdays = weekdays & routine_days

    variable = rv.variable
    return RoutineBinding(
        id=rv.id,
        routine_id=routine.id,
        routine_name=routine.routine_name,
        variable_id=rv.variable_id,
        variable_name=variable.label if variable else str(rv.variable_id),
        variable_slug=variable.slug if variable else None,
        weekdays=weekdays,
        times=_clean_times(rv.times),
        default_value=rv.default_value,
        default_unit=rv.default_unit,
    )


class RoutineRepository:
    """Database access for routines owned by a user."""

    def __init__(self, db: Session):
        self.db = db

    def get_active_bindings(self, user_id: str) -> list[RoutineBinding]:
        """All bindings of the user's active routines, in routine then display order."""
        routines = (
            self.db.query(Routine)
            .options(joinedload(Routine.variables).joinedload(RoutineVariable.variable))
            .filter(Routine.user_id == user_id, Routine.is_active.is_(True))
            .order_by(Routine.id)
            .all()
        )
        return [binding_from_model(r, rv) for r in routines for rv in r.variables]

    def list_routines(self, user_id: str) -> list[Routine]:
        return (
            self.db.query(Routine)
            .filter(Routine.user_id == user_id)
            .order_by(Routine.id)
            .all()
        )

    def get_routine(self, user_id: str, routine_id: int) -> Routine:
        routine = (
            self.db.query(Routine)
            .filter(Routine.id == routine_id, Routine.user_id == user_id)
            .first()
        )
        if not routine:
            raise NotFoundError("Routine", routine_id)
        return routine

    def create_routine(
        self,
        user_id: str,
        routine_name: str,
        weekdays: Iterable[int],
        variables: Iterable[dict[str, Any]],
        notes: Optional[str] = None,
        is_active: bool = True,
    ) -> Routine:
        """Create a routine with its variable bindings.

        Raises:
            ValidationError: On weekdays outside 1..7 or malformed times.
            NotFoundError: If a referenced variable does not exist.
        """
        routine = Routine(
            user_id=user_id,
            routine_name=routine_name,
            notes=notes,
            is_active=is_active,
            weekdays=self._validate_weekdays("weekdays", weekdays),
        )

        for order, entry in enumerate(variables):
            variable_id = entry.get("variable_id")
            if not self.db.query(Variable).filter(Variable.id == variable_id).first():
                raise NotFoundError("Variable", variable_id)

            routine.variables.append(
                RoutineVariable(
                    variable_id=variable_id,
                    default_value=(
                        None if entry.get("default_value") is None else str(entry["default_value"])
                    ),
                    default_unit=entry.get("default_unit"),
                    weekdays=self._validate_weekdays(
                        "variables.weekdays", entry.get("weekdays") or routine.weekdays
                    ),
                    times=self._validate_times(entry.get("times") or []),
                    display_order=order,
                )
            )

        self.db.add(routine)
        self.db.commit()
        self.db.refresh(routine)

        logger.info(
            "routine_created",
            user_id=user_id,
            routine_id=routine.id,
            variables=len(routine.variables),
        )
        return routine

    def set_active(self, user_id: str, routine_id: int, is_active: bool) -> Routine:
        routine = self.get_routine(user_id, routine_id)
        routine.is_active = is_active
        routine.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(routine)
        return routine

    def delete_routine(self, user_id: str, routine_id: int) -> None:
        routine = self.get_routine(user_id, routine_id)
        self.db.delete(routine)
        self.db.commit()
        logger.info("routine_deleted", user_id=user_id, routine_id=routine_id)

    @staticmethod
    def _validate_weekdays(field: str, weekdays: Iterable[Any]) -> list[int]:
        days = []
        for value in weekdays or []:
            if isinstance(value, bool) or not isinstance(value, int) or value not in ISO_WEEKDAYS:
                raise ValidationError(field, f"weekday must be an integer 1..7, got {value!r}")
            if value not in days:
                days.append(value)
        return sorted(days)

    @staticmethod
    def _validate_times(times: Iterable[Any]) -> list[dict[str, Any]]:
        result = []
        for entry in times:
            slot = RoutineTime.from_dict(entry)
            if slot is None:
                raise ValidationError("variables.times", f"missing time in {entry!r}")
            try:
                normalize_time_of_day(slot.time)
            except ValueError as e:
                raise ValidationError("variables.times", str(e))
            result.append({"time": slot.time.strip(), "name": slot.name})
        return result


def fetch_active_bindings(user_id: str) -> list[RoutineBinding]:
    """Load the user's active bindings in a fresh session.

    Any failure is logged and reported as "nothing due".
    """
    db = SessionLocal()
    try:
        return RoutineRepository(db).get_active_bindings(user_id)
    except Exception as e:
        logger.error("routine_fetch_failed", user_id=user_id, error=str(e))
        return []
    finally:
        db.close()
