"""Value types shared by the routine services."""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class RoutineTime:
    """A scheduled time of day for a routine variable."""

    time: str  # HH:MM or HH:MM:SS
    name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> Optional["RoutineTime"]:
        """Build from a stored ``{"time": ..., "name": ...}`` entry.

        Returns None for entries without a usable time.
        """
        if isinstance(data, str):
            return cls(time=data)
        if not isinstance(data, dict):
            return None
        value = data.get("time") or data.get("time_of_day")
        if not value:
            return None
        return cls(time=value, name=data.get("name") or data.get("time_name"))

    def to_dict(self) -> dict[str, Any]:
        return {"time": self.time, "name": self.name}


@dataclass(frozen=True)
class RoutineBinding:
    """A (routine, time slots, variable) binding as read by the auto-logger.

    ``weekdays`` uses ISO numbering, 1=Monday .. 7=Sunday. A binding with no
    weekdays or no times is never eligible to fire.
    """

    id: Any
    variable_id: Any
    variable_name: str
    weekdays: frozenset[int] = frozenset()
    times: tuple[RoutineTime, ...] = ()
    default_value: Any = None
    default_unit: Optional[str] = None
    routine_id: Any = None
    routine_name: Optional[str] = None
    variable_slug: Optional[str] = None

    @property
    def is_schedulable(self) -> bool:
        return bool(self.weekdays) and bool(self.times)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "routine_id": self.routine_id,
            "routine_name": self.routine_name,
            "variable_id": self.variable_id,
            "variable_name": self.variable_name,
            "variable_slug": self.variable_slug,
            "weekdays": sorted(self.weekdays),
            "times": [t.to_dict() for t in self.times],
            "default_value": self.default_value,
            "default_unit": self.default_unit,
        }


@dataclass
class AutoLogResult:
    """Outcome of one auto-logging evaluation."""

    success: bool
    summary: Optional[dict[str, Any]] = None
    error: Optional[str] = None
    due_variable_ids: list[Any] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"success": self.success}
        if self.summary is not None:
            result["summary"] = self.summary
        if self.error is not None:
            result["error"] = self.error
        return result
