"""Wall-clock helpers for routine scheduling.

Routine weekdays are stored on the ISO scale (1=Monday .. 7=Sunday). Clocks
and databases that number days Sunday-first (0=Sunday .. 6=Saturday) must go
through ``sunday_first_to_iso_weekday``.
"""

from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Callable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

MS_PER_SECOND = 1000
MS_PER_MINUTE = 60 * MS_PER_SECOND
MS_PER_HOUR = 60 * MS_PER_MINUTE


@dataclass(frozen=True)
class TimeInfo:
    """Snapshot of local wall-clock time used for one evaluation."""

    current_time: str  # HH:MM:SS
    current_time_minute: str  # HH:MM
    current_weekday: int  # 1=Monday .. 7=Sunday
    current_date: str  # YYYY-MM-DD
    now: datetime

    def to_dict(self) -> dict:
        return {
            "current_time": self.current_time,
            "current_time_minute": self.current_time_minute,
            "current_weekday": self.current_weekday,
            "current_date": self.current_date,
            "now": self.now.isoformat(),
        }


def sunday_first_to_iso_weekday(day: int) -> int:
    """Convert a Sunday-first weekday (0=Sunday) to ISO numbering (7=Sunday).

    Sunday maps to 7; Monday..Saturday (1..6) are unchanged.
    """
    if not 0 <= day <= 6:
        raise ValueError(f"Sunday-first weekday must be in 0..6, got {day}")
    return 7 if day == 0 else day


def get_current_time_info(now: Optional[datetime] = None) -> TimeInfo:
    """Describe ``now`` (local wall-clock time when omitted)."""
    if now is None:
        now = datetime.now()

    return TimeInfo(
        current_time=now.strftime("%H:%M:%S"),
        current_time_minute=now.strftime("%H:%M"),
        current_weekday=sunday_first_to_iso_weekday(int(now.strftime("%w"))),
        current_date=now.strftime("%Y-%m-%d"),
        now=now,
    )


def normalize_time_of_day(value: str) -> str:
    """Return ``value`` as HH:MM:SS, reading HH:MM as whole minutes."""
    parsed = _parse(value)
    return parsed.strftime("%H:%M:%S")


def parse_time_of_day(value: str) -> int:
    """Milliseconds since midnight for an ``HH:MM`` or ``HH:MM:SS`` string.

    Raises:
        ValueError: If the string is not a valid time of day.
    """
    parsed = _parse(value)
    return (
        parsed.hour * MS_PER_HOUR
        + parsed.minute * MS_PER_MINUTE
        + parsed.second * MS_PER_SECOND
    )


def _parse(value: str) -> time:
    if not isinstance(value, str):
        raise ValueError(f"Time of day must be a string, got {type(value).__name__}")

    text = value.strip()
    for fmt in ("%H:%M:%S", "%H:%M"):
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue

    raise ValueError(f"Invalid time of day: {value!r}")


def seconds_until_midnight(now: datetime) -> float:
    """Seconds from ``now`` until the next local midnight."""
    tomorrow = datetime.combine(now.date() + timedelta(days=1), time.min, tzinfo=now.tzinfo)
    return (tomorrow - now).total_seconds()


def zone_clock(timezone_name: Optional[str] = None) -> Callable[[], datetime]:
    """Wall-clock for an IANA timezone, or server local time when empty.

    Raises:
        ValueError: If the timezone name is unknown.
    """
    if not timezone_name:
        return datetime.now

    try:
        zone = ZoneInfo(timezone_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {timezone_name!r}") from e

    def now() -> datetime:
        return datetime.now(zone)

    return now
