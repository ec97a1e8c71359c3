"""Tests for wall-clock and weekday helpers."""

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from app.services.routines.timeinfo import (
    get_current_time_info,
    normalize_time_of_day,
    parse_time_of_day,
    seconds_until_midnight,
    sunday_first_to_iso_weekday,
    zone_clock,
)


class TestWeekdayConversion:
    """Sunday-first numbering to ISO weekdays."""

    def test_sunday_becomes_seven(self):
        assert sunday_first_to_iso_weekday(0) == 7

    @pytest.mark.parametrize("day", [1, 2, 3, 4, 5, 6])
    def test_monday_to_saturday_unchanged(self, day: int):
        assert sunday_first_to_iso_weekday(day) == day

    @pytest.mark.parametrize("day", [-1, 7, 8])
    def test_out_of_range_rejected(self, day: int):
        with pytest.raises(ValueError):
            sunday_first_to_iso_weekday(day)


class TestCurrentTimeInfo:
    """Snapshot of the local clock."""

    def test_fields_for_wednesday_morning(self):
        info = get_current_time_info(datetime(2024, 1, 3, 7, 5, 9))
        assert info.current_time == "07:05:09"
        assert info.current_time_minute == "07:05"
        assert info.current_weekday == 3
        assert info.current_date == "2024-01-03"

    def test_sunday_is_weekday_seven(self):
        info = get_current_time_info(datetime(2024, 1, 7, 12, 0, 0))
        assert info.current_weekday == 7

    def test_matches_isoweekday_for_a_full_week(self):
        for day in range(1, 8):
            now = datetime(2024, 1, day, 9, 0)
            assert get_current_time_info(now).current_weekday == now.isoweekday()

    def test_reads_wall_clock_without_argument(self):
        info = get_current_time_info()
        assert 1 <= info.current_weekday <= 7
        assert len(info.current_time) == 8


class TestTimeOfDay:
    """Parsing HH:MM[:SS] strings."""

    def test_minutes_only_reads_as_zero_seconds(self):
        assert parse_time_of_day("08:00") == parse_time_of_day("08:00:00") == 8 * 3_600_000

    def test_seconds_included(self):
        assert parse_time_of_day("08:00:59") == 8 * 3_600_000 + 59_000

    def test_midnight(self):
        assert parse_time_of_day("00:00") == 0

    @pytest.mark.parametrize("value", ["", "25:00", "08:61", "eight", "08:00:00:00"])
    def test_invalid_values(self, value: str):
        with pytest.raises(ValueError):
            parse_time_of_day(value)

    def test_non_string_rejected(self):
        with pytest.raises(ValueError):
            parse_time_of_day(800)

    def test_normalize(self):
        assert normalize_time_of_day("7:30") == "07:30:00"
        assert normalize_time_of_day("23:59:59") == "23:59:59"


def test_seconds_until_midnight():
    assert seconds_until_midnight(datetime(2024, 1, 1, 23, 59, 0)) == 60
    assert seconds_until_midnight(datetime(2024, 1, 1, 0, 0, 0)) == 86_400


class TestZoneClock:
    def test_named_zone(self):
        now = zone_clock("America/New_York")()
        assert now.tzinfo == ZoneInfo("America/New_York")

    def test_empty_uses_server_time(self):
        assert zone_clock("") is datetime.now
        assert zone_clock(None) is datetime.now

    def test_unknown_zone(self):
        with pytest.raises(ValueError):
            zone_clock("Mars/Olympus_Mons")

    def test_midnight_in_zone(self):
        now = datetime(2024, 1, 5, 23, 0, tzinfo=ZoneInfo("America/New_York"))
        assert seconds_until_midnight(now) == 3600
