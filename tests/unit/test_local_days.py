"""Tests for local calendar-day arithmetic."""

from datetime import UTC, date, datetime, time
from zoneinfo import ZoneInfo

import pytest

from src.core.errors import ConfigurationError, InvalidTimezoneError
from src.core.local_days import (
    day_key,
    format_time_of_day,
    iso_week_bounds,
    local_day,
    local_day_start,
    local_now,
    parse_day_key,
    parse_time_of_day,
    resolve_timezone,
    shift_local_day,
    today,
)


NEW_YORK = ZoneInfo("America/New_York")
BERLIN = ZoneInfo("Europe/Berlin")
TOKYO = ZoneInfo("Asia/Tokyo")


@pytest.mark.unit
class TestResolveTimezone:
    def test_known_zone(self) -> None:
        assert resolve_timezone("Europe/Berlin") == BERLIN

    def test_strips_whitespace(self) -> None:
        assert resolve_timezone("  Asia/Tokyo ") == TOKYO

    @pytest.mark.parametrize("name", ["", "   ", None, "Mars/Olympus_Mons"])
    def test_invalid_zone_raises(self, name: str | None) -> None:
        with pytest.raises(InvalidTimezoneError):
            resolve_timezone(name)

    def test_invalid_zone_is_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError):
            resolve_timezone("Not/AZone")


@pytest.mark.unit
class TestLocalDay:
    def test_instant_after_local_midnight_is_next_day(self) -> None:
        instant = datetime(2024, 3, 10, 23, 30, tzinfo=UTC)

        assert local_day(instant, TOKYO) == date(2024, 3, 11)
        assert local_day(instant, NEW_YORK) == date(2024, 3, 10)

    def test_naive_instant_is_treated_as_utc(self) -> None:
        assert local_day(datetime(2024, 3, 10, 23, 30), TOKYO) == date(2024, 3, 11)

    def test_today_uses_given_now(self) -> None:
        now = datetime(2024, 6, 1, 22, 0, tzinfo=UTC)

        assert today(BERLIN, now) == date(2024, 6, 2)
        assert local_now(BERLIN, now).hour == 0


@pytest.mark.unit
class TestShiftLocalDay:
    def test_across_spring_forward(self) -> None:
        assert shift_local_day(date(2024, 3, 10), NEW_YORK, 1) == date(2024, 3, 11)
        assert shift_local_day(date(2024, 3, 11), NEW_YORK, -1) == date(2024, 3, 10)

    def test_across_fall_back(self) -> None:
        assert shift_local_day(date(2024, 11, 3), NEW_YORK, 1) == date(2024, 11, 4)
        assert shift_local_day(date(2024, 11, 4), NEW_YORK, -1) == date(2024, 11, 3)

    def test_leap_day_and_week_jumps(self) -> None:
        assert shift_local_day(date(2024, 2, 28), BERLIN, 1) == date(2024, 2, 29)
        assert shift_local_day(date(2024, 3, 28), BERLIN, 7) == date(2024, 4, 4)

    def test_zero_delta(self) -> None:
        assert shift_local_day(date(2024, 3, 31), BERLIN, 0) == date(2024, 3, 31)


@pytest.mark.unit
def test_local_day_start_is_utc_instant_of_local_midnight() -> None:
    assert local_day_start(date(2024, 1, 15), BERLIN) == datetime(2024, 1, 14, 23, 0, tzinfo=UTC)
    assert local_day_start(date(2024, 7, 15), BERLIN) == datetime(2024, 7, 14, 22, 0, tzinfo=UTC)


@pytest.mark.unit
def test_day_key_round_trip() -> None:
    assert day_key(date(2024, 1, 5)) == "2024-01-05"
    assert parse_day_key("2024-01-05") == date(2024, 1, 5)


@pytest.mark.unit
class TestIsoWeekBounds:
    def test_week_follows_user_timezone(self) -> None:
        # Sunday evening in UTC is already Monday in Berlin
        instant = datetime(2024, 1, 14, 23, 30, tzinfo=UTC)

        assert iso_week_bounds(instant, UTC) == (date(2024, 1, 8), date(2024, 1, 14))
        assert iso_week_bounds(instant, BERLIN) == (date(2024, 1, 15), date(2024, 1, 21))

    def test_week_spanning_dst_change(self) -> None:
        instant = datetime(2024, 3, 31, 12, 0, tzinfo=UTC)

        assert iso_week_bounds(instant, BERLIN) == (date(2024, 3, 25), date(2024, 3, 31))


@pytest.mark.unit
class TestParseTimeOfDay:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [("09:00", time(9, 0)), ("9:05", time(9, 5)), (" 23:59 ", time(23, 59)), ("00:00", time(0, 0))],
    )
    def test_valid(self, value: str, expected: time) -> None:
        assert parse_time_of_day(value) == expected

    @pytest.mark.parametrize("value", [None, "", "24:00", "12:60", "noon", "12-30", "1230", "12:3"])
    def test_invalid_raises(self, value: str | None) -> None:
        with pytest.raises(ConfigurationError):
            parse_time_of_day(value)

    def test_format_pads(self) -> None:
        assert format_time_of_day(time(9, 5)) == "09:05"
