from datetime import date, datetime

import pytest

from chorely.models import TimePeriod, TimePeriodId, Weekday
from chorely.timewindows import (
    active_period,
    date_key,
    day_of_week,
    default_time_periods,
    format_time,
    in_window,
    is_today,
    is_within_period,
    parse_time_to_minutes,
)


def _period(start: str, end: str, period_id: TimePeriodId = TimePeriodId.EVENING) -> TimePeriod:
    return TimePeriod(id=period_id, family_id="default", display_name="Test", start_time=start, end_time=end)


def test_parse_time_to_minutes() -> None:
    assert parse_time_to_minutes("00:00") == 0
    assert parse_time_to_minutes("06:30") == 390
    assert parse_time_to_minutes("23:59") == 1439

    for bad in ("24:00", "7", "aa:bb", "12:60"):
        with pytest.raises(ValueError):
            parse_time_to_minutes(bad)


def test_day_of_week_counts_from_sunday() -> None:
    assert day_of_week(datetime(2024, 1, 1, 12, 0)) is Weekday.MONDAY
    assert day_of_week(datetime(2024, 1, 5, 12, 0)) is Weekday.FRIDAY
    assert day_of_week(datetime(2024, 1, 7, 12, 0)) is Weekday.SUNDAY
    assert int(Weekday.SUNDAY) == 0
    assert Weekday.SATURDAY.label == "Saturday"


def test_window_is_half_open() -> None:
    evening = _period("18:00", "21:00")

    assert not is_within_period(datetime(2024, 1, 1, 17, 59), evening)
    assert is_within_period(datetime(2024, 1, 1, 18, 0), evening)
    assert is_within_period(datetime(2024, 1, 1, 20, 59), evening)
    assert not is_within_period(datetime(2024, 1, 1, 21, 0), evening)


def test_window_wraps_past_midnight() -> None:
    late = _period("22:00", "02:00")

    assert is_within_period(datetime(2024, 1, 1, 23, 30), late)
    assert is_within_period(datetime(2024, 1, 2, 0, 0), late)
    assert is_within_period(datetime(2024, 1, 2, 1, 59), late)
    assert not is_within_period(datetime(2024, 1, 2, 2, 0), late)
    assert not is_within_period(datetime(2024, 1, 1, 21, 59), late)
    assert in_window(10, 1400, 30)


def test_default_periods_partition_the_school_day() -> None:
    periods = default_time_periods("default")
    assert [period.id for period in periods] == [
        TimePeriodId.MORNING,
        TimePeriodId.DAYTIME,
        TimePeriodId.AFTER_SCHOOL,
        TimePeriodId.EVENING,
    ]

    assert active_period(datetime(2024, 1, 1, 5, 59), periods) is None
    assert active_period(datetime(2024, 1, 1, 6, 0), periods).id is TimePeriodId.MORNING
    assert active_period(datetime(2024, 1, 1, 9, 0), periods).id is TimePeriodId.DAYTIME
    assert active_period(datetime(2024, 1, 1, 15, 0), periods).id is TimePeriodId.AFTER_SCHOOL
    assert active_period(datetime(2024, 1, 1, 19, 0), periods).id is TimePeriodId.EVENING
    assert active_period(datetime(2024, 1, 1, 21, 0), periods) is None


def test_first_matching_period_wins_when_periods_overlap() -> None:
    first = _period("08:00", "12:00", TimePeriodId.MORNING)
    second = _period("10:00", "14:00", TimePeriodId.DAYTIME)
    moment = datetime(2024, 1, 1, 11, 0)

    assert active_period(moment, [first, second]) is first
    assert active_period(moment, [second, first]) is second


def test_date_helpers() -> None:
    moment = datetime(2024, 3, 9, 23, 45)
    assert date_key(moment) == "2024-03-09"
    assert date_key(date(2024, 3, 9)) == "2024-03-09"
    assert is_today("2024-03-09T07:00:00", moment)
    assert not is_today(datetime(2024, 3, 10, 0, 1), moment)


def test_format_time_uses_twelve_hour_clock() -> None:
    assert format_time("18:00") == "6:00 PM"
    assert format_time("00:05") == "12:05 AM"
    assert format_time("12:30") == "12:30 PM"
