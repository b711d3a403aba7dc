"""Mapping wall-clock instants to days of the week and daily time periods."""

from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, List, Optional, Sequence

from .models import TimePeriod, TimePeriodId, Weekday

DEFAULT_TIME_PERIODS: Sequence[tuple[TimePeriodId, str, str, str]] = (
    (TimePeriodId.MORNING, "Morning", "06:00", "09:00"),
    (TimePeriodId.DAYTIME, "Daytime", "09:00", "15:00"),
    (TimePeriodId.AFTER_SCHOOL, "After School", "15:00", "18:00"),
    (TimePeriodId.EVENING, "Evening", "18:00", "21:00"),
)


def parse_time_to_minutes(value: str) -> int:
    """Parse an ``HH:MM`` string into minutes since midnight."""

    try:
        hours_text, minutes_text = value.strip().split(":")
        hours, minutes = int(hours_text), int(minutes_text)
    except (AttributeError, ValueError) as exc:
        raise ValueError(f"Invalid time '{value}'; expected HH:MM.") from exc
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise ValueError(f"Invalid time '{value}'; expected HH:MM.")
    return hours * 60 + minutes


def minutes_since_midnight(moment: datetime) -> int:
    return moment.hour * 60 + moment.minute


def day_of_week(moment: datetime) -> Weekday:
    return Weekday.from_datetime(moment)


def in_window(current: int, start: int, end: int) -> bool:
    """Half-open ``[start, end)`` test that wraps past midnight when ``end < start``."""

    if end < start:
        return current >= start or current < end
    return start <= current < end


def is_within_period(moment: datetime, period: TimePeriod) -> bool:
    return in_window(
        minutes_since_midnight(moment),
        parse_time_to_minutes(period.start_time),
        parse_time_to_minutes(period.end_time),
    )


def active_period(moment: datetime, periods: Iterable[TimePeriod]) -> Optional[TimePeriod]:
    """Return the first period in ``periods`` that contains ``moment``.

    Overlapping periods are not validated; collection order decides which one
    wins.
    """

    for period in periods:
        if is_within_period(moment, period):
            return period
    return None


def date_key(moment: datetime | date) -> str:
    """Return the local calendar day of ``moment`` as ``YYYY-MM-DD``."""

    if isinstance(moment, datetime):
        moment = moment.date()
    return moment.isoformat()


def is_today(value: datetime | str, moment: datetime) -> bool:
    if isinstance(value, str):
        return value[:10] == date_key(moment)
    return date_key(value) == date_key(moment)


def format_time(value: str) -> str:
    """Format ``HH:MM`` for display, e.g. ``18:00`` becomes ``6:00 PM``."""

    total = parse_time_to_minutes(value)
    hours, minutes = divmod(total, 60)
    suffix = "PM" if hours >= 12 else "AM"
    display_hours = hours % 12 or 12
    return f"{display_hours}:{minutes:02d} {suffix}"


def default_time_periods(family_id: str) -> List[TimePeriod]:
    return [
        TimePeriod(id=period_id, family_id=family_id, display_name=name, start_time=start, end_time=end)
        for period_id, name, start, end in DEFAULT_TIME_PERIODS
    ]


def validate_period(period: TimePeriod) -> TimePeriod:
    parse_time_to_minutes(period.start_time)
    parse_time_to_minutes(period.end_time)
    return period


__all__ = [
    "DEFAULT_TIME_PERIODS",
    "active_period",
    "date_key",
    "day_of_week",
    "default_time_periods",
    "format_time",
    "in_window",
    "is_today",
    "is_within_period",
    "minutes_since_midnight",
    "parse_time_to_minutes",
    "validate_period",
]
