from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Iterable

import holidays as pyholidays

DEFAULT_OPERATING_WEEKDAYS = (0, 1, 2, 3, 4)
_HOLIDAY_CACHE: dict[tuple[str, int], set[date]] = {}


@dataclass(frozen=True, order=True)
class TimeSlot:
    """Half-open hourly interval ``[start, end)`` on a single calendar day."""

    start: time
    end: time

    def __post_init__(self) -> None:
        for value in (self.start, self.end):
            if value.minute or value.second or value.microsecond:
                raise ValueError(f"Slot bounds must be on the hour, got {value.isoformat()}.")
        if self.start >= self.end:
            raise ValueError("Slot start time must be earlier than end time.")

    @property
    def duration_hours(self) -> int:
        return self.end.hour - self.start.hour

    def label(self) -> str:
        return f"{self.start.strftime('%H:%M')}-{self.end.strftime('%H:%M')}"

    @staticmethod
    def from_hours(start_hour: int, end_hour: int) -> "TimeSlot":
        return TimeSlot(time(start_hour), time(end_hour))

    @staticmethod
    def from_strings(start: str, end: str) -> "TimeSlot":
        return TimeSlot(_parse_time_of_day(start), _parse_time_of_day(end))


def slots_overlap(a: TimeSlot, b: TimeSlot) -> bool:
    """Return True when two slots share any time.

    Slots are half-open, so touching boundaries (10:00-11:00 and
    11:00-12:00) do not overlap.
    """
    return a.start < b.end and b.start < a.end


def is_past(day: date, time_of_day: time, now: datetime) -> bool:
    """Same-day slots starting at or before the current hour count as past."""
    today = now.date()
    if day < today:
        return True
    return day == today and time_of_day.hour <= now.hour


def is_operating_day(
    day: date,
    operating_weekdays: Iterable[int] = DEFAULT_OPERATING_WEEKDAYS,
    holiday_country: str | None = None,
) -> bool:
    if day.weekday() not in set(operating_weekdays):
        return False
    if holiday_country:
        return not _is_public_holiday(day, holiday_country)
    return True


def hourly_grid(open_hour: int, close_hour: int) -> list[TimeSlot]:
    if not 0 <= open_hour < close_hour <= 23:
        raise ValueError(f"Invalid operating hours {open_hour}-{close_hour}.")
    return [TimeSlot.from_hours(hour, hour + 1) for hour in range(open_hour, close_hour)]


def _parse_time_of_day(value: str) -> time:
    try:
        return datetime.strptime(value.strip(), "%H:%M").time()
    except ValueError as error:
        raise ValueError(f"Expected time of day as HH:MM, got {value!r}.") from error


def _is_public_holiday(day: date, country: str) -> bool:
    key = (country.upper(), day.year)
    if key not in _HOLIDAY_CACHE:
        holiday_map = pyholidays.country_holidays(key[0], years=[day.year])
        _HOLIDAY_CACHE[key] = set(holiday_map.keys())
    return day in _HOLIDAY_CACHE[key]
