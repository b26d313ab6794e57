"""Time-of-day, day-of-week and half-open interval helpers.

Wall-clock values belong to a provider timezone; every comparison between
instants happens on timezone-aware UTC datetimes.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta, tzinfo
from enum import IntEnum
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60
DEFAULT_TIMEZONE = "UTC"
_TIME_OF_DAY_PATTERN = re.compile(r"^(?P<hour>\d{1,2}):(?P<minute>\d{2})(?::(?P<second>\d{2}))?$")


class DayOfWeek(IntEnum):
    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6

    @classmethod
    def from_date(cls, value: date) -> DayOfWeek:
        # isoweekday: Monday=1 .. Sunday=7
        return cls(value.isoweekday() % 7)

    @classmethod
    def parse(cls, value: int | str) -> DayOfWeek:
        try:
            return cls(int(value))
        except (TypeError, ValueError) as exc:
            raise ValueError(f"day_of_week must be an integer between 0 and 6, got {value!r}.") from exc


@dataclass(frozen=True, order=True)
class TimeOfDay:
    """Minutes since local midnight."""

    minutes: int

    def __post_init__(self) -> None:
        if not 0 <= self.minutes < MINUTES_PER_DAY:
            raise ValueError(f"Time of day out of range: {self.minutes} minutes.")

    @classmethod
    def parse(cls, value: str | time | TimeOfDay) -> TimeOfDay:
        if isinstance(value, TimeOfDay):
            return value
        if isinstance(value, time):
            return cls(value.hour * 60 + value.minute)
        match = _TIME_OF_DAY_PATTERN.match(str(value).strip())
        if not match:
            raise ValueError(f"Time of day must use the HH:MM format, got {value!r}.")
        hour = int(match.group("hour"))
        minute = int(match.group("minute"))
        if hour > 23 or minute > 59:
            raise ValueError(f"Time of day must use the HH:MM format, got {value!r}.")
        return cls(hour * 60 + minute)

    def to_time(self) -> time:
        return time(hour=self.minutes // 60, minute=self.minutes % 60)

    def __str__(self) -> str:
        return f"{self.minutes // 60:02d}:{self.minutes % 60:02d}"


def intervals_overlap(
    first_start: datetime,
    first_end: datetime,
    second_start: datetime,
    second_end: datetime,
) -> bool:
    """Half-open intersection test: touching endpoints do not overlap."""
    return first_start < second_end and second_start < first_end


def split_interval(start: datetime, end: datetime, minutes: int) -> Iterator[tuple[datetime, datetime]]:
    if minutes <= 0:
        raise ValueError("minutes must be positive.")
    step = timedelta(minutes=minutes)
    current = start
    while current + step <= end:
        yield current, current + step
        current += step


def resolve_timezone(name: str | None) -> tzinfo:
    cleaned = (name or "").strip()
    if not cleaned:
        return ZoneInfo(DEFAULT_TIMEZONE)
    try:
        return ZoneInfo(cleaned)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r, falling back to %s", cleaned, DEFAULT_TIMEZONE)
        return ZoneInfo(DEFAULT_TIMEZONE)


def is_valid_timezone(name: str) -> bool:
    cleaned = name.strip()
    if not cleaned:
        return False
    try:
        ZoneInfo(cleaned)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def local_to_utc(day: date, time_of_day: TimeOfDay, zone: tzinfo) -> datetime:
    return datetime.combine(day, time_of_day.to_time(), tzinfo=zone).astimezone(UTC)


def local_today(now_utc: datetime, zone: tzinfo) -> date:
    return ensure_utc(now_utc).astimezone(zone).date()


def local_day_range_utc(first_day: date, days: int, zone: tzinfo) -> tuple[datetime, datetime]:
    """UTC bounds of ``days`` consecutive local calendar days starting at ``first_day``."""
    start = datetime.combine(first_day, time.min, tzinfo=zone).astimezone(UTC)
    end = datetime.combine(first_day + timedelta(days=days), time.min, tzinfo=zone).astimezone(UTC)
    return start, end
