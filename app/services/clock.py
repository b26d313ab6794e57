from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Protocol

from app.services.time_window import ensure_utc


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(UTC)


class FixedClock:
    """Clock pinned to one instant, movable from tests."""

    def __init__(self, instant: datetime) -> None:
        self._instant = ensure_utc(instant)

    def now(self) -> datetime:
        return self._instant

    def set(self, instant: datetime) -> None:
        self._instant = ensure_utc(instant)

    def advance(self, *, minutes: int = 0, days: int = 0) -> None:
        self._instant += timedelta(days=days, minutes=minutes)
