from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any

from app.services.time_window import DEFAULT_TIMEZONE, DayOfWeek, TimeOfDay, ensure_utc


class BookingStatus(StrEnum):
    BOOKED = "booked"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ServiceOffering:
    id: str
    user_id: str
    name: str
    duration_minutes: int
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "duration_minutes": self.duration_minutes,
            "description": self.description,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> ServiceOffering:
        return cls(
            id=str(record.get("_id", "")),
            user_id=str(record.get("user_id", "")),
            name=str(record.get("name", "")),
            duration_minutes=int(record.get("duration_minutes", 0)),
            description=record.get("description"),
            created_at=_optional_utc(record.get("created_at")),
            updated_at=_optional_utc(record.get("updated_at")),
        )


@dataclass(frozen=True)
class Provider:
    id: str
    service_id: str
    name: str
    timezone: str = DEFAULT_TIMEZONE
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "service_id": self.service_id,
            "name": self.name,
            "timezone": self.timezone,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Provider:
        return cls(
            id=str(record.get("_id", "")),
            service_id=str(record.get("service_id", "")),
            name=str(record.get("name", "")),
            timezone=str(record.get("timezone") or DEFAULT_TIMEZONE),
            created_at=_optional_utc(record.get("created_at")),
            updated_at=_optional_utc(record.get("updated_at")),
        )


@dataclass(frozen=True)
class WorkingHourWindow:
    id: str
    provider_id: str
    day_of_week: DayOfWeek
    start: TimeOfDay
    end: TimeOfDay

    def __post_init__(self) -> None:
        if not self.start < self.end:
            raise ValueError("Working hour start must be before its end.")

    def overlaps(self, other: WorkingHourWindow) -> bool:
        return (
            self.day_of_week == other.day_of_week
            and self.start < other.end
            and other.start < self.end
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "provider_id": self.provider_id,
            "day_of_week": int(self.day_of_week),
            "start_time": str(self.start),
            "end_time": str(self.end),
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> WorkingHourWindow:
        return cls(
            id=str(record.get("_id", "")),
            provider_id=str(record.get("provider_id", "")),
            day_of_week=DayOfWeek.parse(record.get("day_of_week")),
            start=TimeOfDay(int(record.get("start_minutes", 0))),
            end=TimeOfDay(int(record.get("end_minutes", 0))),
        )


@dataclass(frozen=True)
class Booking:
    id: str
    user_id: str
    provider_id: str
    service_id: str
    start_at: datetime
    end_at: datetime
    status: BookingStatus = BookingStatus.BOOKED
    cancelled_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status == BookingStatus.BOOKED and self.cancelled_at is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "provider_id": self.provider_id,
            "service_id": self.service_id,
            "start_at": self.start_at,
            "end_at": self.end_at,
            "status": self.status.value,
            "cancelled_at": self.cancelled_at,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Booking:
        return cls(
            id=str(record.get("_id", "")),
            user_id=str(record.get("user_id", "")),
            provider_id=str(record.get("provider_id", "")),
            service_id=str(record.get("service_id", "")),
            start_at=ensure_utc(record["start_at"]),
            end_at=ensure_utc(record["end_at"]),
            status=BookingStatus(record.get("status", BookingStatus.BOOKED)),
            cancelled_at=_optional_utc(record.get("cancelled_at")),
            created_at=_optional_utc(record.get("created_at")),
            updated_at=_optional_utc(record.get("updated_at")),
        )


@dataclass(frozen=True)
class Slot:
    date: str
    start: str
    end: str
    start_utc: datetime
    end_utc: datetime

    def to_dict(self) -> dict[str, str]:
        return {"date": self.date, "start": self.start, "end": self.end}


def _optional_utc(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return ensure_utc(value)
    return None
