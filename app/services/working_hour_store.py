from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import UTC, datetime
from functools import lru_cache
from typing import Any

from app.core.config import Settings
from app.services.booking_models import WorkingHourWindow
from app.services.store_utils import create_mongo_database, parse_object_id, serialize_record
from app.services.time_window import DayOfWeek, TimeOfDay


class WorkingHourStore(ABC):
    @abstractmethod
    def get_window(self, window_id: str) -> WorkingHourWindow | None:
        raise NotImplementedError

    @abstractmethod
    def list_windows(
        self,
        *,
        provider_id: str | None = None,
        day_of_week: DayOfWeek | None = None,
    ) -> list[WorkingHourWindow]:
        """Windows ordered by provider, day of week and start time."""
        raise NotImplementedError

    @abstractmethod
    def create_window(
        self,
        *,
        provider_id: str,
        day_of_week: DayOfWeek,
        start: TimeOfDay,
        end: TimeOfDay,
    ) -> WorkingHourWindow:
        raise NotImplementedError

    @abstractmethod
    def update_window(
        self,
        window_id: str,
        *,
        provider_id: str,
        day_of_week: DayOfWeek,
        start: TimeOfDay,
        end: TimeOfDay,
    ) -> WorkingHourWindow | None:
        raise NotImplementedError

    @abstractmethod
    def delete_window(self, window_id: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def delete_windows_for_provider(self, provider_id: str) -> int:
        raise NotImplementedError


class InMemoryWorkingHourStore(WorkingHourStore):
    def __init__(self) -> None:
        self._next_id = 1
        self._windows_by_id: dict[str, dict[str, Any]] = {}

    def get_window(self, window_id: str) -> WorkingHourWindow | None:
        record = self._windows_by_id.get(window_id)
        if not record:
            return None
        return WorkingHourWindow.from_record(record)

    def list_windows(
        self,
        *,
        provider_id: str | None = None,
        day_of_week: DayOfWeek | None = None,
    ) -> list[WorkingHourWindow]:
        records = [
            record
            for record in self._windows_by_id.values()
            if (provider_id is None or record.get("provider_id") == provider_id)
            and (day_of_week is None or record.get("day_of_week") == int(day_of_week))
        ]
        records.sort(key=_window_sort_key)
        return [WorkingHourWindow.from_record(record) for record in records]

    def create_window(
        self,
        *,
        provider_id: str,
        day_of_week: DayOfWeek,
        start: TimeOfDay,
        end: TimeOfDay,
    ) -> WorkingHourWindow:
        window_id = str(self._next_id)
        self._next_id += 1
        now = datetime.now(UTC)
        record = {
            "_id": window_id,
            **_build_window_payload(provider_id, day_of_week, start, end),
            "created_at": now,
        }
        # Validates start < end before the record is kept.
        window = WorkingHourWindow.from_record(record)
        self._windows_by_id[window_id] = record
        return window

    def update_window(
        self,
        window_id: str,
        *,
        provider_id: str,
        day_of_week: DayOfWeek,
        start: TimeOfDay,
        end: TimeOfDay,
    ) -> WorkingHourWindow | None:
        record = self._windows_by_id.get(window_id)
        if not record:
            return None
        updated = {**record, **_build_window_payload(provider_id, day_of_week, start, end)}
        window = WorkingHourWindow.from_record(updated)
        self._windows_by_id[window_id] = updated
        return window

    def delete_window(self, window_id: str) -> bool:
        return self._windows_by_id.pop(window_id, None) is not None

    def delete_windows_for_provider(self, provider_id: str) -> int:
        window_ids = [
            window_id
            for window_id, record in self._windows_by_id.items()
            if record.get("provider_id") == provider_id
        ]
        for window_id in window_ids:
            del self._windows_by_id[window_id]
        return len(window_ids)


class MongoWorkingHourStore(WorkingHourStore):
    def __init__(
        self,
        *,
        uri: str,
        db_name: str,
        collection_name: str,
        connect_timeout_ms: int = 2000,
    ) -> None:
        database = create_mongo_database(
            uri=uri,
            db_name=db_name,
            connect_timeout_ms=connect_timeout_ms,
        )
        self._windows = database[collection_name]
        self._windows.create_index([("provider_id", 1), ("day_of_week", 1), ("start_minutes", 1)])

    def get_window(self, window_id: str) -> WorkingHourWindow | None:
        object_id = parse_object_id(window_id)
        if object_id is None:
            return None
        record = serialize_record(self._windows.find_one({"_id": object_id}))
        if not record:
            return None
        return WorkingHourWindow.from_record(record)

    def list_windows(
        self,
        *,
        provider_id: str | None = None,
        day_of_week: DayOfWeek | None = None,
    ) -> list[WorkingHourWindow]:
        query: dict[str, Any] = {}
        if provider_id is not None:
            query["provider_id"] = provider_id
        if day_of_week is not None:
            query["day_of_week"] = int(day_of_week)
        cursor = self._windows.find(query).sort(
            [("provider_id", 1), ("day_of_week", 1), ("start_minutes", 1)],
        )
        return [WorkingHourWindow.from_record(serialize_record(record) or {}) for record in cursor]

    def create_window(
        self,
        *,
        provider_id: str,
        day_of_week: DayOfWeek,
        start: TimeOfDay,
        end: TimeOfDay,
    ) -> WorkingHourWindow:
        payload = _build_window_payload(provider_id, day_of_week, start, end)
        WorkingHourWindow.from_record(payload)
        payload["created_at"] = datetime.now(UTC)
        insert_result = self._windows.insert_one(payload)
        created = serialize_record(self._windows.find_one({"_id": insert_result.inserted_id}))
        if not created:
            raise RuntimeError("Unable to read created working hour.")
        return WorkingHourWindow.from_record(created)

    def update_window(
        self,
        window_id: str,
        *,
        provider_id: str,
        day_of_week: DayOfWeek,
        start: TimeOfDay,
        end: TimeOfDay,
    ) -> WorkingHourWindow | None:
        from pymongo import ReturnDocument

        object_id = parse_object_id(window_id)
        if object_id is None:
            return None
        payload = _build_window_payload(provider_id, day_of_week, start, end)
        WorkingHourWindow.from_record(payload)
        record = self._windows.find_one_and_update(
            {"_id": object_id},
            {"$set": payload},
            return_document=ReturnDocument.AFTER,
        )
        serialized = serialize_record(record)
        if not serialized:
            return None
        return WorkingHourWindow.from_record(serialized)

    def delete_window(self, window_id: str) -> bool:
        object_id = parse_object_id(window_id)
        if object_id is None:
            return False
        return self._windows.delete_one({"_id": object_id}).deleted_count > 0

    def delete_windows_for_provider(self, provider_id: str) -> int:
        return self._windows.delete_many({"provider_id": provider_id}).deleted_count


def _build_window_payload(
    provider_id: str,
    day_of_week: DayOfWeek,
    start: TimeOfDay,
    end: TimeOfDay,
) -> dict[str, Any]:
    return {
        "provider_id": provider_id.strip(),
        "day_of_week": int(day_of_week),
        "start_minutes": start.minutes,
        "end_minutes": end.minutes,
        "updated_at": datetime.now(UTC),
    }


def _window_sort_key(record: dict[str, Any]) -> tuple[str, int, int]:
    return (
        str(record.get("provider_id", "")),
        int(record.get("day_of_week", 0)),
        int(record.get("start_minutes", 0)),
    )


def create_working_hour_store(settings: Settings) -> WorkingHourStore:
    return _create_working_hour_store_cached(
        data_store=settings.data_store,
        mongodb_uri=settings.mongodb_uri,
        mongodb_db_name=settings.mongodb_db_name,
        mongodb_working_hours_collection=settings.mongodb_working_hours_collection,
        mongodb_connect_timeout_ms=settings.mongodb_connect_timeout_ms,
    )


@lru_cache
def _create_working_hour_store_cached(
    *,
    data_store: str,
    mongodb_uri: str,
    mongodb_db_name: str,
    mongodb_working_hours_collection: str,
    mongodb_connect_timeout_ms: int,
) -> WorkingHourStore:
    if data_store == "mongodb":
        return MongoWorkingHourStore(
            uri=mongodb_uri,
            db_name=mongodb_db_name,
            collection_name=mongodb_working_hours_collection,
            connect_timeout_ms=mongodb_connect_timeout_ms,
        )

    return InMemoryWorkingHourStore()


def clear_working_hour_store_cache() -> None:
    _create_working_hour_store_cached.cache_clear()
