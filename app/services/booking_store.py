from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from functools import lru_cache
from typing import Any

from app.core.config import Settings
from app.services.booking_models import Booking, BookingStatus
from app.services.store_utils import create_mongo_database, parse_object_id, serialize_record
from app.services.time_window import ensure_utc, intervals_overlap

BOOKING_SLOT_TAKEN = "booking_slot_taken"


class BookingStore(ABC):
    @abstractmethod
    def get_booking(self, booking_id: str) -> Booking | None:
        raise NotImplementedError

    @abstractmethod
    def list_bookings(
        self,
        *,
        user_id: str | None = None,
        provider_id: str | None = None,
    ) -> list[Booking]:
        """Bookings ordered by start, latest first."""
        raise NotImplementedError

    @abstractmethod
    def find_overlapping(
        self,
        provider_id: str,
        start_at: datetime,
        end_at: datetime,
        *,
        exclude_booking_id: str | None = None,
    ) -> list[Booking]:
        """Active bookings of the provider intersecting ``[start_at, end_at)``, earliest first."""
        raise NotImplementedError

    @abstractmethod
    def count_bookings(
        self,
        *,
        provider_id: str | None = None,
        service_id: str | None = None,
        user_id: str | None = None,
    ) -> int:
        raise NotImplementedError

    @abstractmethod
    def create_booking(
        self,
        *,
        user_id: str,
        provider_id: str,
        service_id: str,
        start_at: datetime,
        end_at: datetime,
    ) -> Booking:
        """Raises ``ValueError(BOOKING_SLOT_TAKEN)`` when the provider already has an active booking at ``start_at``."""
        raise NotImplementedError

    @abstractmethod
    def update_booking(
        self,
        booking_id: str,
        *,
        user_id: str,
        provider_id: str,
        service_id: str,
        start_at: datetime,
        end_at: datetime,
    ) -> Booking | None:
        raise NotImplementedError

    @abstractmethod
    def mark_cancelled(self, booking_id: str, cancelled_at: datetime) -> Booking | None:
        raise NotImplementedError


class InMemoryBookingStore(BookingStore):
    def __init__(self) -> None:
        self._next_id = 1
        self._bookings_by_id: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def get_booking(self, booking_id: str) -> Booking | None:
        record = self._bookings_by_id.get(booking_id)
        if not record:
            return None
        return Booking.from_record(record)

    def list_bookings(
        self,
        *,
        user_id: str | None = None,
        provider_id: str | None = None,
    ) -> list[Booking]:
        bookings = [
            Booking.from_record(record)
            for record in self._snapshot()
            if (user_id is None or record.get("user_id") == user_id)
            and (provider_id is None or record.get("provider_id") == provider_id)
        ]
        bookings.sort(key=lambda booking: (booking.start_at, int(booking.id)), reverse=True)
        return bookings

    def find_overlapping(
        self,
        provider_id: str,
        start_at: datetime,
        end_at: datetime,
        *,
        exclude_booking_id: str | None = None,
    ) -> list[Booking]:
        start_utc = ensure_utc(start_at)
        end_utc = ensure_utc(end_at)
        matches: list[Booking] = []
        for record in self._snapshot():
            if record.get("provider_id") != provider_id:
                continue
            if exclude_booking_id is not None and record.get("_id") == exclude_booking_id:
                continue
            booking = Booking.from_record(record)
            if not booking.is_active:
                continue
            if intervals_overlap(booking.start_at, booking.end_at, start_utc, end_utc):
                matches.append(booking)
        matches.sort(key=lambda booking: booking.start_at)
        return matches

    def count_bookings(
        self,
        *,
        provider_id: str | None = None,
        service_id: str | None = None,
        user_id: str | None = None,
    ) -> int:
        return sum(
            1
            for record in self._snapshot()
            if (provider_id is None or record.get("provider_id") == provider_id)
            and (service_id is None or record.get("service_id") == service_id)
            and (user_id is None or record.get("user_id") == user_id)
        )

    def create_booking(
        self,
        *,
        user_id: str,
        provider_id: str,
        service_id: str,
        start_at: datetime,
        end_at: datetime,
    ) -> Booking:
        payload = _build_booking_payload(user_id, provider_id, service_id, start_at, end_at)
        with self._lock:
            self._assert_start_is_free(payload["provider_id"], payload["start_at"], exclude_booking_id=None)
            booking_id = str(self._next_id)
            self._next_id += 1
            now = datetime.now(UTC)
            record = {
                "_id": booking_id,
                **payload,
                "status": BookingStatus.BOOKED.value,
                "cancelled_at": None,
                "created_at": now,
            }
            self._bookings_by_id[booking_id] = record
        return Booking.from_record(record)

    def update_booking(
        self,
        booking_id: str,
        *,
        user_id: str,
        provider_id: str,
        service_id: str,
        start_at: datetime,
        end_at: datetime,
    ) -> Booking | None:
        payload = _build_booking_payload(user_id, provider_id, service_id, start_at, end_at)
        with self._lock:
            record = self._bookings_by_id.get(booking_id)
            if not record:
                return None
            if record.get("status") == BookingStatus.BOOKED.value:
                self._assert_start_is_free(
                    payload["provider_id"],
                    payload["start_at"],
                    exclude_booking_id=booking_id,
                )
            record.update(payload)
            return Booking.from_record(record)

    def mark_cancelled(self, booking_id: str, cancelled_at: datetime) -> Booking | None:
        with self._lock:
            record = self._bookings_by_id.get(booking_id)
            if not record:
                return None
            record["status"] = BookingStatus.CANCELLED.value
            record["cancelled_at"] = ensure_utc(cancelled_at)
            record["updated_at"] = datetime.now(UTC)
            return Booking.from_record(record)

    def _snapshot(self) -> list[dict[str, Any]]:
        with self._lock:
            return [dict(record) for record in self._bookings_by_id.values()]

    def _assert_start_is_free(
        self,
        provider_id: str,
        start_at: datetime,
        *,
        exclude_booking_id: str | None,
    ) -> None:
        for record in self._bookings_by_id.values():
            if record.get("_id") == exclude_booking_id:
                continue
            if record.get("provider_id") != provider_id:
                continue
            if record.get("status") != BookingStatus.BOOKED.value:
                continue
            if record.get("start_at") == start_at:
                raise ValueError(BOOKING_SLOT_TAKEN)


class MongoBookingStore(BookingStore):
    def __init__(
        self,
        *,
        uri: str,
        db_name: str,
        collection_name: str,
        connect_timeout_ms: int = 2000,
    ) -> None:
        from pymongo import ASCENDING, DESCENDING

        database = create_mongo_database(
            uri=uri,
            db_name=db_name,
            connect_timeout_ms=connect_timeout_ms,
        )
        self._bookings = database[collection_name]
        self._bookings.create_index([("user_id", ASCENDING), ("start_at", DESCENDING)])
        self._bookings.create_index(
            [("provider_id", ASCENDING), ("status", ASCENDING), ("start_at", ASCENDING)],
        )
        # Storage-level guard against two active bookings starting together.
        self._bookings.create_index(
            [("provider_id", ASCENDING), ("start_at", ASCENDING)],
            unique=True,
            partialFilterExpression={"status": BookingStatus.BOOKED.value},
            name="provider_start_booked_unique",
        )

    def get_booking(self, booking_id: str) -> Booking | None:
        object_id = parse_object_id(booking_id)
        if object_id is None:
            return None
        record = serialize_record(self._bookings.find_one({"_id": object_id}))
        if not record:
            return None
        return Booking.from_record(record)

    def list_bookings(
        self,
        *,
        user_id: str | None = None,
        provider_id: str | None = None,
    ) -> list[Booking]:
        query: dict[str, Any] = {}
        if user_id is not None:
            query["user_id"] = user_id
        if provider_id is not None:
            query["provider_id"] = provider_id
        cursor = self._bookings.find(query).sort([("start_at", -1), ("_id", -1)])
        return [Booking.from_record(serialize_record(record) or {}) for record in cursor]

    def find_overlapping(
        self,
        provider_id: str,
        start_at: datetime,
        end_at: datetime,
        *,
        exclude_booking_id: str | None = None,
    ) -> list[Booking]:
        query: dict[str, Any] = {
            "provider_id": provider_id,
            "status": BookingStatus.BOOKED.value,
            "cancelled_at": None,
            "start_at": {"$lt": ensure_utc(end_at)},
            "end_at": {"$gt": ensure_utc(start_at)},
        }
        if exclude_booking_id is not None:
            excluded_object_id = parse_object_id(exclude_booking_id)
            if excluded_object_id is not None:
                query["_id"] = {"$ne": excluded_object_id}
        cursor = self._bookings.find(query).sort("start_at", 1)
        return [Booking.from_record(serialize_record(record) or {}) for record in cursor]

    def count_bookings(
        self,
        *,
        provider_id: str | None = None,
        service_id: str | None = None,
        user_id: str | None = None,
    ) -> int:
        query: dict[str, Any] = {}
        if provider_id is not None:
            query["provider_id"] = provider_id
        if service_id is not None:
            query["service_id"] = service_id
        if user_id is not None:
            query["user_id"] = user_id
        return self._bookings.count_documents(query)

    def create_booking(
        self,
        *,
        user_id: str,
        provider_id: str,
        service_id: str,
        start_at: datetime,
        end_at: datetime,
    ) -> Booking:
        from pymongo.errors import DuplicateKeyError

        payload = _build_booking_payload(user_id, provider_id, service_id, start_at, end_at)
        payload["status"] = BookingStatus.BOOKED.value
        payload["cancelled_at"] = None
        payload["created_at"] = payload["updated_at"]
        try:
            insert_result = self._bookings.insert_one(payload)
        except DuplicateKeyError as exc:
            raise ValueError(BOOKING_SLOT_TAKEN) from exc
        created = serialize_record(self._bookings.find_one({"_id": insert_result.inserted_id}))
        if not created:
            raise RuntimeError("Unable to read created booking.")
        return Booking.from_record(created)

    def update_booking(
        self,
        booking_id: str,
        *,
        user_id: str,
        provider_id: str,
        service_id: str,
        start_at: datetime,
        end_at: datetime,
    ) -> Booking | None:
        from pymongo import ReturnDocument
        from pymongo.errors import DuplicateKeyError

        object_id = parse_object_id(booking_id)
        if object_id is None:
            return None
        payload = _build_booking_payload(user_id, provider_id, service_id, start_at, end_at)
        try:
            record = self._bookings.find_one_and_update(
                {"_id": object_id},
                {"$set": payload},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError as exc:
            raise ValueError(BOOKING_SLOT_TAKEN) from exc
        serialized = serialize_record(record)
        if not serialized:
            return None
        return Booking.from_record(serialized)

    def mark_cancelled(self, booking_id: str, cancelled_at: datetime) -> Booking | None:
        from pymongo import ReturnDocument

        object_id = parse_object_id(booking_id)
        if object_id is None:
            return None
        record = self._bookings.find_one_and_update(
            {"_id": object_id},
            {
                "$set": {
                    "status": BookingStatus.CANCELLED.value,
                    "cancelled_at": ensure_utc(cancelled_at),
                    "updated_at": datetime.now(UTC),
                },
            },
            return_document=ReturnDocument.AFTER,
        )
        serialized = serialize_record(record)
        if not serialized:
            return None
        return Booking.from_record(serialized)


def _build_booking_payload(
    user_id: str,
    provider_id: str,
    service_id: str,
    start_at: datetime,
    end_at: datetime,
) -> dict[str, Any]:
    return {
        "user_id": user_id.strip(),
        "provider_id": provider_id.strip(),
        "service_id": service_id.strip(),
        "start_at": ensure_utc(start_at),
        "end_at": ensure_utc(end_at),
        "updated_at": datetime.now(UTC),
    }


def create_booking_store(settings: Settings) -> BookingStore:
    return _create_booking_store_cached(
        data_store=settings.data_store,
        mongodb_uri=settings.mongodb_uri,
        mongodb_db_name=settings.mongodb_db_name,
        mongodb_bookings_collection=settings.mongodb_bookings_collection,
        mongodb_connect_timeout_ms=settings.mongodb_connect_timeout_ms,
    )


@lru_cache
def _create_booking_store_cached(
    *,
    data_store: str,
    mongodb_uri: str,
    mongodb_db_name: str,
    mongodb_bookings_collection: str,
    mongodb_connect_timeout_ms: int,
) -> BookingStore:
    if data_store == "mongodb":
        return MongoBookingStore(
            uri=mongodb_uri,
            db_name=mongodb_db_name,
            collection_name=mongodb_bookings_collection,
            connect_timeout_ms=mongodb_connect_timeout_ms,
        )

    return InMemoryBookingStore()


def clear_booking_store_cache() -> None:
    _create_booking_store_cached.cache_clear()
