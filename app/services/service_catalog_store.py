from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import UTC, datetime
from functools import lru_cache
from typing import Any

from app.core.config import Settings
from app.services.booking_models import ServiceOffering
from app.services.store_utils import create_mongo_database, parse_object_id, serialize_record


class ServiceCatalogStore(ABC):
    @abstractmethod
    def get_service(self, service_id: str) -> ServiceOffering | None:
        raise NotImplementedError

    @abstractmethod
    def list_services(self, *, user_id: str | None = None) -> list[ServiceOffering]:
        raise NotImplementedError

    @abstractmethod
    def create_service(
        self,
        *,
        user_id: str,
        name: str,
        duration_minutes: int,
        description: str | None = None,
    ) -> ServiceOffering:
        raise NotImplementedError

    @abstractmethod
    def update_service(self, service_id: str, updates: Mapping[str, Any]) -> ServiceOffering | None:
        raise NotImplementedError

    @abstractmethod
    def delete_service(self, service_id: str) -> bool:
        raise NotImplementedError


class InMemoryServiceCatalogStore(ServiceCatalogStore):
    def __init__(self) -> None:
        self._next_id = 1
        self._services_by_id: dict[str, dict[str, Any]] = {}

    def get_service(self, service_id: str) -> ServiceOffering | None:
        record = self._services_by_id.get(service_id)
        if not record:
            return None
        return ServiceOffering.from_record(record)

    def list_services(self, *, user_id: str | None = None) -> list[ServiceOffering]:
        records = [
            record
            for record in self._services_by_id.values()
            if user_id is None or record.get("user_id") == user_id
        ]
        records.sort(key=lambda record: str(record.get("name", "")).lower())
        return [ServiceOffering.from_record(record) for record in records]

    def create_service(
        self,
        *,
        user_id: str,
        name: str,
        duration_minutes: int,
        description: str | None = None,
    ) -> ServiceOffering:
        service_id = str(self._next_id)
        self._next_id += 1
        record = {"_id": service_id, **_build_service_payload(user_id, name, duration_minutes, description)}
        self._services_by_id[service_id] = record
        return ServiceOffering.from_record(record)

    def update_service(self, service_id: str, updates: Mapping[str, Any]) -> ServiceOffering | None:
        record = self._services_by_id.get(service_id)
        if not record:
            return None
        record.update(_normalize_service_updates(updates))
        record["updated_at"] = datetime.now(UTC)
        return ServiceOffering.from_record(record)

    def delete_service(self, service_id: str) -> bool:
        return self._services_by_id.pop(service_id, None) is not None


class MongoServiceCatalogStore(ServiceCatalogStore):
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
        self._services = database[collection_name]
        self._services.create_index("user_id")
        self._services.create_index("name")

    def get_service(self, service_id: str) -> ServiceOffering | None:
        object_id = parse_object_id(service_id)
        if object_id is None:
            return None
        record = serialize_record(self._services.find_one({"_id": object_id}))
        if not record:
            return None
        return ServiceOffering.from_record(record)

    def list_services(self, *, user_id: str | None = None) -> list[ServiceOffering]:
        query: dict[str, Any] = {}
        if user_id is not None:
            query["user_id"] = user_id
        return [
            ServiceOffering.from_record(serialize_record(record) or {})
            for record in self._services.find(query).sort("name", 1)
        ]

    def create_service(
        self,
        *,
        user_id: str,
        name: str,
        duration_minutes: int,
        description: str | None = None,
    ) -> ServiceOffering:
        payload = _build_service_payload(user_id, name, duration_minutes, description)
        insert_result = self._services.insert_one(payload)
        created = serialize_record(self._services.find_one({"_id": insert_result.inserted_id}))
        if not created:
            raise RuntimeError("Unable to read created service.")
        return ServiceOffering.from_record(created)

    def update_service(self, service_id: str, updates: Mapping[str, Any]) -> ServiceOffering | None:
        from pymongo import ReturnDocument

        object_id = parse_object_id(service_id)
        if object_id is None:
            return None
        payload = _normalize_service_updates(updates)
        payload["updated_at"] = datetime.now(UTC)
        record = self._services.find_one_and_update(
            {"_id": object_id},
            {"$set": payload},
            return_document=ReturnDocument.AFTER,
        )
        serialized = serialize_record(record)
        if not serialized:
            return None
        return ServiceOffering.from_record(serialized)

    def delete_service(self, service_id: str) -> bool:
        object_id = parse_object_id(service_id)
        if object_id is None:
            return False
        return self._services.delete_one({"_id": object_id}).deleted_count > 0


def _build_service_payload(
    user_id: str,
    name: str,
    duration_minutes: int,
    description: str | None,
) -> dict[str, Any]:
    now = datetime.now(UTC)
    return {
        "user_id": user_id.strip(),
        "name": name.strip(),
        "duration_minutes": int(duration_minutes),
        "description": (description or "").strip() or None,
        "created_at": now,
        "updated_at": now,
    }


def _normalize_service_updates(updates: Mapping[str, Any]) -> dict[str, Any]:
    normalized: dict[str, Any] = {}
    if updates.get("user_id") is not None:
        normalized["user_id"] = str(updates["user_id"]).strip()
    if updates.get("name") is not None:
        normalized["name"] = str(updates["name"]).strip()
    if updates.get("duration_minutes") is not None:
        normalized["duration_minutes"] = int(updates["duration_minutes"])
    if "description" in updates:
        normalized["description"] = (updates.get("description") or "").strip() or None
    return normalized


def create_service_catalog_store(settings: Settings) -> ServiceCatalogStore:
    return _create_service_catalog_store_cached(
        data_store=settings.data_store,
        mongodb_uri=settings.mongodb_uri,
        mongodb_db_name=settings.mongodb_db_name,
        mongodb_services_collection=settings.mongodb_services_collection,
        mongodb_connect_timeout_ms=settings.mongodb_connect_timeout_ms,
    )


@lru_cache
def _create_service_catalog_store_cached(
    *,
    data_store: str,
    mongodb_uri: str,
    mongodb_db_name: str,
    mongodb_services_collection: str,
    mongodb_connect_timeout_ms: int,
) -> ServiceCatalogStore:
    if data_store == "mongodb":
        return MongoServiceCatalogStore(
            uri=mongodb_uri,
            db_name=mongodb_db_name,
            collection_name=mongodb_services_collection,
            connect_timeout_ms=mongodb_connect_timeout_ms,
        )

    return InMemoryServiceCatalogStore()


def clear_service_catalog_store_cache() -> None:
    _create_service_catalog_store_cached.cache_clear()
