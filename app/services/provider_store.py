from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import UTC, datetime
from functools import lru_cache
from typing import Any

from app.core.config import Settings
from app.services.booking_models import Provider
from app.services.store_utils import create_mongo_database, parse_object_id, serialize_record
from app.services.time_window import DEFAULT_TIMEZONE


class ProviderStore(ABC):
    @abstractmethod
    def get_provider(self, provider_id: str) -> Provider | None:
        raise NotImplementedError

    @abstractmethod
    def list_providers(self, *, service_id: str | None = None) -> list[Provider]:
        raise NotImplementedError

    @abstractmethod
    def create_provider(self, *, service_id: str, name: str, timezone: str | None = None) -> Provider:
        raise NotImplementedError

    @abstractmethod
    def update_provider(self, provider_id: str, updates: Mapping[str, Any]) -> Provider | None:
        raise NotImplementedError

    @abstractmethod
    def delete_provider(self, provider_id: str) -> bool:
        raise NotImplementedError


class InMemoryProviderStore(ProviderStore):
    def __init__(self) -> None:
        self._next_id = 1
        self._providers_by_id: dict[str, dict[str, Any]] = {}

    def get_provider(self, provider_id: str) -> Provider | None:
        record = self._providers_by_id.get(provider_id)
        if not record:
            return None
        return Provider.from_record(record)

    def list_providers(self, *, service_id: str | None = None) -> list[Provider]:
        records = [
            record
            for record in self._providers_by_id.values()
            if service_id is None or record.get("service_id") == service_id
        ]
        records.sort(key=lambda record: str(record.get("name", "")).lower())
        return [Provider.from_record(record) for record in records]

    def create_provider(self, *, service_id: str, name: str, timezone: str | None = None) -> Provider:
        provider_id = str(self._next_id)
        self._next_id += 1
        record = {"_id": provider_id, **_build_provider_payload(service_id, name, timezone)}
        self._providers_by_id[provider_id] = record
        return Provider.from_record(record)

    def update_provider(self, provider_id: str, updates: Mapping[str, Any]) -> Provider | None:
        record = self._providers_by_id.get(provider_id)
        if not record:
            return None
        record.update(_normalize_provider_updates(updates))
        record["updated_at"] = datetime.now(UTC)
        return Provider.from_record(record)

    def delete_provider(self, provider_id: str) -> bool:
        return self._providers_by_id.pop(provider_id, None) is not None


class MongoProviderStore(ProviderStore):
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
        self._providers = database[collection_name]
        self._providers.create_index("service_id")
        self._providers.create_index("name")

    def get_provider(self, provider_id: str) -> Provider | None:
        object_id = parse_object_id(provider_id)
        if object_id is None:
            return None
        record = serialize_record(self._providers.find_one({"_id": object_id}))
        if not record:
            return None
        return Provider.from_record(record)

    def list_providers(self, *, service_id: str | None = None) -> list[Provider]:
        query: dict[str, Any] = {}
        if service_id is not None:
            query["service_id"] = service_id
        return [
            Provider.from_record(serialize_record(record) or {})
            for record in self._providers.find(query).sort("name", 1)
        ]

    def create_provider(self, *, service_id: str, name: str, timezone: str | None = None) -> Provider:
        payload = _build_provider_payload(service_id, name, timezone)
        insert_result = self._providers.insert_one(payload)
        created = serialize_record(self._providers.find_one({"_id": insert_result.inserted_id}))
        if not created:
            raise RuntimeError("Unable to read created provider.")
        return Provider.from_record(created)

    def update_provider(self, provider_id: str, updates: Mapping[str, Any]) -> Provider | None:
        from pymongo import ReturnDocument

        object_id = parse_object_id(provider_id)
        if object_id is None:
            return None
        payload = _normalize_provider_updates(updates)
        payload["updated_at"] = datetime.now(UTC)
        record = self._providers.find_one_and_update(
            {"_id": object_id},
            {"$set": payload},
            return_document=ReturnDocument.AFTER,
        )
        serialized = serialize_record(record)
        if not serialized:
            return None
        return Provider.from_record(serialized)

    def delete_provider(self, provider_id: str) -> bool:
        object_id = parse_object_id(provider_id)
        if object_id is None:
            return False
        return self._providers.delete_one({"_id": object_id}).deleted_count > 0


def _build_provider_payload(service_id: str, name: str, timezone: str | None) -> dict[str, Any]:
    now = datetime.now(UTC)
    return {
        "service_id": service_id.strip(),
        "name": name.strip(),
        "timezone": (timezone or "").strip() or DEFAULT_TIMEZONE,
        "created_at": now,
        "updated_at": now,
    }


def _normalize_provider_updates(updates: Mapping[str, Any]) -> dict[str, Any]:
    normalized: dict[str, Any] = {}
    if updates.get("service_id") is not None:
        normalized["service_id"] = str(updates["service_id"]).strip()
    if updates.get("name") is not None:
        normalized["name"] = str(updates["name"]).strip()
    if "timezone" in updates:
        normalized["timezone"] = str(updates.get("timezone") or "").strip() or DEFAULT_TIMEZONE
    return normalized


def create_provider_store(settings: Settings) -> ProviderStore:
    return _create_provider_store_cached(
        data_store=settings.data_store,
        mongodb_uri=settings.mongodb_uri,
        mongodb_db_name=settings.mongodb_db_name,
        mongodb_providers_collection=settings.mongodb_providers_collection,
        mongodb_connect_timeout_ms=settings.mongodb_connect_timeout_ms,
    )


@lru_cache
def _create_provider_store_cached(
    *,
    data_store: str,
    mongodb_uri: str,
    mongodb_db_name: str,
    mongodb_providers_collection: str,
    mongodb_connect_timeout_ms: int,
) -> ProviderStore:
    if data_store == "mongodb":
        return MongoProviderStore(
            uri=mongodb_uri,
            db_name=mongodb_db_name,
            collection_name=mongodb_providers_collection,
            connect_timeout_ms=mongodb_connect_timeout_ms,
        )

    return InMemoryProviderStore()


def clear_provider_store_cache() -> None:
    _create_provider_store_cached.cache_clear()
