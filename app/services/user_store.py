from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import UTC, datetime
from functools import lru_cache
from typing import Any

from app.core.config import Settings
from app.services.store_utils import create_mongo_database, parse_object_id, serialize_record


class UserStore(ABC):
    @abstractmethod
    def get_user_by_id(self, user_id: str) -> dict[str, Any] | None:
        raise NotImplementedError

    @abstractmethod
    def get_user_by_email(self, email: str) -> dict[str, Any] | None:
        raise NotImplementedError

    @abstractmethod
    def list_users(self) -> list[dict[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    def create_user(
        self,
        *,
        email: str,
        full_name: str,
        password_hash: str,
        role: str,
    ) -> dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    def update_user(self, user_id: str, updates: Mapping[str, Any]) -> dict[str, Any] | None:
        raise NotImplementedError

    @abstractmethod
    def delete_user(self, user_id: str) -> bool:
        raise NotImplementedError


class InMemoryUserStore(UserStore):
    def __init__(self) -> None:
        self._next_id = 1
        self._users_by_id: dict[str, dict[str, Any]] = {}
        self._user_id_by_email: dict[str, str] = {}

    def get_user_by_id(self, user_id: str) -> dict[str, Any] | None:
        user = self._users_by_id.get(user_id)
        if not user:
            return None
        return dict(user)

    def get_user_by_email(self, email: str) -> dict[str, Any] | None:
        normalized_email = _normalize_email(email)
        user_id = self._user_id_by_email.get(normalized_email)
        if not user_id:
            return None
        return self.get_user_by_id(user_id)

    def list_users(self) -> list[dict[str, Any]]:
        users = sorted(self._users_by_id.values(), key=lambda user: user["full_name"].lower())
        return [dict(user) for user in users]

    def create_user(
        self,
        *,
        email: str,
        full_name: str,
        password_hash: str,
        role: str,
    ) -> dict[str, Any]:
        normalized_email = _normalize_email(email)
        if normalized_email in self._user_id_by_email:
            raise ValueError("email_already_exists")

        user_id = str(self._next_id)
        self._next_id += 1
        now = datetime.now(UTC)
        user = {
            "_id": user_id,
            "email": normalized_email,
            "full_name": full_name.strip(),
            "password_hash": password_hash,
            "role": role.strip().lower(),
            "created_at": now,
            "updated_at": now,
        }
        self._users_by_id[user_id] = user
        self._user_id_by_email[normalized_email] = user_id
        return dict(user)

    def update_user(self, user_id: str, updates: Mapping[str, Any]) -> dict[str, Any] | None:
        user = self._users_by_id.get(user_id)
        if not user:
            return None
        normalized_updates = _normalize_user_updates(updates)
        new_email = normalized_updates.get("email")
        if new_email and new_email != user["email"]:
            if new_email in self._user_id_by_email:
                raise ValueError("email_already_exists")
            self._user_id_by_email.pop(user["email"], None)
            self._user_id_by_email[new_email] = user_id
        user.update(normalized_updates)
        user["updated_at"] = datetime.now(UTC)
        return dict(user)

    def delete_user(self, user_id: str) -> bool:
        user = self._users_by_id.pop(user_id, None)
        if not user:
            return False
        self._user_id_by_email.pop(user["email"], None)
        return True


class MongoUserStore(UserStore):
    def __init__(
        self,
        *,
        uri: str,
        db_name: str,
        users_collection_name: str,
        connect_timeout_ms: int = 2000,
    ) -> None:
        database = create_mongo_database(
            uri=uri,
            db_name=db_name,
            connect_timeout_ms=connect_timeout_ms,
        )
        self._users = database[users_collection_name]

        self._users.create_index("email", unique=True)

    def get_user_by_id(self, user_id: str) -> dict[str, Any] | None:
        object_id = parse_object_id(user_id)
        if object_id is None:
            return None
        record = self._users.find_one({"_id": object_id})
        return serialize_record(record)

    def get_user_by_email(self, email: str) -> dict[str, Any] | None:
        normalized_email = _normalize_email(email)
        record = self._users.find_one({"email": normalized_email})
        return serialize_record(record)

    def list_users(self) -> list[dict[str, Any]]:
        users: list[dict[str, Any]] = []
        for record in self._users.find({}).sort("full_name", 1):
            serialized = serialize_record(record)
            if serialized:
                users.append(serialized)
        return users

    def create_user(
        self,
        *,
        email: str,
        full_name: str,
        password_hash: str,
        role: str,
    ) -> dict[str, Any]:
        from pymongo.errors import DuplicateKeyError

        normalized_email = _normalize_email(email)
        now = datetime.now(UTC)
        payload = {
            "email": normalized_email,
            "full_name": full_name.strip(),
            "password_hash": password_hash,
            "role": role.strip().lower(),
            "created_at": now,
            "updated_at": now,
        }
        try:
            insert_result = self._users.insert_one(payload)
        except DuplicateKeyError as exc:
            raise ValueError("email_already_exists") from exc
        created = self._users.find_one({"_id": insert_result.inserted_id})
        serialized = serialize_record(created)
        if not serialized:
            raise RuntimeError("Unable to read created user.")
        return serialized

    def update_user(self, user_id: str, updates: Mapping[str, Any]) -> dict[str, Any] | None:
        from pymongo import ReturnDocument
        from pymongo.errors import DuplicateKeyError

        object_id = parse_object_id(user_id)
        if object_id is None:
            return None
        payload = _normalize_user_updates(updates)
        payload["updated_at"] = datetime.now(UTC)
        try:
            record = self._users.find_one_and_update(
                {"_id": object_id},
                {"$set": payload},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError as exc:
            raise ValueError("email_already_exists") from exc
        return serialize_record(record)

    def delete_user(self, user_id: str) -> bool:
        object_id = parse_object_id(user_id)
        if object_id is None:
            return False
        return self._users.delete_one({"_id": object_id}).deleted_count > 0


def _normalize_user_updates(updates: Mapping[str, Any]) -> dict[str, Any]:
    normalized: dict[str, Any] = {}
    for field_name in ("email", "full_name", "password_hash", "role"):
        raw_value = updates.get(field_name)
        if raw_value is None:
            continue
        value = str(raw_value).strip()
        if not value:
            continue
        if field_name == "email":
            value = _normalize_email(value)
        elif field_name == "role":
            value = value.lower()
        normalized[field_name] = value
    return normalized


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def create_user_store(settings: Settings) -> UserStore:
    return _create_user_store_cached(
        data_store=settings.data_store,
        mongodb_uri=settings.mongodb_uri,
        mongodb_db_name=settings.mongodb_db_name,
        mongodb_users_collection=settings.mongodb_users_collection,
        mongodb_connect_timeout_ms=settings.mongodb_connect_timeout_ms,
    )


@lru_cache
def _create_user_store_cached(
    *,
    data_store: str,
    mongodb_uri: str,
    mongodb_db_name: str,
    mongodb_users_collection: str,
    mongodb_connect_timeout_ms: int,
) -> UserStore:
    if data_store == "memory":
        return InMemoryUserStore()

    if data_store == "mongodb":
        return MongoUserStore(
            uri=mongodb_uri,
            db_name=mongodb_db_name,
            users_collection_name=mongodb_users_collection,
            connect_timeout_ms=mongodb_connect_timeout_ms,
        )

    return InMemoryUserStore()


def clear_user_store_cache() -> None:
    _create_user_store_cached.cache_clear()
