from __future__ import annotations

from collections.abc import Mapping
from typing import Any


def create_mongo_database(*, uri: str, db_name: str, connect_timeout_ms: int):
    from pymongo import MongoClient

    client = MongoClient(
        uri,
        serverSelectionTimeoutMS=connect_timeout_ms,
        connectTimeoutMS=connect_timeout_ms,
        tz_aware=True,
    )
    return client[db_name]


def parse_object_id(value: str):
    from bson import ObjectId
    from bson.errors import InvalidId

    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def serialize_record(record: Mapping[str, Any] | None) -> dict[str, Any] | None:
    if not record:
        return None
    serialized = dict(record)
    serialized["_id"] = str(record.get("_id", ""))
    return serialized
