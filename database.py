"""
Database helpers

A single MongoDB handle is created at import time from configuration and
handed to the services through the `get_db` dependency.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from bson import ObjectId
from fastapi import HTTPException
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from config import DATABASE_NAME, DATABASE_URL

logger = logging.getLogger(__name__)

client: Optional[MongoClient] = None
db: Optional[Database] = None

if DATABASE_URL:
    client = MongoClient(DATABASE_URL, tz_aware=True)
    db = client[DATABASE_NAME]
else:
    logger.warning("DATABASE_URL is not set; API calls will fail until it is configured")


def get_db() -> Database:
    if db is None:
        raise HTTPException(status_code=503, detail="Database not configured")
    return db


def ensure_indexes(database: Database) -> None:
    database["admin"].create_index([("username", ASCENDING)], unique=True)
    database["book"].create_index([("category", ASCENDING)])


def utcnow() -> datetime:
    # BSON dates keep milliseconds only
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Parse a hex id string; None when it is not a valid ObjectId."""
    if isinstance(value, ObjectId):
        return value
    if not isinstance(value, str) or not ObjectId.is_valid(value):
        return None
    return ObjectId(value)


def serialize_document(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of a stored document with `_id` exposed as a string `id`."""
    out = dict(doc)
    if "_id" in out:
        out["id"] = str(out.pop("_id"))
    if isinstance(out.get("translations"), list):
        out["translations"] = [serialize_document(t) for t in out["translations"]]
    return out
