"""
Categories

Books refer to a category by its name only. Renaming or deleting a category
leaves the books that carry the old name untouched.
"""

import logging
from typing import Any, Dict, List

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.database import Database

from database import serialize_document, to_object_id, utcnow
from errors import NotFound, ValidationError
from schemas import CategoryCreate, CategoryUpdate

logger = logging.getLogger(__name__)

COLLECTION = "category"


def _category_id(category_id: str) -> ObjectId:
    oid = to_object_id(category_id)
    if oid is None:
        raise NotFound("Category not found")
    return oid


def list_categories(db: Database) -> List[Dict[str, Any]]:
    return [serialize_document(c) for c in db[COLLECTION].find()]


def create_category(db: Database, payload: CategoryCreate) -> Dict[str, Any]:
    if not (payload.name or "").strip():
        raise ValidationError("name is required")
    doc = {
        "name": payload.name.strip(),
        "description": payload.description,
        "created_at": utcnow(),
    }
    db[COLLECTION].insert_one(doc)
    logger.info(f"Created category {doc['name']}")
    return serialize_document(doc)


def update_category(db: Database, category_id: str, payload: CategoryUpdate) -> Dict[str, Any]:
    oid = _category_id(category_id)
    changes = payload.model_dump(exclude_none=True)
    if "name" in changes:
        if not changes["name"].strip():
            raise ValidationError("name cannot be empty")
        changes["name"] = changes["name"].strip()

    if changes:
        doc = db[COLLECTION].find_one_and_update(
            {"_id": oid}, {"$set": changes}, return_document=ReturnDocument.AFTER
        )
    else:
        doc = db[COLLECTION].find_one({"_id": oid})
    if not doc:
        raise NotFound("Category not found")
    logger.info(f"Updated category {category_id}")
    return serialize_document(doc)


def delete_category(db: Database, category_id: str) -> None:
    result = db[COLLECTION].delete_one({"_id": _category_id(category_id)})
    if result.deleted_count == 0:
        raise NotFound("Category not found")
    logger.info(f"Deleted category {category_id}")
