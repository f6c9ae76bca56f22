"""
Books and their embedded translations

Translations live inside the book document, so every translation change is a
single-document write and deleting a book takes its translations with it.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.database import Database

from catalog import filter_books, strip_translation_content
from database import serialize_document, to_object_id, utcnow
from errors import NotFound, ValidationError
from schemas import BookFields, TranslationUpdate
from uploads import UploadedFile, UploadStore, save_upload

logger = logging.getLogger(__name__)

COLLECTION = "book"
DEFAULT_CATEGORY = "Other"


# Form coercion

def parse_count(value: Optional[str], field: str) -> Optional[int]:
    """Verse/chapter counts arrive as strings; blank means not supplied."""
    if value is None or not str(value).strip():
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        raise ValidationError(f"{field} must be a number")
    if not number.is_integer():
        raise ValidationError(f"{field} must be a whole number")
    return int(number)


def _parse_json(raw: Optional[str], field: str) -> Any:
    if raw is None or not raw.strip():
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        raise ValidationError(f"{field} is not valid JSON")


def parse_enabled_fields(raw: Optional[str]) -> Optional[List[str]]:
    value = _parse_json(raw, "enabledFields")
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValidationError("enabledFields must be a JSON array of strings")
    # Ordered set: keep first occurrence
    return list(dict.fromkeys(value))


def parse_custom_fields(raw: Optional[str]) -> Optional[Dict[str, str]]:
    value = _parse_json(raw, "customFields")
    if value is None:
        return None
    if not isinstance(value, dict) or not all(isinstance(v, str) for v in value.values()):
        raise ValidationError("customFields must be a JSON object of strings")
    return value


def build_book_fields(
    title: Optional[str] = None,
    category: Optional[str] = None,
    description: Optional[str] = None,
    original_language: Optional[str] = None,
    author: Optional[str] = None,
    year: Optional[str] = None,
    verses: Optional[str] = None,
    chapters: Optional[str] = None,
    enabled_fields: Optional[str] = None,
    custom_fields: Optional[str] = None,
) -> BookFields:
    return BookFields(
        title=title,
        category=category,
        description=description,
        original_language=original_language,
        author=author,
        year=year,
        verses=parse_count(verses, "verses"),
        chapters=parse_count(chapters, "chapters"),
        enabled_fields=parse_enabled_fields(enabled_fields),
        custom_fields=parse_custom_fields(custom_fields),
    )


# Books

def _book_id(book_id: str) -> ObjectId:
    oid = to_object_id(book_id)
    if oid is None:
        raise NotFound("Book not found")
    return oid


def _find_book(db: Database, book_id: str) -> Dict[str, Any]:
    doc = db[COLLECTION].find_one({"_id": _book_id(book_id)})
    if not doc:
        raise NotFound("Book not found")
    return doc


def list_books(
    db: Database,
    category: Optional[str] = None,
    search: Optional[str] = None,
    lang: Optional[str] = None,
) -> List[Dict[str, Any]]:
    query = {"category": category} if category else {}
    books = filter_books(db[COLLECTION].find(query), search, lang)
    return [serialize_document(strip_translation_content(b)) for b in books]


def get_book(db: Database, book_id: str) -> Dict[str, Any]:
    return serialize_document(_find_book(db, book_id))


def create_book(
    db: Database,
    uploads: UploadStore,
    fields: BookFields,
    cover_image: Optional[UploadedFile] = None,
) -> Dict[str, Any]:
    if not (fields.title or "").strip():
        raise ValidationError("title is required")

    now = utcnow()
    doc = {
        "title": fields.title,
        "category": fields.category or DEFAULT_CATEGORY,
        "description": fields.description,
        "original_language": fields.original_language,
        "author": fields.author,
        "year": fields.year,
        "verses": fields.verses,
        "chapters": fields.chapters,
        "custom_fields": fields.custom_fields or {},
        "enabled_fields": fields.enabled_fields or [],
        "translations": [],
        "cover_image": save_upload(uploads, cover_image),
        "created_at": now,
        "updated_at": now,
    }
    result = db[COLLECTION].insert_one(doc)
    logger.info(f"Created book {result.inserted_id}: {fields.title}")
    return serialize_document(doc)


def update_book(
    db: Database,
    uploads: UploadStore,
    book_id: str,
    fields: BookFields,
    cover_image: Optional[UploadedFile] = None,
) -> Dict[str, Any]:
    """Apply the supplied fields; anything left as None keeps its stored value."""
    oid = _book_id(book_id)
    if fields.title is not None and not fields.title.strip():
        raise ValidationError("title cannot be empty")

    changes = fields.model_dump(exclude_none=True)
    if db[COLLECTION].count_documents({"_id": oid}, limit=1) == 0:
        raise NotFound("Book not found")
    cover_path = save_upload(uploads, cover_image)
    if cover_path:
        # The previous file is left on disk
        changes["cover_image"] = cover_path
    changes["updated_at"] = utcnow()

    doc = db[COLLECTION].find_one_and_update(
        {"_id": oid}, {"$set": changes}, return_document=ReturnDocument.AFTER
    )
    if not doc:
        raise NotFound("Book not found")
    logger.info(f"Updated book {book_id}")
    return serialize_document(doc)


def delete_book(db: Database, book_id: str) -> None:
    result = db[COLLECTION].delete_one({"_id": _book_id(book_id)})
    if result.deleted_count == 0:
        raise NotFound("Book not found")
    logger.info(f"Deleted book {book_id} with its translations")


# Translations

def add_translation(
    db: Database,
    uploads: UploadStore,
    book_id: str,
    translator_name: Optional[str],
    language: Optional[str],
    content: Optional[str] = None,
    file: Optional[UploadedFile] = None,
) -> Dict[str, Any]:
    oid = _find_book(db, book_id)["_id"]
    if not (translator_name or "").strip() or not (language or "").strip():
        raise ValidationError("translatorName and language are required")

    translation = {
        "_id": ObjectId(),
        "translator_name": translator_name,
        "language": language,
        "content": content,
        "file_url": save_upload(uploads, file),
        "added_at": utcnow(),
    }
    doc = db[COLLECTION].find_one_and_update(
        {"_id": oid},
        {"$push": {"translations": translation}, "$set": {"updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if not doc:
        raise NotFound("Book not found")
    logger.info(f"Added {language} translation {translation['_id']} to book {book_id}")
    return serialize_document(doc)


def update_translation(
    db: Database, book_id: str, translation_id: str, update: TranslationUpdate
) -> Dict[str, Any]:
    """
    Update a translation in place. Empty values mean "no change", so a field
    cannot be cleared through this call. Only the matched array element is
    written, so translations added meanwhile are kept.
    """
    oid = _book_id(book_id)
    tid = to_object_id(translation_id)

    changes = {"updated_at": utcnow()}
    for field in ("translator_name", "language", "content"):
        value = getattr(update, field)
        if value:
            changes[f"translations.$.{field}"] = value

    matched = 0
    if tid is not None:
        result = db[COLLECTION].update_one({"_id": oid, "translations._id": tid}, {"$set": changes})
        matched = result.matched_count
    if not matched:
        if db[COLLECTION].count_documents({"_id": oid}, limit=1) == 0:
            raise NotFound("Book not found")
        raise NotFound("Translation not found")

    logger.info(f"Updated translation {translation_id} of book {book_id}")
    return get_book(db, book_id)


def delete_translation(db: Database, book_id: str, translation_id: str) -> None:
    """Removing a translation that is already gone is not an error."""
    book = _find_book(db, book_id)
    tid = to_object_id(translation_id)
    if tid is None:
        return
    db[COLLECTION].update_one(
        {"_id": book["_id"]},
        {"$pull": {"translations": {"_id": tid}}, "$set": {"updated_at": utcnow()}},
    )
    logger.info(f"Deleted translation {translation_id} from book {book_id}")
