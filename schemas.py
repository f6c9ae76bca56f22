"""
Database Schemas

Pydantic models for the MongoDB collections and for the request/response
bodies of the API. The collection name is the lowercase of the stored model
name:
- Admin -> "admin" collection
- Book -> "book" collection (translations are embedded sub-documents)
- Category -> "category" collection

Attributes are snake_case in Python and in the database; the JSON API speaks
camelCase through the alias generator on `ApiModel`.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Stored documents

class Admin(ApiModel):
    """
    Admin collection schema
    Collection name: "admin"
    """
    username: str = Field(..., description="Unique login name")
    password_hash: str = Field(..., description="PBKDF2-SHA512 hex digest")
    salt: str = Field(..., description="Hex encoded random salt")
    iterations: int = Field(1000, description="PBKDF2 rounds used for this hash")
    created_at: datetime


class TranslationSummary(ApiModel):
    id: str
    translator_name: str = Field(..., description="Who made the translation")
    language: str = Field(..., description="Language label, e.g. hindi")
    file_url: Optional[str] = Field(None, description="Public path of an attached file")
    added_at: Optional[datetime] = None


class Translation(TranslationSummary):
    """Translation embedded in a book document"""
    content: Optional[str] = Field(None, description="Inline translated text")


class BookSummary(ApiModel):
    """
    Books collection schema as listed in the catalog (no translation text)
    Collection name: "book"
    """
    id: str
    title: str = Field(..., description="Book title")
    category: Optional[str] = Field("Other", description="Category name (not a foreign key)")
    description: Optional[str] = None
    original_language: Optional[str] = None
    author: Optional[str] = None
    year: Optional[str] = Field(None, description="Year or era label")
    verses: Optional[int] = None
    chapters: Optional[int] = None
    custom_fields: Dict[str, str] = Field(default_factory=dict)
    cover_image: Optional[str] = Field(None, description="Public path of the cover image")
    enabled_fields: List[str] = Field(default_factory=list)
    translations: List[TranslationSummary] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Book(BookSummary):
    translations: List[Translation] = Field(default_factory=list)


class Category(ApiModel):
    """
    Categories collection schema
    Collection name: "category"
    """
    id: str
    name: str = Field(..., description="Category name")
    description: Optional[str] = None
    created_at: Optional[datetime] = None


# Request bodies

class BookFields(ApiModel):
    """Metadata fields of a book write; None means "not supplied"."""
    title: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    original_language: Optional[str] = None
    author: Optional[str] = None
    year: Optional[str] = None
    verses: Optional[int] = None
    chapters: Optional[int] = None
    enabled_fields: Optional[List[str]] = None
    custom_fields: Optional[Dict[str, str]] = None


class TranslationUpdate(ApiModel):
    translator_name: Optional[str] = None
    language: Optional[str] = None
    content: Optional[str] = None


class CategoryCreate(ApiModel):
    name: str
    description: Optional[str] = None


class CategoryUpdate(ApiModel):
    name: Optional[str] = None
    description: Optional[str] = None


class Credentials(ApiModel):
    username: Optional[str] = None
    password: Optional[str] = None


# Responses

class AdminStatus(ApiModel):
    admin_exists: bool


class LoginResponse(ApiModel):
    success: bool = True
    message: str = "Login successful"
    token: str
    username: str


class SetupResponse(ApiModel):
    success: bool = True
    message: str = "Admin created successfully"


class MessageResponse(ApiModel):
    message: str
