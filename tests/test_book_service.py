"""
Unit tests for the book and translation services.

Tests cover:
- Form coercion (counts, enabledFields, customFields)
- Book CRUD with partial updates and cover uploads
- Category filtering and search on listings
- Nested translation add/update/delete, including the
  "empty value means no change" update behaviour
"""

import pytest
from bson import ObjectId

import book_service
from errors import NotFound, ValidationError
from schemas import BookFields, TranslationUpdate
from uploads import UploadedFile


@pytest.fixture
def make_book(mongo_db, store):
    def _make(title="Rig Veda", **fields):
        return book_service.create_book(mongo_db, store, BookFields(title=title, **fields))
    return _make


class TestFormCoercion:
    def test_counts(self):
        assert book_service.parse_count("700", "verses") == 700
        assert book_service.parse_count(" 18 ", "chapters") == 18
        assert book_service.parse_count("", "verses") is None
        assert book_service.parse_count(None, "verses") is None

    @pytest.mark.parametrize("raw", ["many", "12.5"])
    def test_bad_counts(self, raw):
        with pytest.raises(ValidationError):
            book_service.parse_count(raw, "verses")

    def test_enabled_fields_decoded_as_ordered_set(self):
        raw = '["author", "year", "author", "verses"]'
        assert book_service.parse_enabled_fields(raw) == ["author", "year", "verses"]

    @pytest.mark.parametrize("raw", ["[author", '{"a": 1}', "[1, 2]"])
    def test_bad_enabled_fields(self, raw):
        with pytest.raises(ValidationError):
            book_service.parse_enabled_fields(raw)

    def test_custom_fields(self):
        assert book_service.parse_custom_fields('{"meter": "anushtubh"}') == {"meter": "anushtubh"}
        with pytest.raises(ValidationError):
            book_service.parse_custom_fields('{"meter": 8}')

    def test_build_book_fields(self):
        fields = book_service.build_book_fields(
            title="Gita", verses="700", chapters="", enabled_fields='["verses"]'
        )
        assert fields.verses == 700
        assert fields.chapters is None
        assert fields.enabled_fields == ["verses"]


class TestCreateBook:
    def test_title_is_required(self, mongo_db, store):
        with pytest.raises(ValidationError):
            book_service.create_book(mongo_db, store, BookFields())
        with pytest.raises(ValidationError):
            book_service.create_book(mongo_db, store, BookFields(title="  "))
        assert mongo_db["book"].count_documents({}) == 0

    def test_title_only_book_is_listed(self, mongo_db, make_book):
        book = make_book("Isha Upanishad")

        assert book["category"] == "Other"
        assert book["translations"] == []
        assert book["cover_image"] is None
        assert book["created_at"] == book["updated_at"]
        assert [b["id"] for b in book_service.list_books(mongo_db)] == [book["id"]]

    def test_cover_image_is_stored(self, mongo_db, store):
        cover = UploadedFile(data=b"\x89PNG", filename="cover.png")
        book = book_service.create_book(mongo_db, store, BookFields(title="Gita"), cover)

        assert book["cover_image"] == "/uploads/0-cover.png"
        assert store.files[book["cover_image"]] == b"\x89PNG"

    def test_empty_upload_is_ignored(self, mongo_db, store):
        book = book_service.create_book(
            mongo_db, store, BookFields(title="Gita"), UploadedFile(data=b"", filename="")
        )
        assert book["cover_image"] is None
        assert store.files == {}


class TestListBooks:
    def test_category_filter_is_exact(self, mongo_db, make_book):
        make_book("Rig Veda", category="Vedas")
        make_book("Yajur Veda", category="Vedas")
        make_book("Ramayana", category="Itihasa")
        make_book("Odd one", category="vedas")
        make_book("Other one", category="Vedas and more")

        titles = [b["title"] for b in book_service.list_books(mongo_db, category="Vedas")]
        assert titles == ["Rig Veda", "Yajur Veda"]

    def test_listing_omits_translation_content(self, mongo_db, store, make_book):
        book = make_book()
        book_service.add_translation(mongo_db, store, book["id"], "Griffith", "english", "I laud Agni")

        listed = book_service.list_books(mongo_db)[0]
        assert listed["translations"][0]["translator_name"] == "Griffith"
        assert "content" not in listed["translations"][0]

    def test_search_with_category_and_language(self, mongo_db, store, make_book):
        rig = make_book("Rig Veda", category="Vedas")
        sama = make_book("Sama Veda", category="Vedas")
        make_book("Ramayana", category="Itihasa", description="Story of Agni pariksha")
        book_service.add_translation(mongo_db, store, rig["id"], "Griffith", "english", "I laud Agni")
        book_service.add_translation(mongo_db, store, sama["id"], "Sharma", "hindi", "agni ki stuti")

        found = book_service.list_books(mongo_db, category="Vedas", search="agni")
        assert [b["title"] for b in found] == ["Rig Veda", "Sama Veda"]

        found = book_service.list_books(mongo_db, category="Vedas", search="agni", lang="hindi")
        assert [b["title"] for b in found] == ["Sama Veda"]

        found = book_service.list_books(mongo_db, search="agni")
        assert len(found) == 3


class TestGetUpdateDeleteBook:
    def test_unknown_and_malformed_ids(self, mongo_db):
        with pytest.raises(NotFound):
            book_service.get_book(mongo_db, str(ObjectId()))
        with pytest.raises(NotFound):
            book_service.get_book(mongo_db, "not-an-id")

    def test_partial_update_keeps_unspecified_fields(self, mongo_db, store, make_book):
        book = make_book("Gita", author="Vyasa", verses=700)

        updated = book_service.update_book(
            mongo_db, store, book["id"], BookFields(description="Song of the Lord")
        )
        assert updated["title"] == "Gita"
        assert updated["author"] == "Vyasa"
        assert updated["verses"] == 700
        assert updated["description"] == "Song of the Lord"

    def test_update_rejects_blank_title(self, mongo_db, store, make_book):
        book = make_book()
        with pytest.raises(ValidationError):
            book_service.update_book(mongo_db, store, book["id"], BookFields(title=""))

    def test_new_cover_replaces_path(self, mongo_db, store):
        book = book_service.create_book(
            mongo_db, store, BookFields(title="Gita"), UploadedFile(b"old", "old.png")
        )
        updated = book_service.update_book(
            mongo_db, store, book["id"], BookFields(), UploadedFile(b"new", "new.png")
        )
        assert updated["cover_image"] == "/uploads/1-new.png"
        # Old file is not cleaned up
        assert "/uploads/0-old.png" in store.files

    def test_update_unknown_book(self, mongo_db, store):
        cover = UploadedFile(b"\x89PNG", "cover.png")
        with pytest.raises(NotFound):
            book_service.update_book(mongo_db, store, str(ObjectId()), BookFields(title="x"), cover)
        # No orphaned cover for a missing book
        assert store.files == {}

    def test_delete_removes_book_and_translations(self, mongo_db, store, make_book):
        book = make_book()
        book_service.add_translation(mongo_db, store, book["id"], "Griffith", "english")

        book_service.delete_book(mongo_db, book["id"])

        assert book_service.list_books(mongo_db) == []
        with pytest.raises(NotFound):
            book_service.get_book(mongo_db, book["id"])
        assert mongo_db["book"].count_documents({"translations.translator_name": "Griffith"}) == 0

    def test_delete_unknown_book(self, mongo_db):
        with pytest.raises(NotFound):
            book_service.delete_book(mongo_db, str(ObjectId()))


class TestTranslations:
    def test_translations_are_appended_in_order(self, mongo_db, store, make_book):
        book = make_book()
        book_service.add_translation(mongo_db, store, book["id"], "Griffith", "english", "I laud Agni")
        book_service.add_translation(mongo_db, store, book["id"], "Sharma", "hindi")

        fetched = book_service.get_book(mongo_db, book["id"])
        assert [t["translator_name"] for t in fetched["translations"]] == ["Griffith", "Sharma"]
        assert fetched["translations"][0]["content"] == "I laud Agni"
        assert fetched["translations"][1]["content"] is None
        assert fetched["translations"][0]["id"] != fetched["translations"][1]["id"]
        assert fetched["translations"][0]["added_at"] is not None

    def test_translation_with_file_only(self, mongo_db, store, make_book):
        book = make_book()
        updated = book_service.add_translation(
            mongo_db, store, book["id"], "Griffith", "english", file=UploadedFile(b"%PDF", "rv.pdf")
        )
        assert updated["translations"][0]["file_url"] == "/uploads/0-rv.pdf"

    def test_translator_and_language_required(self, mongo_db, store, make_book):
        book = make_book()
        with pytest.raises(ValidationError):
            book_service.add_translation(mongo_db, store, book["id"], "Griffith", "")
        with pytest.raises(ValidationError):
            book_service.add_translation(mongo_db, store, book["id"], None, "english")

    def test_add_to_unknown_book(self, mongo_db, store):
        with pytest.raises(NotFound):
            book_service.add_translation(mongo_db, store, str(ObjectId()), "Griffith", "english")

    def test_update_only_supplied_fields(self, mongo_db, store, make_book):
        book = make_book()
        book = book_service.add_translation(mongo_db, store, book["id"], "Griffith", "english", "old")
        tid = book["translations"][0]["id"]

        updated = book_service.update_translation(
            mongo_db, book["id"], tid, TranslationUpdate(content="new")
        )
        translation = updated["translations"][0]
        assert translation["content"] == "new"
        assert translation["translator_name"] == "Griffith"
        assert translation["added_at"] == book["translations"][0]["added_at"]

    def test_empty_language_update_is_a_no_op(self, mongo_db, store, make_book):
        book = make_book()
        book = book_service.add_translation(mongo_db, store, book["id"], "Griffith", "english", "text")
        tid = book["translations"][0]["id"]

        book_service.update_translation(
            mongo_db, book["id"], tid, TranslationUpdate(language="", content="")
        )

        stored = book_service.get_book(mongo_db, book["id"])["translations"][0]
        assert stored["language"] == "english"
        assert stored["content"] == "text"

    def test_update_unknown_translation(self, mongo_db, store, make_book):
        book = make_book()
        with pytest.raises(NotFound) as exc:
            book_service.update_translation(
                mongo_db, book["id"], str(ObjectId()), TranslationUpdate(language="hindi")
            )
        assert exc.value.message == "Translation not found"
        with pytest.raises(NotFound) as exc:
            book_service.update_translation(
                mongo_db, str(ObjectId()), str(ObjectId()), TranslationUpdate(language="hindi")
            )
        assert exc.value.message == "Book not found"

    def test_update_keeps_translation_added_meanwhile(self, mongo_db, store, make_book, monkeypatch):
        book = make_book()
        book = book_service.add_translation(mongo_db, store, book["id"], "Griffith", "english", "old")
        tid = book["translations"][0]["id"]
        parse_id = book_service.to_object_id

        def parse_and_interleave(value):
            # Another request appends a translation while this update runs
            if value == tid:
                mongo_db["book"].update_one(
                    {"_id": ObjectId(book["id"])},
                    {"$push": {"translations": {"_id": ObjectId(), "translator_name": "Sharma",
                                                "language": "hindi"}}},
                )
            return parse_id(value)

        monkeypatch.setattr(book_service, "to_object_id", parse_and_interleave)
        updated = book_service.update_translation(
            mongo_db, book["id"], tid, TranslationUpdate(content="new")
        )

        assert [t["translator_name"] for t in updated["translations"]] == ["Griffith", "Sharma"]
        assert updated["translations"][0]["content"] == "new"

    def test_delete_translation_is_idempotent(self, mongo_db, store, make_book):
        book = make_book()
        book = book_service.add_translation(mongo_db, store, book["id"], "Griffith", "english")
        book = book_service.add_translation(mongo_db, store, book["id"], "Sharma", "hindi")
        tid = book["translations"][0]["id"]

        book_service.delete_translation(mongo_db, book["id"], tid)
        book_service.delete_translation(mongo_db, book["id"], tid)
        book_service.delete_translation(mongo_db, book["id"], "garbage")

        remaining = book_service.get_book(mongo_db, book["id"])["translations"]
        assert [t["translator_name"] for t in remaining] == ["Sharma"]

    def test_delete_translation_of_unknown_book(self, mongo_db):
        with pytest.raises(NotFound):
            book_service.delete_translation(mongo_db, str(ObjectId()), str(ObjectId()))
