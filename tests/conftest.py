import os
import tempfile

# Uploads must land in the directory the static mount serves
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="library-uploads-")

import mongomock
import pytest
from fastapi.testclient import TestClient

from database import ensure_indexes, get_db
from main import app


class RecordingStore:
    """Upload store that keeps files in memory"""

    def __init__(self):
        self.files = {}

    def store(self, data, name_hint):
        path = f"/uploads/{len(self.files)}-{name_hint}"
        self.files[path] = data
        return path


@pytest.fixture
def mongo_db():
    """In-memory database with the production indexes"""
    db = mongomock.MongoClient(tz_aware=True)["scripture_library_test"]
    ensure_indexes(db)
    return db


@pytest.fixture
def store():
    """Upload store for service tests that should not touch the disk"""
    return RecordingStore()


@pytest.fixture
def client(mongo_db):
    """API client bound to the in-memory database and the configured upload dir"""
    app.dependency_overrides[get_db] = lambda: mongo_db
    yield TestClient(app)
    app.dependency_overrides.clear()
