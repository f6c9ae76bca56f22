"""
Uploaded asset storage

Cover images and translation attachments go through the same store. Files
are written under a server controlled directory with an upload timestamp
prefix and exposed back through a public path.
"""

import logging
import os
import time
from dataclasses import dataclass
from typing import Optional, Protocol

from config import UPLOAD_DIR, UPLOAD_URL_PREFIX

logger = logging.getLogger(__name__)


@dataclass
class UploadedFile:
    data: bytes
    filename: str


class UploadStore(Protocol):
    def store(self, data: bytes, name_hint: str) -> str:
        ...


class LocalUploadStore:
    def __init__(self, directory: str = UPLOAD_DIR, url_prefix: str = UPLOAD_URL_PREFIX):
        self.directory = directory
        self.url_prefix = url_prefix.rstrip("/")

    def store(self, data: bytes, name_hint: str) -> str:
        os.makedirs(self.directory, exist_ok=True)
        # Drop any client supplied directories (both separator styles)
        base = os.path.basename((name_hint or "").replace("\\", "/")).strip() or "file"
        filename = f"{int(time.time() * 1000)}-{base}"
        with open(os.path.join(self.directory, filename), "wb") as f:
            f.write(data)
        logger.info(f"Stored upload {filename} ({len(data)} bytes)")
        return f"{self.url_prefix}/{filename}"


def save_upload(store: UploadStore, upload: Optional[UploadedFile]) -> Optional[str]:
    """Store an upload if one was sent and return its public path."""
    if upload is None or not upload.filename:
        return None
    return store.store(upload.data, upload.filename)


upload_store = LocalUploadStore()


def get_upload_store() -> UploadStore:
    return upload_store
