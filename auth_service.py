"""
Admin authentication

There is a single admin account, created once through the setup flow.
Login hands out a random bearer token; tokens are not stored and nothing
verifies them later.

The setup flow checks for an existing admin and then inserts, without a
transaction. Two setup requests racing each other can therefore both pass
the check. With the same username the unique index rejects the second one;
with different usernames two admin records are created. This is a known,
accepted race.
"""

import hashlib
import hmac
import logging
import secrets
from typing import Optional, Tuple

from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from config import PBKDF2_ITERATIONS
from database import utcnow
from errors import AlreadyExists, InvalidCredentials, ValidationError
from schemas import Admin

logger = logging.getLogger(__name__)

COLLECTION = "admin"


def hash_password(password: str, salt: str, iterations: int = PBKDF2_ITERATIONS) -> str:
    # The salt is used as its hex text, not the decoded bytes
    return hashlib.pbkdf2_hmac(
        "sha512", password.encode("utf-8"), salt.encode("utf-8"), iterations, dklen=64
    ).hex()


def verify_password(password: str, salt: str, password_hash: str, iterations: int = 1000) -> bool:
    return hmac.compare_digest(hash_password(password, salt, iterations), password_hash)


def _require_credentials(username: Optional[str], password: Optional[str]) -> Tuple[str, str]:
    username = (username or "").strip()
    if not username or not password:
        raise ValidationError("Username and password required")
    return username, password


def check_admin_exists(db: Database) -> bool:
    return db[COLLECTION].find_one({}, {"_id": 1}) is not None


def setup_admin(db: Database, username: Optional[str], password: Optional[str]) -> None:
    if check_admin_exists(db):
        raise AlreadyExists("Admin already exists")

    username, password = _require_credentials(username, password)
    salt = secrets.token_hex(16)
    admin = Admin(
        username=username,
        password_hash=hash_password(password, salt, PBKDF2_ITERATIONS),
        salt=salt,
        iterations=PBKDF2_ITERATIONS,
        created_at=utcnow(),
    )
    try:
        db[COLLECTION].insert_one(admin.model_dump())
    except DuplicateKeyError:
        raise AlreadyExists("Admin already exists")
    logger.info(f"Admin account created: {username}")


def login(db: Database, username: Optional[str], password: Optional[str]) -> Tuple[str, str]:
    """Return (token, username) for valid credentials."""
    username, password = _require_credentials(username, password)

    doc = db[COLLECTION].find_one({"username": username})
    if not doc or not verify_password(
        password, doc.get("salt", ""), doc.get("password_hash", ""), doc.get("iterations", 1000)
    ):
        logger.warning("Rejected admin login attempt")
        raise InvalidCredentials()

    logger.info(f"Admin logged in: {doc['username']}")
    return secrets.token_hex(32), doc["username"]
