"""
Runtime configuration

Values come from the process environment, optionally seeded from a `.env`
file in the working directory.
"""

import os

from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME", "scripture_library")

UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
UPLOAD_URL_PREFIX = "/" + os.getenv("UPLOAD_URL_PREFIX", "/uploads").strip("/")

PORT = int(os.getenv("PORT", 8000))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Hashes written by the original admin setup used 1000 rounds
PBKDF2_ITERATIONS = max(int(os.getenv("PBKDF2_ITERATIONS", 1000)), 1000)
