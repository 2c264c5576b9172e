"""
config.py
-----------------
Application settings, read from the environment (and a local .env file).
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _env_bool(key, default=False):
    value = os.environ.get(key)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-change-me")

    # Primary document store
    MONGO_URI = os.environ.get("MONGO_URI", "mongodb://localhost:27017/StudentPortal")
    MONGO_TRANSACTIONS = _env_bool("MONGO_TRANSACTIONS")

    # Secondary store, only ever used as an advisory mirror
    MIRROR_MONGO_URI = os.environ.get("MIRROR_MONGO_URI")

    # Outgoing mail
    SMTP_HOST = os.environ.get("SMTP_HOST")
    SMTP_PORT = int(os.environ.get("SMTP_PORT", "587"))
    SMTP_USER = os.environ.get("SMTP_USER")
    SMTP_PASSWORD = os.environ.get("SMTP_PASSWORD")
    SMTP_FROM = os.environ.get("SMTP_FROM", os.environ.get("SMTP_USER", ""))
    SMTP_TIMEOUT = 10

    # Password reset
    PASSWORD_CHANGE_COOLDOWN_DAYS = int(os.environ.get("PASSWORD_CHANGE_COOLDOWN_DAYS", "30"))
    MIN_PASSWORD_LENGTH = int(os.environ.get("MIN_PASSWORD_LENGTH", "6"))
    MAX_VERIFY_ATTEMPTS = int(os.environ.get("MAX_VERIFY_ATTEMPTS", "5"))
    # Non-production only: show the code on screen when mail delivery fails
    ALLOW_CODE_DISPLAY_FALLBACK = _env_bool("ALLOW_CODE_DISPLAY_FALLBACK")

    # Bulk writes
    BATCH_CHUNK_SIZE = int(os.environ.get("BATCH_CHUNK_SIZE", "450"))
    MAX_BATCH_OPERATIONS = int(os.environ.get("MAX_BATCH_OPERATIONS", "500"))

    # Seconds between keep-alive comments on idle notification streams
    STREAM_KEEPALIVE_SECONDS = float(os.environ.get("STREAM_KEEPALIVE_SECONDS", "15"))

    PORTAL_NAME = os.environ.get("PORTAL_NAME", "BseePortal")
    TREASURER_PORTAL_URL = os.environ.get(
        "TREASURER_PORTAL_URL", "https://treasurer-s-portal-nchx.vercel.app/"
    )


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    MONGO_URI = None
    MIRROR_MONGO_URI = None
    ALLOW_CODE_DISPLAY_FALLBACK = False
    MAX_VERIFY_ATTEMPTS = 5
    STREAM_KEEPALIVE_SECONDS = 0.1
