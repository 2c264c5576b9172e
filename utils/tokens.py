"""
utils/tokens.py
-----------------
Administrator-issued bypass tokens. A user holds at most one; it is
consumed by the next password change or revoked by an administrator.
"""

import logging
import secrets
import string

from utils.db import DELETE_FIELD
from utils.errors import NotFound, TokenAlreadyIssued

logger = logging.getLogger(__name__)

TOKEN_PREFIX = "sk_live_"
TOKEN_ALPHABET = string.ascii_letters + string.digits


def generate_token(length=32):
    return TOKEN_PREFIX + "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


def issue_token(profiles, user_id):
    profile = profiles.get(user_id)
    if not profile:
        raise NotFound("User not found.")
    if profile.get("special_password_token"):
        raise TokenAlreadyIssued()

    token = generate_token()
    # Only write when no token is outstanding, even if another admin raced us
    if not profiles.update(user_id, {"special_password_token": token},
                           expected={"special_password_token": None}):
        raise TokenAlreadyIssued()

    logger.info("Issued bypass token for user %s", user_id)
    return token


def revoke_token(profiles, user_id):
    if not profiles.update(user_id, {"special_password_token": DELETE_FIELD}):
        raise NotFound("User not found.")
    logger.info("Revoked bypass token for user %s", user_id)


def active_tokens(profiles):
    return [p for p in profiles.list_profiles() if p.get("special_password_token")]


def token_candidates(profiles, search=""):
    term = (search or "").strip().lower()
    return [
        p for p in profiles.list_profiles()
        if not p.get("special_password_token")
        and (term in (p.get("full_name") or "").lower() or term in (p.get("student_id") or "").lower())
    ]
