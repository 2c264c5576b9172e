"""
utils/privacy.py
-----------------
Profile visibility settings. The primary store is the source of truth; the
mirror store is a best-effort cache and never decides success.
"""

import logging

from models.users import PRIVACY_FIELDS
from utils.errors import InvalidSetting, PersistenceFailed

logger = logging.getLogger(__name__)

PRIVACY_LEVELS = ("public", "friends", "only_me")
DEFAULT_LEVEL = "only_me"

MIRROR_COLLECTION = "profiles"


def read_privacy(profile):
    return {key: (profile or {}).get(field) or DEFAULT_LEVEL for key, field in PRIVACY_FIELDS.items()}


def normalize_privacy(settings):
    fields = {}
    for key, field in PRIVACY_FIELDS.items():
        value = (settings or {}).get(key) or DEFAULT_LEVEL
        if value not in PRIVACY_LEVELS:
            raise InvalidSetting(f"Invalid visibility for {key}: {value}")
        fields[field] = value
    return fields


def save_privacy(profiles, user_id, settings, mirror=None):
    fields = normalize_privacy(settings)
    profiles.merge(user_id, fields)

    if mirror is not None:
        try:
            mirror.set(MIRROR_COLLECTION, user_id, fields, merge=True)
        except PersistenceFailed as exc:
            logger.warning("Mirror sync warning (non-critical): %s", exc.message)

    return read_privacy(fields)
