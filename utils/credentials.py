"""
utils/credentials.py
-----------------
Password storage for portal users. Credentials live on the user document
as a werkzeug hash, next to the profile fields that guard password changes.
"""

from werkzeug.security import check_password_hash, generate_password_hash

from utils.errors import CredentialUpdateFailed, PersistenceFailed

USERS = "users"


class MongoCredentialStore:
    def __init__(self, store):
        self._store = store

    def get_current_user_email(self, user_id):
        user = self._store.get(USERS, user_id)
        if not user:
            return None
        return user.get("email") or None

    def verify(self, email, password):
        users = self._store.query(USERS, {"email": email}, limit=1)
        if users and check_password_hash(users[0].get("password", ""), password):
            return users[0]
        return None

    def update_credential(self, user_id, new_password, profile_updates=None, expected=None):
        """
        Replace the stored password and apply `profile_updates` in the same
        single-document update. Returns False when `expected` no longer holds.
        """
        updates = {"password": generate_password_hash(new_password)}
        updates.update(profile_updates or {})
        try:
            return self._store.update(USERS, user_id, updates, expected=expected)
        except PersistenceFailed as exc:
            raise CredentialUpdateFailed(exc.message) from exc
