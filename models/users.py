from datetime import datetime, timezone
from werkzeug.security import generate_password_hash

COLLECTION = "users"

PRIVACY_FIELDS = {
    "email": "privacy_email",
    "studentId": "privacy_student_id",
    "lastSeen": "privacy_last_seen",
}


class User:

    def __init__(self, full_name, email, password, student_id=None, role="student",
                 last_password_change=None, special_password_token=None, created_at=None):
        self.full_name = full_name
        self.email = email
        self.password = generate_password_hash(password)
        self.student_id = student_id
        self.role = role  # "student" | "monitor" | "treasurer" | "mayor"
        self.last_password_change = last_password_change
        self.special_password_token = special_password_token
        self.created_at = created_at or datetime.now(timezone.utc)

    # Convert to dictionary for MongoDB
    def to_dict(self):
        data = {
            "full_name": self.full_name,
            "email": self.email,
            "password": self.password,
            "student_id": self.student_id,
            "role": self.role,
            "last_password_change": self.last_password_change,
            "created_at": self.created_at,
        }
        if self.special_password_token:
            data["special_password_token"] = self.special_password_token
        return data


class ProfileStore:
    """User profiles as seen by the settings and mayor screens."""

    def __init__(self, store):
        self._store = store

    def get(self, user_id):
        return self._store.get(COLLECTION, user_id)

    def list_profiles(self):
        return self._store.query(COLLECTION, order_by="full_name")

    def all_ids(self):
        return [p["id"] for p in self._store.query(COLLECTION)]

    def count(self):
        return self._store.count(COLLECTION)

    def merge(self, user_id, fields):
        self._store.set(COLLECTION, user_id, fields, merge=True)

    def update(self, user_id, updates, expected=None):
        return self._store.update(COLLECTION, user_id, updates, expected=expected)


def public_profile(profile):
    """Profile fields safe to send to the browser."""
    if not profile:
        return None
    data = dict(profile)
    data.pop("password", None)
    data.pop("special_password_token", None)
    return data
