from datetime import datetime, timezone

COLLECTION = "notifications"


class Notification:

    def __init__(self, user_id, title, message, notification_type="announcement",
                 is_read=False, created_at=None):
        self.user_id = user_id
        self.title = title
        self.message = message
        self.notification_type = notification_type
        self.is_read = is_read
        self.created_at = created_at or datetime.now(timezone.utc)

    def to_dict(self):
        return {
            "user_id": self.user_id,
            "title": self.title,
            "message": self.message,
            "notification_type": self.notification_type,
            "is_read": self.is_read,
            "created_at": self.created_at,
        }


class NotificationStore:

    def __init__(self, store):
        self._store = store

    def for_user(self, user_id, limit=None):
        return self._store.query(
            COLLECTION, {"user_id": user_id}, order_by="created_at", descending=True, limit=limit
        )

    def mark_read(self, user_id, notification_id):
        # Only the recipient may flip is_read; nothing else on a notification changes
        return self._store.update(
            COLLECTION, notification_id, {"is_read": True}, expected={"user_id": user_id}
        )

    def watch(self, user_id, callback):
        return self._store.on_snapshot(
            COLLECTION, callback, filters={"user_id": user_id},
            order_by="created_at", descending=True,
        )
