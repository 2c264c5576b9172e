from datetime import datetime, timezone

COLLECTION = "events"
EVENT_TYPES = ("general", "academic", "deadline")


class Event:

    def __init__(self, title, event_date, event_time=None, event_type="general",
                 is_public=True, user_id=None, created_at=None):
        self.title = title
        self.event_date = event_date
        self.event_time = event_time
        self.event_type = event_type
        self.is_public = is_public
        # None marks an official event posted from the mayor dashboard
        self.user_id = user_id
        self.created_at = created_at or datetime.now(timezone.utc)

    def to_dict(self):
        return {
            "title": self.title,
            "event_date": self.event_date,
            "event_time": self.event_time,
            "event_type": self.event_type,
            "is_public": self.is_public,
            "user_id": self.user_id,
            "created_at": self.created_at,
        }


class EventStore:

    def __init__(self, store):
        self._store = store

    def list_events(self):
        return self._store.query(COLLECTION, order_by="event_date", descending=True)

    def create(self, event):
        event_id = self._store.new_id()
        self._store.set(COLLECTION, event_id, event.to_dict())
        return event_id

    def delete(self, event_id):
        if self._store.get(COLLECTION, event_id) is None:
            return False
        self._store.delete(COLLECTION, event_id)
        return True
