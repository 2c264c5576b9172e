from datetime import datetime, timezone

COLLECTION = "attendance"

STATUSES = ("Present", "Absent", "Late", "Excused")


def record_id(date, user_id):
    # One record per user per day
    return f"{date}_{user_id}"


class AttendanceRecord:

    def __init__(self, user_id, date, status, marked_by, marked_at=None):
        self.user_id = user_id
        self.date = date
        self.status = status
        self.marked_by = marked_by
        self.marked_at = marked_at or datetime.now(timezone.utc)

    @property
    def id(self):
        return record_id(self.date, self.user_id)

    def to_dict(self):
        return {
            "user_id": self.user_id,
            "date": self.date,
            "status": self.status,
            "marked_by": self.marked_by,
            "marked_at": self.marked_at,
        }


class AttendanceStore:

    def __init__(self, store):
        self._store = store

    def for_date(self, date):
        records = self._store.query(COLLECTION, {"date": date})
        return {rec["user_id"]: rec for rec in records}

    def upsert(self, record):
        # Full replace: last writer wins, nothing merged from the previous status
        self._store.set(COLLECTION, record.id, record.to_dict())
