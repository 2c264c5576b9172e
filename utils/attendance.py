"""
utils/attendance.py
-----------------
Attendance monitoring for a single day: mark one student or every student
currently shown, with staged local state that only settles once the store
confirms the writes.
"""

import logging

from models.attendance import COLLECTION, STATUSES, AttendanceRecord, AttendanceStore
from utils.bulk_write import BATCH_CHUNK_SIZE, StagedState, commit_in_chunks
from utils.errors import InvalidSetting
from utils.password_reset import utc_now

logger = logging.getLogger(__name__)


def filter_profiles(profiles, search=""):
    term = (search or "").strip().lower()
    if not term:
        return list(profiles)
    return [
        p for p in profiles
        if term in (p.get("full_name") or "").lower() or term in (p.get("student_id") or "").lower()
    ]


def _view(record):
    data = record.to_dict()
    data["id"] = record.id
    return data


class AttendanceBoard:

    def __init__(self, store, date, clock=utc_now, chunk_size=BATCH_CHUNK_SIZE):
        self._store = store
        self._records = AttendanceStore(store)
        self._clock = clock
        self.chunk_size = chunk_size
        self.date = date
        self.state = StagedState(self._records.for_date(date))

    @property
    def records(self):
        return self.state.visible

    def _check_status(self, status):
        if status not in STATUSES:
            raise InvalidSetting(f"Unknown attendance status: {status}")

    def mark(self, user_id, status, marked_by):
        self._check_status(status)
        record = AttendanceRecord(user_id, self.date, status, marked_by, marked_at=self._clock())
        self.state.apply({user_id: _view(record)}, lambda: self._records.upsert(record))
        return self.records[user_id]

    def bulk_mark(self, user_ids, status, marked_by):
        """Mark every user in `user_ids`; returns how many records were written."""
        self._check_status(status)
        user_ids = list(dict.fromkeys(user_ids))
        if not user_ids:
            return 0

        marked_at = self._clock()
        records = [AttendanceRecord(uid, self.date, status, marked_by, marked_at=marked_at)
                   for uid in user_ids]
        writes = [(COLLECTION, rec.id, rec.to_dict()) for rec in records]

        written = self.state.apply(
            {rec.user_id: _view(rec) for rec in records},
            lambda: commit_in_chunks(self._store, writes, self.chunk_size),
        )
        logger.info("%s marked %d students %s on %s", marked_by, written, status, self.date)
        return written
