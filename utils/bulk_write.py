"""
utils/bulk_write.py
-----------------
Chunked batch writes and the staged local state that goes with them.

Writes are split into batches no larger than the store's per-batch limit
and committed one batch at a time, in order. Every write is a full upsert
keyed by a natural id, so re-running the same job after a failure is safe.
"""

import logging

from utils.errors import BulkWritePartialFailure, InvalidStep, PersistenceFailed

logger = logging.getLogger(__name__)

# Mongo/Firestore-style stores cap a batch at 500 operations; stay under it
BATCH_CHUNK_SIZE = 450


def chunked(items, size=BATCH_CHUNK_SIZE):
    if size < 1:
        raise ValueError("chunk size must be positive")
    items = list(items)
    return [items[i:i + size] for i in range(0, len(items), size)]


def commit_in_chunks(store, writes, chunk_size=BATCH_CHUNK_SIZE):
    """
    Upsert every (collection, doc_id, fields) in `writes`, one batch per
    chunk. Returns the number of documents written. If a batch fails,
    raises BulkWritePartialFailure carrying how many were already committed.
    """
    total = len(writes)
    committed = 0
    for number, chunk in enumerate(chunked(writes, chunk_size), start=1):
        try:
            batch = store.batch()
            for collection, doc_id, fields in chunk:
                batch.set(collection, doc_id, fields)
            batch.commit()
        except PersistenceFailed as exc:
            logger.error("Batch %d failed with %d of %d writes committed: %s",
                         number, committed, total, exc.message)
            raise BulkWritePartialFailure(committed, total, cause=exc) from exc
        committed += len(chunk)
        logger.info("Committed batch %d (%d/%d)", number, committed, total)
    return committed


class StagedState:
    """
    Keyed local state with at most one pending stage on top.

    `visible` shows the stage while its writes are in flight. The stage is
    folded into the committed state only after the writes succeed, and
    dropped if they fail, which leaves `visible` at its pre-update snapshot.
    """

    def __init__(self, committed=None):
        self._committed = dict(committed or {})
        self._pending = None

    @property
    def committed(self):
        return dict(self._committed)

    @property
    def pending(self):
        return self._pending is not None

    @property
    def visible(self):
        view = dict(self._committed)
        view.update(self._pending or {})
        return view

    def stage(self, updates):
        if self._pending is not None:
            raise InvalidStep("Another update is still in progress.")
        self._pending = dict(updates)

    def commit(self):
        self._committed.update(self._pending or {})
        self._pending = None

    def discard(self):
        self._pending = None

    def apply(self, updates, write):
        """Stage `updates`, run `write()`, then commit or discard the stage."""
        self.stage(updates)
        try:
            result = write()
        except Exception:
            self.discard()
            raise
        self.commit()
        return result
