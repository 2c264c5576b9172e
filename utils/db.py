"""
utils/db.py
-----------------
This module initializes the MongoDB connection for the Flask application
and wraps it in the document-store interface the portal services use:
point reads/writes by key, field sentinels for atomic updates, capped
write batches and change listeners.
"""

import logging
import threading
import uuid

from bson import ObjectId
from flask_pymongo import PyMongo
from pymongo import DeleteOne, ReplaceOne, UpdateOne
from pymongo.errors import PyMongoError

from utils.errors import PersistenceFailed

logger = logging.getLogger(__name__)

# Create a global MongoDB instance
mongo = PyMongo()


def init_db_connection(app):
    """
    Initialize MongoDB connection with Flask app.
    Reads MONGO_URI from the app config.
    """
    mongo.init_app(app)
    logger.info("MongoDB connection initialized successfully.")
    return mongo


# ==========================================================
# FIELD SENTINELS
# ==========================================================
class Increment:
    def __init__(self, amount=1):
        self.amount = amount


class ArrayUnion:
    def __init__(self, *values):
        self.values = list(values)


class ArrayRemove:
    def __init__(self, *values):
        self.values = list(values)


class _DeleteField:
    def __repr__(self):
        return "DELETE_FIELD"


DELETE_FIELD = _DeleteField()


def to_key(doc_id):
    """Users are stored under ObjectIds, everything else under natural string keys."""
    if isinstance(doc_id, ObjectId):
        return doc_id
    if isinstance(doc_id, str) and ObjectId.is_valid(doc_id):
        return ObjectId(doc_id)
    return doc_id


def from_mongo(doc):
    if doc is None:
        return None
    data = dict(doc)
    data["id"] = str(data.pop("_id"))
    return data


def build_update(updates):
    """Translate a field -> value/sentinel mapping into Mongo update operators."""
    ops = {}
    for field, value in updates.items():
        if value is DELETE_FIELD:
            ops.setdefault("$unset", {})[field] = ""
        elif isinstance(value, Increment):
            ops.setdefault("$inc", {})[field] = value.amount
        elif isinstance(value, ArrayUnion):
            ops.setdefault("$addToSet", {})[field] = {"$each": value.values}
        elif isinstance(value, ArrayRemove):
            ops.setdefault("$pull", {})[field] = {"$in": value.values}
        else:
            ops.setdefault("$set", {})[field] = value
    return ops


class Subscription:
    """Handle returned by on_snapshot; the owner must call unsubscribe()."""

    def __init__(self, close=None):
        self._close = close
        self.closed = False

    def unsubscribe(self):
        if self.closed:
            return
        self.closed = True
        if self._close is not None:
            self._close()


# ==========================================================
# WRITE BATCH
# ==========================================================
class WriteBatch:
    def __init__(self, store, max_operations):
        self._store = store
        self._max_operations = max_operations
        self._ops = []

    def __len__(self):
        return len(self._ops)

    def _add(self, collection, op):
        if len(self._ops) >= self._max_operations:
            raise PersistenceFailed(
                f"A batch may hold at most {self._max_operations} operations."
            )
        self._ops.append((collection, op))
        return self

    def set(self, collection, doc_id, fields, merge=False):
        key = to_key(doc_id)
        if merge:
            return self._add(collection, UpdateOne({"_id": key}, {"$set": dict(fields)}, upsert=True))
        return self._add(collection, ReplaceOne({"_id": key}, dict(fields), upsert=True))

    def update(self, collection, doc_id, updates):
        return self._add(collection, UpdateOne({"_id": to_key(doc_id)}, build_update(updates)))

    def delete(self, collection, doc_id):
        return self._add(collection, DeleteOne({"_id": to_key(doc_id)}))

    def commit(self):
        self._store.commit_batch(self._ops)
        self._ops = []


# ==========================================================
# MONGO DOCUMENT STORE
# ==========================================================
class MongoDocumentStore:
    def __init__(self, db, client=None, max_batch_operations=500, use_transactions=False):
        self._db = db
        self._client = client
        self.max_batch_operations = max_batch_operations
        self._use_transactions = use_transactions and client is not None

    @classmethod
    def from_flask(cls, app):
        return cls(
            mongo.db,
            client=mongo.cx,
            max_batch_operations=app.config.get("MAX_BATCH_OPERATIONS", 500),
            use_transactions=app.config.get("MONGO_TRANSACTIONS", False),
        )

    def new_id(self):
        return uuid.uuid4().hex

    def get(self, collection, doc_id):
        try:
            return from_mongo(self._db[collection].find_one({"_id": to_key(doc_id)}))
        except PyMongoError as exc:
            raise PersistenceFailed(f"Could not read {collection}/{doc_id}: {exc}") from exc

    def set(self, collection, doc_id, fields, merge=False):
        key = to_key(doc_id)
        try:
            if merge:
                self._db[collection].update_one({"_id": key}, {"$set": dict(fields)}, upsert=True)
            else:
                self._db[collection].replace_one({"_id": key}, dict(fields), upsert=True)
        except PyMongoError as exc:
            raise PersistenceFailed(f"Could not write {collection}/{doc_id}: {exc}") from exc

    def update(self, collection, doc_id, updates, expected=None):
        """
        Apply field updates to one existing document.
        `expected` adds equality preconditions; returns False when the
        document is missing or a precondition does not hold.
        """
        query = {"_id": to_key(doc_id)}
        query.update(expected or {})
        try:
            result = self._db[collection].update_one(query, build_update(updates))
        except PyMongoError as exc:
            raise PersistenceFailed(f"Could not update {collection}/{doc_id}: {exc}") from exc
        return result.matched_count == 1

    def delete(self, collection, doc_id):
        try:
            self._db[collection].delete_one({"_id": to_key(doc_id)})
        except PyMongoError as exc:
            raise PersistenceFailed(f"Could not delete {collection}/{doc_id}: {exc}") from exc

    def query(self, collection, filters=None, order_by=None, descending=False, limit=None):
        try:
            cursor = self._db[collection].find(filters or {})
            if order_by:
                cursor = cursor.sort(order_by, -1 if descending else 1)
            if limit:
                cursor = cursor.limit(limit)
            return [from_mongo(doc) for doc in cursor]
        except PyMongoError as exc:
            raise PersistenceFailed(f"Could not query {collection}: {exc}") from exc

    def count(self, collection, filters=None):
        try:
            return self._db[collection].count_documents(filters or {})
        except PyMongoError as exc:
            raise PersistenceFailed(f"Could not count {collection}: {exc}") from exc

    def batch(self):
        return WriteBatch(self, self.max_batch_operations)

    def commit_batch(self, ops):
        """Write the batch in order, grouped into one bulk_write per collection run."""
        groups = []
        for collection, op in ops:
            if groups and groups[-1][0] == collection:
                groups[-1][1].append(op)
            else:
                groups.append((collection, [op]))
        try:
            if self._use_transactions:
                with self._client.start_session() as session:
                    with session.start_transaction():
                        for collection, requests in groups:
                            self._db[collection].bulk_write(requests, ordered=True, session=session)
            else:
                for collection, requests in groups:
                    self._db[collection].bulk_write(requests, ordered=True)
        except PyMongoError as exc:
            raise PersistenceFailed(f"Batch commit failed: {exc}") from exc

    def on_snapshot(self, collection, callback, filters=None, order_by=None, descending=False):
        """
        Call `callback` with the matching documents now and again after every
        change to the collection. Runs on a daemon thread until unsubscribed.
        """
        try:
            stream = self._db[collection].watch()
        except PyMongoError as exc:
            raise PersistenceFailed(f"Could not listen to {collection}: {exc}") from exc

        subscription = Subscription(stream.close)

        def emit():
            callback(self.query(collection, filters, order_by=order_by, descending=descending))

        def listen():
            try:
                for _change in stream:
                    if subscription.closed:
                        break
                    emit()
            except (PyMongoError, PersistenceFailed) as exc:
                if not subscription.closed:
                    logger.warning("Listener on %s stopped: %s", collection, exc)

        try:
            emit()
        except PersistenceFailed:
            subscription.unsubscribe()
            raise
        threading.Thread(target=listen, name=f"snapshot-{collection}", daemon=True).start()
        return subscription
