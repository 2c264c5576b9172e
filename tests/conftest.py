import itertools
from collections import defaultdict
from copy import deepcopy
from datetime import datetime, timedelta, timezone

import pytest

from app import create_app
from config import TestConfig
from models.users import User
from utils.db import DELETE_FIELD, ArrayRemove, ArrayUnion, Increment, Subscription
from utils.errors import DeliveryFailed, PersistenceFailed
from utils.services import PortalServices

NOW = datetime(2026, 10, 16, 12, 0, tzinfo=timezone.utc)


# ==========================================================
# IN-MEMORY DOCUMENT STORE
# ==========================================================
def _walk(doc, field):
    # Dotted names address nested maps, as in Mongo ("reactions.👍")
    *parents, key = field.split(".")
    for part in parents:
        doc = doc.setdefault(part, {})
    return doc, key


def _apply_updates(doc, updates):
    for field, value in updates.items():
        target, key = _walk(doc, field)
        if value is DELETE_FIELD:
            target.pop(key, None)
        elif isinstance(value, Increment):
            target[key] = target.get(key, 0) + value.amount
        elif isinstance(value, ArrayUnion):
            items = list(target.get(key, []))
            items.extend(v for v in value.values if v not in items)
            target[key] = items
        elif isinstance(value, ArrayRemove):
            target[key] = [v for v in target.get(key, []) if v not in value.values]
        else:
            target[key] = deepcopy(value)


class FakeBatch:

    def __init__(self, store):
        self._store = store
        self._ops = []

    def __len__(self):
        return len(self._ops)

    def _add(self, op):
        if len(self._ops) >= self._store.max_batch_operations:
            raise PersistenceFailed(
                f"A batch may hold at most {self._store.max_batch_operations} operations."
            )
        self._ops.append(op)
        return self

    def set(self, collection, doc_id, fields, merge=False):
        return self._add(("set", collection, doc_id, fields, merge))

    def update(self, collection, doc_id, updates):
        return self._add(("update", collection, doc_id, updates, None))

    def delete(self, collection, doc_id):
        return self._add(("delete", collection, doc_id, None, None))

    def commit(self):
        self._store.commit_batch(self._ops)
        self._ops = []


class FakeStore:
    """Dict-backed stand-in for MongoDocumentStore with failure injection."""

    def __init__(self, max_batch_operations=500):
        self.collections = defaultdict(dict)
        self.max_batch_operations = max_batch_operations
        self.fail_writes = False
        self.fail_on_commit = set()
        self.commit_attempts = 0
        self.commits = []
        self.listeners = []
        self._ids = itertools.count(1)

    def _check(self):
        if self.fail_writes:
            raise PersistenceFailed("store unavailable")

    def _notify(self, collection):
        for listened, callback, options in list(self.listeners):
            if listened == collection:
                callback(self.query(collection, **options))

    def new_id(self):
        return f"gen{next(self._ids)}"

    def get(self, collection, doc_id):
        doc = self.collections[collection].get(doc_id)
        if doc is None:
            return None
        data = deepcopy(doc)
        data["id"] = doc_id
        return data

    def _set(self, collection, doc_id, fields, merge):
        docs = self.collections[collection]
        if merge and doc_id in docs:
            docs[doc_id].update(deepcopy(dict(fields)))
        else:
            docs[doc_id] = deepcopy(dict(fields))

    def set(self, collection, doc_id, fields, merge=False):
        self._check()
        self._set(collection, doc_id, fields, merge)
        self._notify(collection)

    def update(self, collection, doc_id, updates, expected=None):
        self._check()
        doc = self.collections[collection].get(doc_id)
        if doc is None:
            return False
        for field, value in (expected or {}).items():
            if doc.get(field) != value:
                return False
        _apply_updates(doc, updates)
        self._notify(collection)
        return True

    def delete(self, collection, doc_id):
        self._check()
        self.collections[collection].pop(doc_id, None)
        self._notify(collection)

    def query(self, collection, filters=None, order_by=None, descending=False, limit=None):
        docs = [self.get(collection, doc_id) for doc_id in self.collections[collection]]
        for field, value in (filters or {}).items():
            docs = [d for d in docs if d.get(field) == value]
        if order_by:
            docs.sort(key=lambda d: (d.get(order_by) is None, d.get(order_by)), reverse=descending)
        if limit:
            docs = docs[:limit]
        return docs

    def count(self, collection, filters=None):
        return len(self.query(collection, filters))

    def batch(self):
        return FakeBatch(self)

    def commit_batch(self, ops):
        self.commit_attempts += 1
        if self.fail_writes or self.commit_attempts in self.fail_on_commit:
            raise PersistenceFailed("batch rejected")
        touched = set()
        for kind, collection, doc_id, fields, merge in ops:
            if kind == "set":
                self._set(collection, doc_id, fields, merge)
            elif kind == "update":
                _apply_updates(self.collections[collection].setdefault(doc_id, {}), fields)
            else:
                self.collections[collection].pop(doc_id, None)
            touched.add(collection)
        self.commits.append(len(ops))
        for collection in touched:
            self._notify(collection)

    def on_snapshot(self, collection, callback, filters=None, order_by=None, descending=False):
        options = {"filters": filters, "order_by": order_by, "descending": descending}
        listener = (collection, callback, options)
        self.listeners.append(listener)
        callback(self.query(collection, **options))
        return Subscription(lambda: self.listeners.remove(listener))


class FakeMailer:

    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, to, subject, html_body):
        if self.fail:
            raise DeliveryFailed("mail relay down")
        self.sent.append({"to": list(to), "subject": subject, "html": html_body})


class FakeClock:

    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def config_dict(config_object=TestConfig):
    return {key: getattr(config_object, key) for key in dir(config_object) if key.isupper()}


def add_user(store, user_id, full_name, email, password="secret123", **fields):
    store.collections["users"][user_id] = User(full_name, email, password, **fields).to_dict()
    return user_id


def add_raw_users(store, count):
    """Cheap profiles (no password hashing) for bulk tests."""
    ids = []
    for i in range(count):
        user_id = f"user{i:04d}"
        store.collections["users"][user_id] = {
            "full_name": f"Student {i:04d}",
            "student_id": f"S{i:04d}",
            "email": f"student{i}@example.edu",
            "role": "student",
        }
        ids.append(user_id)
    return ids


# ==========================================================
# FIXTURES
# ==========================================================
@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def services(store, mailer, clock):
    from utils.credentials import MongoCredentialStore

    return PortalServices(config_dict(), store, MongoCredentialStore(store), mailer, clock=clock)


@pytest.fixture
def app(services):
    return create_app(TestConfig, services=services)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def student(store):
    return add_user(store, "stu1", "Ana Reyes", "ana@example.edu", student_id="2024-001")


@pytest.fixture
def mayor(store):
    return add_user(store, "mayor1", "Ben Cruz", "ben@example.edu", role="mayor", student_id="2024-900")


def login(client, email, password="secret123"):
    response = client.post("/login", json={"email": email, "password": password})
    assert response.status_code == 200
    return response
