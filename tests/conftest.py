"""Shared fixtures: an in-memory Firestore double and a Flask test client."""

import copy
import threading
import uuid
from datetime import datetime, timezone
from functools import wraps

import pytest
from firebase_admin import firestore
from google.api_core.exceptions import NotFound, ServiceUnavailable
from google.cloud.firestore_v1.transforms import Increment

from config import TestConfig
from readerboard import create_app
from readerboard.firebase_init import set_db


def _apply(existing, data, merge):
    result = copy.deepcopy(existing) if merge and existing is not None else {}
    for key, value in data.items():
        if value is firestore.DELETE_FIELD:
            result.pop(key, None)
        elif isinstance(value, Increment):
            result[key] = (result.get(key) or 0) + value.value
        else:
            result[key] = copy.deepcopy(value)
    return result


class FakeSnapshot:
    def __init__(self, reference, data):
        self.reference = reference
        self.id = reference.id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None


class FakeDocumentRef:
    def __init__(self, db, path):
        self._db = db
        self.path = path
        self.id = path.rsplit('/', 1)[-1]

    def get(self, transaction=None):
        self._db.check_read(self.path)
        return FakeSnapshot(self, self._db.docs.get(self.path))

    def set(self, data, merge=False):
        self._db.write(self.path, data, merge)

    def update(self, data):
        if self.path not in self._db.docs:
            raise NotFound(f'No document to update: {self.path}')
        self._db.write(self.path, data, True)

    def delete(self):
        self._db.docs.pop(self.path, None)

    def collection(self, name):
        return FakeCollection(self._db, f'{self.path}/{name}')


class FakeQuery:
    def __init__(self, db, path, filters=(), order=None, limit_to=None):
        self._db = db
        self._path = path
        self._filters = list(filters)
        self._order = order
        self._limit = limit_to

    def where(self, filter):
        return FakeQuery(self._db, self._path, self._filters + [filter], self._order, self._limit)

    def order_by(self, field_path, direction='ASCENDING'):
        return FakeQuery(self._db, self._path, self._filters, (field_path, direction), self._limit)

    def limit(self, count):
        return FakeQuery(self._db, self._path, self._filters, self._order, count)

    def _matches(self, data):
        for f in self._filters:
            if f.op_string != '==':
                raise NotImplementedError(f.op_string)
            if data.get(f.field_path) != f.value:
                return False
        return True

    def stream(self, transaction=None):
        self._db.check_read(self._path)
        prefix = self._path + '/'
        rows = []
        for path, data in list(self._db.docs.items()):
            if not path.startswith(prefix) or '/' in path[len(prefix):]:
                continue
            if self._matches(data):
                rows.append((path, data))
        if self._order:
            field_path, direction = self._order
            rows = [row for row in rows if field_path in row[1]]
            rows.sort(key=lambda row: row[1][field_path], reverse=(direction == 'DESCENDING'))
        if self._limit is not None:
            rows = rows[:self._limit]
        for path, data in rows:
            yield FakeSnapshot(FakeDocumentRef(self._db, path), copy.deepcopy(data))


class FakeCollection(FakeQuery):
    def __init__(self, db, path):
        super().__init__(db, path)

    def document(self, doc_id=None):
        return FakeDocumentRef(self._db, f'{self._path}/{doc_id or uuid.uuid4().hex[:20]}')

    def add(self, data):
        ref = self.document()
        ref.set(data)
        return datetime.now(timezone.utc), ref


class FakeBatch:
    def __init__(self, db):
        self._db = db
        self._ops = []

    def set(self, ref, data, merge=False):
        self._ops.append(lambda: ref.set(data, merge=merge))

    def update(self, ref, data):
        self._ops.append(lambda: ref.update(data))

    def delete(self, ref):
        self._ops.append(ref.delete)

    def commit(self):
        for op in self._ops:
            op()
        self._ops = []


class FakeTransaction(FakeBatch):
    """Buffers writes until the transactional function returns."""


def fake_transactional(fn):
    @wraps(fn)
    def run(transaction, *args, **kwargs):
        with transaction._db.lock:
            result = fn(transaction, *args, **kwargs)
            transaction.commit()
        return result
    return run


class FakeFirestore:
    def __init__(self):
        self.docs = {}
        self.failing_paths = set()
        self.lock = threading.RLock()

    def check_read(self, path):
        if path in self.failing_paths:
            raise ServiceUnavailable(f'simulated outage reading {path}')

    def write(self, path, data, merge):
        self.docs[path] = _apply(self.docs.get(path), data, merge)

    def collection(self, name):
        return FakeCollection(self, name)

    def batch(self):
        return FakeBatch(self)

    def transaction(self):
        return FakeTransaction(self)

    # Test helpers

    def put(self, path, data):
        self.docs[path] = copy.deepcopy(data)

    def data(self, path):
        return self.docs.get(path)

    def children(self, path):
        prefix = path + '/'
        return {p: d for p, d in self.docs.items() if p.startswith(prefix) and '/' not in p[len(prefix):]}


@pytest.fixture
def fake_db(monkeypatch):
    db = FakeFirestore()
    monkeypatch.setattr(firestore, 'transactional', fake_transactional)
    set_db(db)
    yield db
    set_db(None)


@pytest.fixture
def app(fake_db):
    app = create_app(TestConfig)
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def dune():
    return {
        'key': '/works/OL123W',
        'title': 'Dune',
        'author_name': ['Frank Herbert'],
        'cover_i': 11481354,
        'first_publish_year': 1965,
    }
