import uuid
from typing import Any, Dict, List, Optional, Tuple

import pytest
from firebase_admin import firestore

from ministry_notify.app.config import Settings
from ministry_notify.app.firebase import PushReport


class FakeSnapshot:
    def __init__(self, reference, data: Optional[Dict[str, Any]]):
        self.reference = reference
        self.id = reference.id
        self._data = data

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self):
        return dict(self._data) if self._data is not None else None


class FakeDocumentRef:
    def __init__(self, store: "FakeFirestore", path: Tuple[str, ...]):
        self._store = store
        self.path = path
        self.id = path[-1]

    def get(self):
        self._store.reads.append("/".join(self.path))
        self._store.check_reads()
        return FakeSnapshot(self, self._store.docs.get(self.path))

    def collection(self, name: str) -> "FakeCollection":
        return FakeCollection(self._store, self.path + (name,))

    def set(self, data, merge=False):
        self._store.apply_set(self.path, data, merge)

    def update(self, data):
        self._store.apply_update(self.path, data)


class FakeQuery:
    def __init__(self, store: "FakeFirestore", path: Tuple[str, ...], filters=(), limit_to=None):
        self._store = store
        self.path = path
        self._filters = tuple(filters)
        self._limit = limit_to

    def where(self, field, op, value):
        return FakeQuery(self._store, self.path, self._filters + ((field, op, value),), self._limit)

    def limit(self, count):
        return FakeQuery(self._store, self.path, self._filters, count)

    def _matches(self, data):
        for field, op, value in self._filters:
            current = data.get(field)
            if op == '==' and current != value:
                return False
            if op == 'array_contains' and not (isinstance(current, list) and value in current):
                return False
        return True

    def get(self):
        self._store.queries.append(("/".join(self.path), self._filters))
        self._store.check_reads()
        results = []
        for path, data in self._store.docs.items():
            if path[:-1] == self.path and self._matches(data):
                results.append(FakeSnapshot(FakeDocumentRef(self._store, path), data))
        return results[:self._limit] if self._limit else results

    stream = get


class FakeCollection(FakeQuery):
    def document(self, doc_id: Optional[str] = None) -> FakeDocumentRef:
        return FakeDocumentRef(self._store, self.path + (doc_id or uuid.uuid4().hex,))


class FakeBatch:
    def __init__(self, store: "FakeFirestore"):
        self._store = store
        self._ops = []

    def set(self, ref, data, merge=False):
        self._ops.append(("set", ref.path, data, merge))

    def update(self, ref, data):
        self._ops.append(("update", ref.path, data, False))

    def commit(self):
        self._store.commits.append(len(self._ops))
        if self._store.fail_commit:
            raise RuntimeError("batch commit failed")
        for op, path, data, merge in self._ops:
            if op == "set":
                self._store.apply_set(path, data, merge)
            else:
                self._store.apply_update(path, data)


class FakeFirestore:
    """In-memory stand-in for google.cloud.firestore.Client."""

    def __init__(self):
        self.docs: Dict[Tuple[str, ...], Dict[str, Any]] = {}
        self.reads: List[str] = []
        self.queries: List[tuple] = []
        self.commits: List[int] = []
        self.fail_reads = False
        self.fail_commit = False

    def collection(self, name: str) -> FakeCollection:
        return FakeCollection(self, (name,))

    def batch(self) -> FakeBatch:
        return FakeBatch(self)

    def seed(self, path: str, data: Dict[str, Any]) -> None:
        self.docs[tuple(path.split("/"))] = dict(data)

    def collection_docs(self, path: str) -> Dict[str, Dict[str, Any]]:
        prefix = tuple(path.split("/"))
        return {p[-1]: d for p, d in self.docs.items() if p[:-1] == prefix}

    def check_reads(self):
        if self.fail_reads:
            raise RuntimeError("firestore unavailable")

    @staticmethod
    def _resolve(existing, value):
        if isinstance(value, firestore.ArrayUnion):
            current = list(existing or [])
            return current + [v for v in value.values if v not in current]
        return value

    def apply_set(self, path, data, merge):
        current = dict(self.docs.get(path, {})) if merge else {}
        for key, value in data.items():
            current[key] = self._resolve(current.get(key), value)
        self.docs[path] = current

    def apply_update(self, path, data):
        if path not in self.docs:
            raise KeyError(f"No document to update: {'/'.join(path)}")
        self.apply_set(path, data, merge=True)


class FakePushClient:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.multicast_calls: List[dict] = []
        self.single_calls: List[dict] = []

    @property
    def call_count(self) -> int:
        return len(self.multicast_calls) + len(self.single_calls)

    def send_multicast(self, tokens, title, body, data=None):
        self.multicast_calls.append(dict(tokens=list(tokens), title=title, body=body, data=data))
        if self.fail:
            raise RuntimeError("fcm unavailable")
        return PushReport(success_count=len(tokens))

    def send(self, token, title, body, data=None):
        self.single_calls.append(dict(token=token, title=title, body=body, data=data))
        if self.fail:
            raise RuntimeError("fcm unavailable")
        return PushReport(success_count=1)


@pytest.fixture
def fake_db():
    return FakeFirestore()


@pytest.fixture
def push_client():
    return FakePushClient()


@pytest.fixture
def test_settings():
    return Settings(_env_file=None)


@pytest.fixture
def youth_ministry(fake_db):
    """Ministry M1 with two admins, a1 also leading it, and an unrelated member."""
    fake_db.seed("ministries/M1", {"name": "Youth Ministry"})
    fake_db.seed("users/a1", {"roles": ["admin", "member"], "leadershipMinistries": ["Youth Ministry"], "fcmToken": "tok-a1"})
    fake_db.seed("users/a2", {"roles": ["admin"], "fcmToken": "tok-a2"})
    fake_db.seed("users/m1", {"roles": ["member"], "memberId": "mem-linked", "fcmToken": "tok-m1"})
    return fake_db
