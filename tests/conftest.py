import copy
import uuid
import base64
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from google.api_core.exceptions import NotFound

from backend import agents, config
from backend.main import app
from backend.reports import ReportStore
from backend.router import get_store

PHOTO_BYTES = b"\x89PNG fake image bytes"
PHOTO_URI = "data:image/png;base64," + base64.b64encode(PHOTO_BYTES).decode("ascii")

NOW = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


# ---------- In-memory Firestore ----------
class FakeSnapshot:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data)


class FakeDocument:
    def __init__(self, docs, doc_id):
        self._docs = docs
        self.id = doc_id

    def set(self, data):
        self._docs[self.id] = copy.deepcopy(data)

    def get(self):
        return FakeSnapshot(self.id, self._docs.get(self.id))

    def update(self, data):
        if self.id not in self._docs:
            raise NotFound(f"No document to update: {self.id}")
        self._docs[self.id].update(copy.deepcopy(data))

    def delete(self):
        self._docs.pop(self.id, None)


class FakeQuery:
    def __init__(self, docs, filters=()):
        self._docs = docs
        self._filters = filters

    def where(self, filter=None):
        assert filter.op_string == "=="
        return FakeQuery(self._docs, self._filters + ((filter.field_path, filter.value),))

    def stream(self):
        for doc_id, data in list(self._docs.items()):
            if all(data.get(field) == value for field, value in self._filters):
                yield FakeSnapshot(doc_id, data)


class FakeCollection(FakeQuery):
    def document(self, doc_id=None):
        return FakeDocument(self._docs, doc_id or uuid.uuid4().hex)


class FakeBatch:
    """Queues updates and applies them only on commit."""

    def __init__(self):
        self.updates = []

    def update(self, ref, data):
        self.updates.append((ref, data))

    def commit(self):
        missing = [ref.id for ref, _ in self.updates if ref.id not in ref._docs]
        if missing:
            raise NotFound(f"No document to update: {', '.join(missing)}")
        for ref, data in self.updates:
            ref.update(data)


class FakeFirestore:
    def __init__(self):
        self.collections = {}

    def collection(self, name):
        return FakeCollection(self.collections.setdefault(name, {}))

    def batch(self):
        return FakeBatch()


# ---------- Fake Gemini ----------
class FakeResponse:
    def __init__(self, text):
        self.text = text


class FakeModel:
    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    def generate_content(self, contents, generation_config=None):
        self.calls.append(contents)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return FakeResponse(reply)


@pytest.fixture(autouse=True)
def open_admin(monkeypatch):
    monkeypatch.setattr(config, "ADMIN_API_KEY", None)


@pytest.fixture
def db():
    return FakeFirestore()


@pytest.fixture
def store(db):
    return ReportStore(db, collection="reports")


@pytest.fixture
def add_report(db):
    """Insert a report document directly, bypassing ReportStore.create."""
    def _add(report_id, issue_type="pothole", location="12.9716,77.5946", user_id="user-1",
             status="pending", complaint_time=NOW, resolved_time=None, severity=None, **extra):
        data = {
            "userId": user_id,
            "issueType": issue_type,
            "location": location,
            "imageDataUri": PHOTO_URI,
            "identificationResult": None,
            "assessmentResult": {"severity": severity, "justification": "test"} if severity else None,
            "complaintTime": complaint_time,
            "resolvedTime": resolved_time,
            "status": status,
        }
        data.update(extra)
        db.collection("reports").document(report_id).set(data)
        return report_id
    return _add


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def fake_llm(monkeypatch):
    def install(*replies):
        model = FakeModel(replies)
        monkeypatch.setattr(agents, "llm", model)
        return model
    return install


def hours_after(start, hours):
    return start + timedelta(hours=hours)
