"""
Shared pytest fixtures.

The application is built with `create_app(settings)` and its external clients are
replaced on `app.state` by in-memory fakes that honour the same contracts. The
TestClient is used without a `with` block, so the lifespan (which would build the
real MongoDB/S3/httpx clients) never runs.
"""

import os
import tempfile
import uuid
from typing import Any, Dict, List, Tuple

import pytest
from fastapi.testclient import TestClient

# Must be set before anything imports kyc_backend.main, which builds an app at import time.
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="kyc_backend_logs_"))
os.environ.setdefault("LOG_LEVEL", "WARNING")

from kyc_backend.core.config import Settings
from kyc_backend.core.errors import NotFoundError
from kyc_backend.core.observability import EventSink
from kyc_backend.core.security import JWTTokenVerifier
from kyc_backend.main import create_app
from kyc_backend.scripts.issue_token import issue_token

JWT_SECRET = "test-secret-that-is-long-enough-for-hs256"


# ── Fakes ────────────────────────────────────────────────────────────────

class RecordingBackend:
    """Sink back-end that keeps every event in memory."""

    def __init__(self):
        self.events: List[Tuple[int, str, Dict[str, Any]]] = []

    def emit(self, level, event, fields):
        self.events.append((level, event, fields))

    def names(self) -> List[str]:
        return [event for _, event, _ in self.events]


class FakeDocumentStore:
    def __init__(self):
        self.collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.calls: List[str] = []

    def create(self, collection, fields):
        self.calls.append("create")
        key = uuid.uuid4().hex[:24]
        self.collections.setdefault(collection, {})[key] = dict(fields)
        return key

    def get(self, collection, key):
        self.calls.append("get")
        doc = self.collections.get(collection, {}).get(key)
        if doc is None:
            raise NotFoundError("document", key)
        return {**doc, "id": key}

    def update(self, collection, key, partial_fields):
        self.calls.append("update")
        doc = self.collections.get(collection, {}).get(key)
        if doc is None:
            raise NotFoundError("document", key)
        doc.update(partial_fields)

    def list_all(self, collection):
        self.calls.append("list_all")
        for key, doc in list(self.collections.get(collection, {}).items()):
            yield {**doc, "id": key}


class FakeBlobStore:
    def __init__(self):
        self.objects: Dict[str, Tuple[bytes, str, Dict[str, str]]] = {}
        self.calls: List[str] = []
        self.versions: Dict[str, int] = {}

    def upload(self, path, data, content_type, metadata=None):
        self.calls.append("upload")
        self.objects[path] = (data, content_type, metadata or {})
        self.versions[path] = self.versions.get(path, 0) + 1

    def get_url(self, path):
        self.calls.append("get_url")
        if path not in self.objects:
            raise NotFoundError("blob", path)
        return f"https://blobs.test/{path}?v={self.versions[path]}"


class FakeFaceClient:
    def __init__(self, faces: int = 1, error: Exception | None = None):
        self.faces = faces
        self.error = error
        self.requested_urls: List[str] = []

    def detect(self, image_url):
        self.requested_urls.append(image_url)
        if self.error:
            raise self.error
        return self.faces


# ── Fixtures ─────────────────────────────────────────────────────────────

@pytest.fixture
def settings():
    return Settings(
        MONGODB_DB="identity_test",
        S3_ID_DOCUMENTS_BUCKET="id-documents-test",
        FACE_API_ENDPOINT="https://face.test",
        FACE_API_KEY="face-key",
        JWT_SECRET=JWT_SECRET,
        LOG_LEVEL="WARNING",
        LOG_DIR="",
        CLOUDWATCH_LOG_GROUP="",
    )


@pytest.fixture
def events():
    return RecordingBackend()


@pytest.fixture
def document_store():
    return FakeDocumentStore()


@pytest.fixture
def blob_store():
    return FakeBlobStore()


@pytest.fixture
def face_client():
    return FakeFaceClient(faces=1)


@pytest.fixture
def app(settings, events, document_store, blob_store, face_client):
    application = create_app(settings)
    application.state.event_sink = EventSink([events])
    application.state.token_verifier = JWTTokenVerifier(JWT_SECRET, ["HS256"])
    application.state.document_store = document_store
    application.state.blob_store = blob_store
    application.state.face_client = face_client
    return application


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def token():
    return issue_token("tester-1", JWT_SECRET, email="tester@mail.com")


@pytest.fixture
def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def valid_user_payload():
    return {
        "firstName": "Ana",
        "lastName": "Gomez",
        "email": "ana.gomez@mail.com",
        "phoneCountryCode": "+503",
        "telephone": "71234567",
        "idType": "DUI",
        "idNumber": "012345678",
        "department": "San Salvador",
        "municipality": "Soyapango",
        "direction": "Colonia Las Flores, casa 12",
        "monthlyEarns": 1500.50,
    }


@pytest.fixture
def registered_user_id(document_store, valid_user_payload):
    user_id = document_store.create("users", dict(valid_user_payload))
    # Tests assert on the calls made by the request under test only.
    document_store.calls.clear()
    return user_id


@pytest.fixture
def jpeg_bytes():
    # SOI + JFIF header + EOI: smallest byte string that looks like a JPEG.
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )


@pytest.fixture
def png_bytes():
    return b'\x89PNG\r\n\x1a\n' + b'\x00' * 16
