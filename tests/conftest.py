"""Shared test setup.

Server paths and secrets are pointed at a temp dir before anything imports
`authserver.config`, which reads the environment at import time.
"""

import json
import os
import tempfile
import threading

os.environ["AUTHSERVER_DATA_DIR"] = tempfile.mkdtemp()
os.environ["AUTHSERVER_SNAPSHOT_PATH"] = os.path.join(os.environ["AUTHSERVER_DATA_DIR"], "devices.json")
os.environ["AUTHSERVER_DB_PATH"] = os.path.join(os.environ["AUTHSERVER_DATA_DIR"], "devices.db")
os.environ["AUTHSERVER_ENVIRONMENT"] = "development"
os.environ["AUTHSERVER_JWT_SECRET"] = "test-jwt-secret-0123456789abcdef0123456789"
os.environ["SERVER_SECRET"] = "test-server-secret"

import pytest  # noqa: E402

from authserver.errors import InvalidToken, PersistenceError, UpstreamError  # noqa: E402
from authserver.services.registry import DeviceRegistry  # noqa: E402
from authserver.services.snapshot_store import JsonFileSnapshotStore  # noqa: E402

SERVER_KEY = "test-server-secret"


class FakeIssuer:
    """Token issuer stand-in that records what it was asked to sign."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.issued: list[tuple[str, dict]] = []

    def issue(self, subject, claims):
        if self.fail:
            raise UpstreamError() from ConnectionError("identity provider unreachable")
        self.issued.append((subject, dict(claims)))
        return f"token-{subject}-{len(self.issued)}"

    def verify(self, token):
        for i, (subject, claims) in enumerate(self.issued, start=1):
            if token == f"token-{subject}-{i}":
                return {"sub": subject, "uid": subject, **claims}
        raise InvalidToken("Unknown token")


class RecordingStore:
    """In-memory store that keeps every snapshot it was asked to save."""

    def __init__(self, initial=None, fail_saves=0):
        self.initial = initial
        self.saved = []
        self.fail_saves = fail_saves
        self._lock = threading.Lock()

    def load(self):
        return self.initial

    def save(self, snapshot):
        with self._lock:
            if self.fail_saves:
                self.fail_saves -= 1
                raise PersistenceError("disk full")
            self.saved.append(json.loads(json.dumps(snapshot)))


@pytest.fixture
def snapshot_path(tmp_path):
    return tmp_path / "devices.json"


@pytest.fixture
def registry(snapshot_path):
    reg = DeviceRegistry(JsonFileSnapshotStore(snapshot_path))
    reg.load()
    return reg


@pytest.fixture
def issuer():
    return FakeIssuer()
