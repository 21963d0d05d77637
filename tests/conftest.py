import os
import sys
import tempfile
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Keep the settings module from creating its data directory in the real home
os.environ.setdefault("TRALOK_DATA_DIR", tempfile.mkdtemp(prefix="tralok-sync-tests-"))

import requests  # noqa: E402

from services.api_client import ApiClient  # noqa: E402
from services.offline_queue import OfflineQueue  # noqa: E402
from storage.db import dispose_engine  # noqa: E402
from storage.operation_log import OperationLog  # noqa: E402


class FakeResponse:
    def __init__(self, status_code=200, text=""):
        self.status_code = status_code
        self.text = text


class FakeSession:
    """Stands in for ``requests.Session``; replies come from ``outcomes`` in order.

    An outcome is a status code, an exception instance to raise, or a callable
    receiving the recorded call and returning either of those.
    """

    def __init__(self, outcomes=None, default=200):
        self.outcomes = list(outcomes or [])
        self.default = default
        self.calls = []
        self.active = 0
        self.max_active = 0
        self.closed = False

    def request(self, method, url, data=None, headers=None, timeout=None):
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            call = {
                "method": method,
                "url": url,
                "data": data,
                "headers": dict(headers or {}),
                "timeout": timeout,
            }
            self.calls.append(call)
            outcome = self.outcomes.pop(0) if self.outcomes else self.default
            if callable(outcome):
                outcome = outcome(call)
            if isinstance(outcome, Exception):
                raise outcome
            return FakeResponse(outcome)
        finally:
            self.active -= 1

    def get(self, url, timeout=None):
        return self.request("GET", url, timeout=timeout)

    def close(self):
        self.closed = True


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "queue.db"
    yield path
    dispose_engine(path)


@pytest.fixture
def queue(db_path):
    return OfflineQueue(OperationLog(db_path))


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def client(fake_session):
    return ApiClient(base_url="http://api.test", session=fake_session, timeout=5)


@pytest.fixture
def offline_error():
    return requests.ConnectionError("network unreachable")
