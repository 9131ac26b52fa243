import sys
import os

# Ensure repo root on sys.path for imports like `app...`
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

# Tests never reach AWS: no secret entry, no queue, no websocket, auth off by default
os.environ["TABLE_NAME"] = "presentations-test"
os.environ["SECRETS_ID"] = ""
os.environ["SQS_QUEUE_URL"] = ""
os.environ["WEBSOCKET_API_ENDPOINT"] = ""
os.environ["USER_WHITELIST"] = ""
os.environ.pop("GOOGLE_CLIENT_ID", None)
os.environ.setdefault("AWS_REGION", "eu-north-1")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

import pytest

from app.Core.config import get_settings
from app.Core.secrets import clear_secrets_cache
from app.DB.dynamodb import reset_table, set_table
from app.features.notifications.service import NotificationService
from app.features.presentations import repository as repo_module
from fakedynamo import FakeTable


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _isolate(monkeypatch):
    get_settings.cache_clear()
    clear_secrets_cache()
    NotificationService.reset()
    monkeypatch.setattr(repo_module, "BATCH_RETRY_DELAY_SECONDS", 0)
    yield
    get_settings.cache_clear()
    clear_secrets_cache()
    NotificationService.reset()


@pytest.fixture
def fake_table():
    table = FakeTable()
    set_table(table)
    yield table
    reset_table()


@pytest.fixture
def clock(monkeypatch):
    """Deterministic millisecond clock for the repository; advance with ``clock.tick()``."""

    class _Clock:
        def __init__(self):
            self.now = 1_700_000_000_000

        def tick(self, ms=1):
            self.now += ms
            return self.now

    c = _Clock()
    monkeypatch.setattr(repo_module, "_now_ms", lambda: c.now)
    return c
