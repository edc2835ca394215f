"""
Pytest configuration for oauth_broker. In-memory SQLite so tests don't touch the filesystem;
a controllable clock for TTL behaviour.
"""
import os

import pytest

# In-memory SQLite; database.py uses StaticPool so all connections share the same DB
os.environ["OAUTH_BROKER_DATABASE_URL"] = "sqlite:///:memory:"
os.environ["OAUTH_CLIENT_ID"] = "test-client-id.apps.googleusercontent.com"
os.environ["OAUTH_CLIENT_SECRET"] = "test-client-secret"
os.environ["OAUTH_BROKER_LOCALE"] = "en"
if "OAUTH_BROKER_PORT" in os.environ:
    del os.environ["OAUTH_BROKER_PORT"]


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.current = start

    def now(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


@pytest.fixture
def clock():
    return FakeClock()
