from datetime import datetime, timedelta, timezone

import pytest

from api import create_app
from models import storage
from models.session_store import MemorySessionStore


class FakeClock:
    """Manually advanced UTC clock shared by the issuer and the session store."""

    def __init__(self, start=None):
        self.now = start or datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class CountingStore(MemorySessionStore):
    """Memory store that records how often it is written."""

    def __init__(self, clock):
        super().__init__(clock=clock)
        self.puts = 0

    def put(self, identity, refresh_token, ttl_seconds):
        self.puts += 1
        super().put(identity, refresh_token, ttl_seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return CountingStore(clock)


def _make_app(store, clock, **overrides):
    app = create_app("test", session_store=store)
    guard = app.extensions["session_guard"]
    guard.issuer.clock = clock
    for key, value in overrides.items():
        setattr(guard, key, value)
    return app


@pytest.fixture
def app(store, clock):
    app = _make_app(store, clock)
    yield app
    storage.close()
    storage.drop_all()


@pytest.fixture
def rotating_app(store, clock):
    app = _make_app(store, clock, rotate_refresh_tokens=True)
    yield app
    storage.close()
    storage.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def guard(app):
    return app.extensions["session_guard"]


@pytest.fixture
def signup():
    """POST /api/auth/signup with sensible defaults."""

    def _signup(client, email="u1@example.com", password="secret123", name="User One"):
        return client.post("/api/auth/signup", json={"name": name, "email": email, "password": password})

    return _signup
