"""
Shared fixtures.

  settings      : test Settings (no file logging, email off)
  db            : fresh mongomock database per test
  ctx           : AppContext over mongomock + in-memory cache
  client        : FastAPI TestClient over ``ctx``
  register_user : helper that registers a user through the REST API
"""

from __future__ import annotations

import os
import threading

# Keep file logging out of the test run; must be set before the app imports settings.
os.environ.setdefault("LOG_DIR", "")

import mongomock
import pytest
from fastapi.testclient import TestClient

from travel_itinerary.core.cache import MemoryCacheBackend
from travel_itinerary.core.config_loader import Settings
from travel_itinerary.core.context import AppContext
from travel_itinerary.core.guard import RetryPolicy
from travel_itinerary.server import create_app


class RecordingNotifier:
    """Stands in for ``EmailNotifier``; records every creation notice."""

    def __init__(self, fail: bool = False):
        self.calls = []
        self.fail = fail
        self.sent = threading.Event()

    def notify_itinerary_created(self, user_email, user_name, itinerary):
        self.calls.append((user_email, user_name, itinerary.title))
        self.sent.set()
        if self.fail:
            raise RuntimeError("smtp down")
        return True


def make_settings(**overrides) -> Settings:
    values = dict(
        JWT_SECRET_KEY="test-secret",
        REDIS_URL="",
        LOG_DIR="",
        EMAIL_ENABLED=False,
        BASE_URL="http://testserver",
        environment="test",
    )
    values.update(overrides)
    return Settings(**values)


def make_context(settings: Settings = None, db=None, notifier=None) -> AppContext:
    return AppContext.build(
        settings or make_settings(),
        db if db is not None else mongomock.MongoClient()["tmtc_test"],
        MemoryCacheBackend(),
        notifier=notifier or RecordingNotifier(),
        retry=RetryPolicy(attempts=3, delay_seconds=0, sleep=lambda _s: None),
    )


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def db():
    return mongomock.MongoClient()["tmtc_test"]


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def ctx(settings, db, notifier):
    context = make_context(settings, db, notifier)
    yield context
    context.dispatcher.shutdown(wait=True)


@pytest.fixture
def app(ctx):
    return create_app(ctx)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def register_user(client):
    def _register(email: str = "alice@mail.com", password: str = "secret123", name: str = "Alice"):
        resp = client.post(
            "/api/auth/register",
            json={"email": email, "password": password, "name": name},
        )
        assert resp.status_code == 201, resp.text
        body = resp.json()
        return body["token"], body["user"]

    return _register


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
