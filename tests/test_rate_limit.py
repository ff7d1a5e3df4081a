from __future__ import annotations

from fastapi.testclient import TestClient

from conftest import make_context, make_settings
from travel_itinerary.core.cache import MemoryCacheBackend
from travel_itinerary.core.rate_limit import check_rate_limit
from travel_itinerary.server import create_app


class ExplodingBackend(MemoryCacheBackend):
    def incr(self, key, ttl_seconds=60):
        raise ConnectionError("cache down")


def test_check_rate_limit_counts_per_identity():
    backend = MemoryCacheBackend()
    assert check_rate_limit(backend, "10.0.0.1", limit=2, window_seconds=900) == (True, 1)
    assert check_rate_limit(backend, "10.0.0.1", limit=2, window_seconds=900) == (True, 2)
    assert check_rate_limit(backend, "10.0.0.1", limit=2, window_seconds=900) == (False, 3)
    # another client has its own window
    assert check_rate_limit(backend, "10.0.0.2", limit=2, window_seconds=900) == (True, 1)


def test_check_rate_limit_fails_open():
    assert check_rate_limit(ExplodingBackend(), "10.0.0.1", limit=1, window_seconds=900) == (True, 0)


def test_requests_beyond_limit_get_429():
    ctx = make_context(make_settings(RATE_LIMIT_MAX_REQUESTS=3))
    client = TestClient(create_app(ctx))

    for _ in range(3):
        assert client.get("/").status_code == 200

    resp = client.get("/api/health")
    assert resp.status_code == 429
    assert resp.json()["message"] == "Too many requests from this IP, please try again later."
    ctx.dispatcher.shutdown()
