"""
Cache-aside layer (Redis preferred, in-memory fallback).

``CacheBackend`` implementations talk to the store; ``CacheAside`` wraps one
and guarantees that no cache error ever reaches a caller: reads degrade to a
miss, writes and deletes are logged and dropped.
"""

from __future__ import annotations

import json
import threading
import time
from typing import Any, Callable, Dict, Optional

import redis

from travel_itinerary.core.logger import get_logger

logger = get_logger("cache")


def itinerary_key(itinerary_id: str) -> str:
    return f"itinerary:{itinerary_id}"


def response_key(path: str) -> str:
    return f"cache:{path}"


class CacheBackend:
    backend: str = "none"

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def incr(self, key: str, ttl_seconds: int = 60) -> int:
        raise NotImplementedError

    def ping(self) -> bool:
        return True


class MemoryCacheBackend(CacheBackend):
    """
    Process-local map, not shared across workers. Entries expire lazily on
    access, and every ``sweep_every`` writes the expired ones are dropped.
    """

    backend = "memory"

    def __init__(self, sweep_every: int = 1000) -> None:
        self._store: Dict[str, tuple[str, Optional[float]]] = {}
        self._lock = threading.Lock()
        self.sweep_every = max(1, sweep_every)
        self._writes = 0

    def _after_write(self, now: float) -> None:
        # caller holds the lock
        self._writes += 1
        if self._writes < self.sweep_every:
            return
        self._writes = 0
        expired = [k for k, (_, exp) in self._store.items() if exp is not None and now > exp]
        for key in expired:
            del self._store[key]

    def get(self, key: str) -> Optional[str]:
        now = time.time()
        with self._lock:
            hit = self._store.get(key)
            if not hit:
                return None
            value, expires_at = hit
            if expires_at is not None and now > expires_at:
                self._store.pop(key, None)
                return None
            return value

    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        now = time.time()
        expires_at = None
        if ttl_seconds is not None:
            expires_at = now + max(1, ttl_seconds)
        with self._lock:
            self._store[key] = (value, expires_at)
            self._after_write(now)

    def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def incr(self, key: str, ttl_seconds: int = 60) -> int:
        now = time.time()
        with self._lock:
            hit = self._store.get(key)
            expires_at: Optional[float] = None
            current = 0
            if hit:
                value, expires_at = hit
                if expires_at is not None and now > expires_at:
                    current = 0
                    expires_at = None
                else:
                    try:
                        current = int(value)
                    except ValueError:
                        current = 0
            current += 1
            if expires_at is None:
                expires_at = now + max(1, ttl_seconds)
            self._store[key] = (str(current), expires_at)
            self._after_write(now)
            return current


class RedisCacheBackend(CacheBackend):
    backend = "redis"

    def __init__(self, url: str) -> None:
        self._client = redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=1,
            socket_timeout=1,
            retry_on_timeout=False,
        )
        # Fail fast at startup so we can fallback to memory cache immediately.
        self._client.ping()

    def get(self, key: str) -> Optional[str]:
        return self._client.get(key)

    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        if ttl_seconds:
            self._client.setex(key, max(1, int(ttl_seconds)), value)
        else:
            self._client.set(key, value)

    def delete(self, key: str) -> None:
        self._client.delete(key)

    def incr(self, key: str, ttl_seconds: int = 60) -> int:
        value = int(self._client.incr(key))
        if value == 1:
            self._client.expire(key, max(1, int(ttl_seconds)))
        return value

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except redis.RedisError:
            return False


def build_cache_backend(redis_url: str) -> CacheBackend:
    """Connect to Redis when configured; fall back to memory if it is unreachable."""
    if redis_url:
        try:
            backend = RedisCacheBackend(redis_url)
            logger.info("Cache backend: redis")
            return backend
        except Exception as exc:
            logger.warning("Redis unavailable (%s), using in-memory cache", exc)
    else:
        logger.info("REDIS_URL not set, using in-memory cache")
    return MemoryCacheBackend()


class CacheAside:
    """JSON read-through / write-invalidate wrapper over a ``CacheBackend``."""

    def __init__(self, backend: CacheBackend, default_ttl: int = 300) -> None:
        self.backend = backend
        self.default_ttl = default_ttl

    @property
    def backend_name(self) -> str:
        return self.backend.backend

    def get(self, key: str) -> Optional[Any]:
        try:
            raw = self.backend.get(key)
        except Exception as exc:
            logger.warning("Cache get error for %s: %s", key, exc)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Discarding undecodable cache entry %s", key)
            return None

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        ttl = self.default_ttl if ttl_seconds is None else ttl_seconds
        try:
            self.backend.set(key, json.dumps(value), ttl_seconds=ttl)
        except Exception as exc:
            logger.warning("Cache set error for %s: %s", key, exc)

    def invalidate(self, *keys: str) -> None:
        for key in keys:
            try:
                self.backend.delete(key)
            except Exception as exc:
                logger.warning("Cache delete error for %s: %s", key, exc)

    def status(self) -> str:
        if self.backend.backend == "memory":
            return "memory"
        try:
            return "connected" if self.backend.ping() else "disconnected"
        except Exception:
            return "disconnected"


class ResponseCache:
    """
    Caches whole response payloads under ``cache:<request-path>``.

    An entry remembers the identity it was produced for and is only replayed
    to that identity, so a hit can never skip an ownership check.
    """

    def __init__(self, cache: CacheAside, ttl_seconds: int = 300) -> None:
        self.cache = cache
        self.ttl_seconds = ttl_seconds

    def fetch(
        self,
        path: str,
        identity: str,
        produce: Callable[[], Any],
        bypass: bool = False,
        ttl_seconds: Optional[int] = None,
    ) -> Any:
        if bypass:
            return produce()

        key = response_key(path)
        hit = self.cache.get(key)
        if isinstance(hit, dict) and hit.get("identity") == identity and "body" in hit:
            return hit["body"]

        body = produce()
        self.cache.set(
            key,
            {"identity": identity, "body": body},
            ttl_seconds=self.ttl_seconds if ttl_seconds is None else ttl_seconds,
        )
        return body
