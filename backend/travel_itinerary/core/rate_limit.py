"""
Fixed-window rate limiter backed by the shared cache backend.
"""

from __future__ import annotations

import time
from typing import Tuple

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from travel_itinerary.core.cache import CacheBackend
from travel_itinerary.core.errors import RateLimited
from travel_itinerary.core.logger import get_logger

logger = get_logger("rate_limit")


def check_rate_limit(
    cache: CacheBackend,
    identity: str,
    limit: int,
    window_seconds: int,
) -> Tuple[bool, int]:
    if limit <= 0:
        return True, 0

    window = int(time.time() // window_seconds)
    key = f"rl:{identity}:{window}"
    try:
        count = cache.incr(key, ttl_seconds=window_seconds + 10)
        return count <= int(limit), count
    except Exception:
        # Fail-open if cache backend is unavailable.
        return True, 0


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rejects requests beyond ``limit`` per client address per window with 429."""

    def __init__(self, app, cache: CacheBackend, limit: int, window_seconds: int):
        super().__init__(app)
        self.cache = cache
        self.limit = limit
        self.window_seconds = window_seconds

    async def dispatch(self, request: Request, call_next):
        client = request.client.host if request.client else "unknown"
        allowed, count = check_rate_limit(self.cache, client, self.limit, self.window_seconds)
        if not allowed:
            logger.info("Rate limit exceeded for %s (%d requests)", client, count)
            err = RateLimited()
            return JSONResponse(status_code=err.status_code, content=err.to_dict())
        return await call_next(request)
