"""
Sliding-window rate limiting for the API.

One RateLimiter is built in create_app(), stored on app.state and handed to
RateLimitMiddleware. Two backends share the same interface:

- MemoryRateLimitBackend: per-process deques of request timestamps (default).
- RedisRateLimitBackend: one sorted set per key, shared between workers and
  updated by a single Lua script per request. Fails open when Redis is
  unreachable.
"""

import logging
import threading
import time
import uuid
from collections import defaultdict, deque
from typing import Callable, Deque, Dict, Optional

import redis
from fastapi import Request

from jobboard.core.config import settings

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class MemoryRateLimitBackend:
    """In-process sliding window."""

    def __init__(self, clock: Clock = time.monotonic):
        self.clock = clock
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def __len__(self) -> int:
        return len(self._hits)

    def _sweep(self, now: float, window_seconds: int) -> None:
        """Forget clients whose newest request has left the window (lock held)."""
        cutoff = now - window_seconds
        stale = [key for key, hits in self._hits.items() if not hits or hits[-1] <= cutoff]
        for key in stale:
            del self._hits[key]
        self._last_sweep = now

    def hit(self, key: str, max_requests: int, window_seconds: int) -> bool:
        """Record a request; False when it exceeds the window's allowance."""
        now = self.clock()
        with self._lock:
            if now - self._last_sweep >= window_seconds:
                self._sweep(now, window_seconds)
            hits = self._hits[key]
            while hits and hits[0] <= now - window_seconds:
                hits.popleft()
            if len(hits) >= max_requests:
                return False
            hits.append(now)
            return True

    def reset(self, key: Optional[str] = None) -> None:
        with self._lock:
            if key is None:
                self._hits.clear()
            else:
                self._hits.pop(key, None)


# Prune, count and record atomically on the server
SLIDING_WINDOW_SCRIPT = """
local key = KEYS[1]
local now = tonumber(ARGV[1])
local window = tonumber(ARGV[2])
redis.call('ZREMRANGEBYSCORE', key, 0, now - window)
if redis.call('ZCARD', key) >= tonumber(ARGV[3]) then
    return 0
end
redis.call('ZADD', key, now, ARGV[4])
redis.call('EXPIRE', key, window)
return 1
"""


class RedisRateLimitBackend:
    """Redis sorted-set sliding window."""

    def __init__(self, client: Optional[redis.Redis] = None, clock: Clock = time.time):
        self.redis_client = client or redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)
        self.clock = clock
        self._sliding_window = self.redis_client.register_script(SLIDING_WINDOW_SCRIPT)

    def hit(self, key: str, max_requests: int, window_seconds: int) -> bool:
        now = self.clock()
        try:
            allowed = self._sliding_window(
                keys=[f"ratelimit:{key}"],
                args=[now, window_seconds, max_requests, f"{now}:{uuid.uuid4().hex}"],
            )
            return bool(allowed)
        except redis.RedisError as e:
            # Fail open: a Redis outage must not take the API down
            logger.error(f"Redis rate limiter error: {e}")
            return True

    def reset(self, key: Optional[str] = None) -> None:
        try:
            if key is None:
                for redis_key in self.redis_client.scan_iter("ratelimit:*"):
                    self.redis_client.delete(redis_key)
            else:
                self.redis_client.delete(f"ratelimit:{key}")
        except redis.RedisError as e:
            logger.error(f"Redis rate limiter reset error: {e}")


class RateLimiter:
    """
    Fixed allowance of requests per client within a sliding window.

    Args:
        max_requests: Requests allowed per window (100 by default)
        window_seconds: Window length in seconds (60 by default)
        backend: MemoryRateLimitBackend or RedisRateLimitBackend
    """

    def __init__(self, max_requests: int = 100, window_seconds: int = 60, backend=None):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.backend = backend or MemoryRateLimitBackend()

    def allow(self, client_key: str) -> bool:
        return self.backend.hit(client_key, self.max_requests, self.window_seconds)

    def reset(self, client_key: Optional[str] = None) -> None:
        self.backend.reset(client_key)


def build_rate_limiter() -> RateLimiter:
    """Create the limiter described by settings."""
    if settings.RATE_LIMIT_BACKEND == "redis":
        backend = RedisRateLimitBackend()
    else:
        backend = MemoryRateLimitBackend()
    logger.info(
        f"Rate limiter: {settings.RATE_LIMIT_MAX_REQUESTS} requests / "
        f"{settings.RATE_LIMIT_WINDOW_SECONDS}s ({settings.RATE_LIMIT_BACKEND})"
    )
    return RateLimiter(
        max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
        backend=backend,
    )


def get_client_ip(request: Request) -> str:
    """
    Extract the client's IP address from the request.

    Handles X-Forwarded-For header for proxied requests.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # X-Forwarded-For can contain multiple IPs, take the first (client IP)
        return forwarded_for.split(",")[0].strip()

    return request.client.host if request.client else "unknown"
