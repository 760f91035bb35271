# =============================================================================
# lib/rate_limit.py - Fixed-Window Rate Limiting
# =============================================================================
# Guards the login endpoint: 5 attempts per 15 minutes per client IP.
#
# Two storage backends:
#   - MemoryRateLimitStorage: per-process dict (development, single worker)
#   - RedisRateLimitStorage: INCR + EXPIRE on the shared Redis instance
#
# Daily AI usage limits are NOT enforced here; they go through the atomic
# check_and_increment_ai_usage database function.
#
# Usage:
#   limiter = get_auth_rate_limiter()
#   result = limiter.check(f"login:{ip}")
#   if not result.success: ...
# =============================================================================

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Protocol

from fastapi import Request

from app.config import settings

logger = logging.getLogger(__name__)

REDIS_KEY_PREFIX = "aquabotai:ratelimit:"


@dataclass
class RateLimitResult:
    """Outcome of one check; reset_at is epoch seconds."""
    success: bool
    limit: int
    remaining: int
    reset_at: float

    def retry_after_minutes(self, now: float | None = None) -> int:
        now = time.time() if now is None else now
        return max(1, math.ceil((self.reset_at - now) / 60))

    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(int(self.reset_at)),
        }


class RateLimitStorage(Protocol):
    def hit(self, key: str, window_seconds: int, now: float) -> tuple[int, float]:
        """Increment the counter for key; return (count, window reset time)."""
        ...


# =============================================================================
# Storage Backends
# =============================================================================

class MemoryRateLimitStorage:
    """
    Per-process counters.

    Expired windows are swept at most once per window length, so keys from
    clients that never come back do not accumulate.
    """

    def __init__(self):
        self._windows: dict[str, tuple[int, float]] = {}
        self._next_sweep = 0.0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._windows)

    def _sweep(self, now: float) -> None:
        expired = [key for key, (_, reset_at) in self._windows.items() if reset_at <= now]
        for key in expired:
            del self._windows[key]
        if expired:
            logger.debug(f"Dropped {len(expired)} expired rate limit windows")

    def hit(self, key: str, window_seconds: int, now: float) -> tuple[int, float]:
        with self._lock:
            if now >= self._next_sweep:
                self._sweep(now)
                self._next_sweep = now + window_seconds

            count, reset_at = self._windows.get(key, (0, 0.0))
            if now >= reset_at:
                count, reset_at = 0, now + window_seconds
            count += 1
            self._windows[key] = (count, reset_at)
            return count, reset_at

    def clear(self) -> None:
        with self._lock:
            self._windows.clear()


class RedisRateLimitStorage:
    def __init__(self, redis_url: str | None = None, client=None):
        if client is None:
            import redis
            client = redis.from_url(redis_url or settings.REDIS_URL)
        self._client = client

    def hit(self, key: str, window_seconds: int, now: float) -> tuple[int, float]:
        redis_key = f"{REDIS_KEY_PREFIX}{key}"
        pipe = self._client.pipeline()
        pipe.incr(redis_key)
        pipe.ttl(redis_key)
        count, ttl = pipe.execute()

        # First hit in the window (or a key that lost its TTL)
        if ttl is None or ttl < 0:
            self._client.expire(redis_key, window_seconds)
            ttl = window_seconds

        return int(count), now + ttl


# =============================================================================
# Limiter
# =============================================================================

class FixedWindowRateLimiter:
    """
    Allow `limit` hits per key per `window_seconds`.

    The window starts at the first hit and is not sliding.
    """

    def __init__(
        self,
        limit: int,
        window_seconds: int,
        storage: RateLimitStorage | None = None,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self.storage = storage or MemoryRateLimitStorage()

    def check(self, key: str, now: float | None = None) -> RateLimitResult:
        now = time.time() if now is None else now
        count, reset_at = self.storage.hit(key, self.window_seconds, now)

        if count > self.limit:
            logger.warning(f"Rate limit exceeded for {key} ({count}/{self.limit})")
            return RateLimitResult(
                success=False,
                limit=self.limit,
                remaining=0,
                reset_at=reset_at,
            )

        return RateLimitResult(
            success=True,
            limit=self.limit,
            remaining=self.limit - count,
            reset_at=reset_at,
        )


@lru_cache
def get_auth_rate_limiter() -> FixedWindowRateLimiter:
    """
    Limiter for login attempts, configured from settings.

    Redis storage is used when RATE_LIMIT_STORAGE=redis so that several API
    processes share one counter.
    """
    if settings.RATE_LIMIT_STORAGE == "redis":
        storage: RateLimitStorage = RedisRateLimitStorage(settings.REDIS_URL)
    else:
        storage = MemoryRateLimitStorage()

    return FixedWindowRateLimiter(
        limit=settings.AUTH_RATE_LIMIT_ATTEMPTS,
        window_seconds=settings.AUTH_RATE_LIMIT_WINDOW_SECONDS,
        storage=storage,
    )


def get_client_ip(request: Request) -> str:
    """
    Client IP behind a proxy.

    First x-forwarded-for entry, then x-real-ip, then 127.0.0.1.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    return "127.0.0.1"
