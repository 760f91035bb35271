# =============================================================================
# tests/test_rate_limit.py - Rate Limiter Tests
# =============================================================================

from types import SimpleNamespace
from unittest.mock import MagicMock

from lib.rate_limit import (
    REDIS_KEY_PREFIX,
    FixedWindowRateLimiter,
    MemoryRateLimitStorage,
    RateLimitResult,
    RedisRateLimitStorage,
    get_client_ip,
)


class TestFixedWindowRateLimiter:
    """Tests for FixedWindowRateLimiter with in-memory storage."""

    def test_allows_up_to_limit(self):
        limiter = FixedWindowRateLimiter(limit=2, window_seconds=60)

        first = limiter.check("login:1.2.3.4", now=0)
        second = limiter.check("login:1.2.3.4", now=1)

        assert first.success and first.remaining == 1
        assert second.success and second.remaining == 0
        assert first.reset_at == 60

    def test_blocks_over_limit(self):
        limiter = FixedWindowRateLimiter(limit=2, window_seconds=60)
        for i in range(2):
            limiter.check("k", now=i)

        result = limiter.check("k", now=5)

        assert not result.success
        assert result.remaining == 0

    def test_window_resets(self):
        limiter = FixedWindowRateLimiter(limit=1, window_seconds=60)
        limiter.check("k", now=0)
        assert not limiter.check("k", now=30).success

        assert limiter.check("k", now=61).success

    def test_keys_are_independent(self):
        limiter = FixedWindowRateLimiter(limit=1, window_seconds=60)
        limiter.check("a", now=0)
        assert limiter.check("b", now=0).success

    def test_memory_clear(self):
        storage = MemoryRateLimitStorage()
        storage.hit("k", 60, 0)
        storage.clear()
        assert storage.hit("k", 60, 1) == (1, 61)

    def test_memory_drops_expired_windows(self):
        storage = MemoryRateLimitStorage()
        storage.hit("login:10.0.0.1", 60, 0)
        storage.hit("login:10.0.0.2", 60, 50)
        assert len(storage) == 2

        storage.hit("login:10.0.0.3", 60, 70)

        # .1 expired at 60; .2 is still inside its window
        assert len(storage) == 2
        assert storage.hit("login:10.0.0.2", 60, 71) == (2, 110)

    def test_memory_sweeps_once_per_window(self):
        storage = MemoryRateLimitStorage()
        storage.hit("a", 60, 0)
        storage.hit("b", 60, 30)

        # No sweep runs before 60
        storage.hit("c", 60, 59.5)
        assert len(storage) == 3

        storage.hit("c", 60, 95)
        assert len(storage) == 1


class TestRateLimitResult:
    def test_retry_after_minutes(self):
        result = RateLimitResult(success=False, limit=5, remaining=0, reset_at=900)
        assert result.retry_after_minutes(now=0) == 15
        assert result.retry_after_minutes(now=899) == 1
        assert result.retry_after_minutes(now=1000) == 1

    def test_headers(self):
        result = RateLimitResult(success=True, limit=5, remaining=4, reset_at=1700000000.5)
        assert result.headers() == {
            "X-RateLimit-Limit": "5",
            "X-RateLimit-Remaining": "4",
            "X-RateLimit-Reset": "1700000000",
        }


class TestRedisStorage:
    """Tests for RedisRateLimitStorage with a mocked client."""

    def test_first_hit_sets_expiry(self):
        client = MagicMock()
        client.pipeline.return_value.execute.return_value = (1, -1)
        storage = RedisRateLimitStorage(client=client)

        assert storage.hit("login:ip", 900, now=100) == (1, 1000)
        client.expire.assert_called_once_with(f"{REDIS_KEY_PREFIX}login:ip", 900)

    def test_existing_window_keeps_ttl(self):
        client = MagicMock()
        client.pipeline.return_value.execute.return_value = (3, 120)
        storage = RedisRateLimitStorage(client=client)

        assert storage.hit("login:ip", 900, now=100) == (3, 220)
        client.expire.assert_not_called()


class TestClientIp:
    def test_forwarded_for_first_entry(self):
        request = SimpleNamespace(headers={"x-forwarded-for": "1.2.3.4, 10.0.0.1"})
        assert get_client_ip(request) == "1.2.3.4"

    def test_real_ip(self):
        request = SimpleNamespace(headers={"x-real-ip": " 5.6.7.8 "})
        assert get_client_ip(request) == "5.6.7.8"

    def test_default(self):
        assert get_client_ip(SimpleNamespace(headers={})) == "127.0.0.1"
