# =============================================================================
# tests/test_rate_limit.py - Rate Limiting Tests
# =============================================================================
# This module contains tests for:
# - The fixed-window limiter over the in-memory store (fake clock)
# - The Redis store (mocked client)
# - The pipeline stage: scope, 429 response, headers
# =============================================================================

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from app.middleware.rate_limit import (
    LIMIT_MESSAGE,
    FixedWindowRateLimiter,
    InMemoryCounterStore,
    RedisCounterStore,
)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return FixedWindowRateLimiter(InMemoryCounterStore(clock=clock), limit=100, window_seconds=3600)


async def hit_many(limiter, key, times):
    return [await limiter.hit(key) for _ in range(times)]


# =============================================================================
# Limiter + In-Memory Store
# =============================================================================

class TestFixedWindowRateLimiter:
    """Tests for counting against the cap."""

    def test_first_hundred_are_accepted(self, limiter):
        results = asyncio.run(hit_many(limiter, "203.0.113.7", 100))

        assert all(r.allowed for r in results)
        assert results[-1].remaining == 0

    def test_hundred_and_first_is_rejected(self, limiter):
        results = asyncio.run(hit_many(limiter, "203.0.113.7", 101))

        assert not results[-1].allowed
        assert results[-1].count == 101

    def test_window_reset_restores_budget(self, limiter, clock):
        asyncio.run(hit_many(limiter, "203.0.113.7", 101))
        clock.advance(3600)

        result = asyncio.run(limiter.hit("203.0.113.7"))

        assert result.allowed
        assert result.count == 1

    def test_reset_in_counts_down(self, limiter, clock):
        asyncio.run(limiter.hit("203.0.113.7"))
        clock.advance(600)

        result = asyncio.run(limiter.hit("203.0.113.7"))

        assert result.reset_in == pytest.approx(3000)

    def test_keys_are_independent(self, limiter):
        asyncio.run(hit_many(limiter, "203.0.113.7", 101))

        result = asyncio.run(limiter.hit("198.51.100.4"))

        assert result.allowed

    def test_concurrent_hits_are_all_counted(self, limiter):
        """Interleaved requests never lose an increment."""

        async def burst():
            return await asyncio.gather(*(limiter.hit("203.0.113.7") for _ in range(150)))

        results = asyncio.run(burst())

        assert sum(r.allowed for r in results) == 100
        assert max(r.count for r in results) == 150

    def test_store_reset(self, clock):
        store = InMemoryCounterStore(clock=clock)
        asyncio.run(store.increment("a", 60))
        store.reset("a")

        count, _ = asyncio.run(store.increment("a", 60))

        assert count == 1

    def test_expired_addresses_are_dropped(self, clock):
        store = InMemoryCounterStore(clock=clock)

        async def one_hit_each(count):
            for i in range(count):
                await store.increment(f"10.0.{i // 256}.{i % 256}", 3600)

        asyncio.run(one_hit_each(1000))
        assert len(store) == 1000

        clock.advance(3601)
        asyncio.run(store.increment("203.0.113.7", 3600))

        assert len(store) == 1

    def test_live_addresses_survive_a_sweep(self, clock):
        store = InMemoryCounterStore(clock=clock)
        asyncio.run(store.increment("old", 60))
        clock.advance(30)
        asyncio.run(store.increment("recent", 60))
        clock.advance(31)

        count, _ = asyncio.run(store.increment("recent", 60))

        assert count == 2
        assert len(store) == 1


# =============================================================================
# Redis Store
# =============================================================================

class TestRedisCounterStore:
    """Tests for the shared store with a mocked redis client."""

    def make_redis(self, execute_result):
        pipe = MagicMock()
        pipe.execute = AsyncMock(return_value=execute_result)
        redis = MagicMock()
        redis.pipeline.return_value.__aenter__.return_value = pipe
        return redis, pipe

    def test_increment_sets_window_on_first_hit(self):
        redis, pipe = self.make_redis([1, True, 3600])
        store = RedisCounterStore(redis)

        count, reset_in = asyncio.run(store.increment("203.0.113.7", 3600))

        redis.pipeline.assert_called_once_with(transaction=True)
        pipe.incr.assert_called_once_with("ratelimit:203.0.113.7")
        pipe.expire.assert_called_once_with("ratelimit:203.0.113.7", 3600, nx=True)
        assert (count, reset_in) == (1, 3600.0)

    def test_missing_ttl_falls_back_to_window(self):
        redis, _ = self.make_redis([42, False, -1])
        store = RedisCounterStore(redis, prefix="rl:")

        count, reset_in = asyncio.run(store.increment("k", 60))

        assert (count, reset_in) == (42, 60.0)


# =============================================================================
# Pipeline Stage
# =============================================================================

class TestRateLimitMiddleware:
    """Tests for the rate limit stage inside the application."""

    def test_api_requests_are_capped(self, client):
        for _ in range(100):
            response = client.get("/api/v1/health/live")
            assert response.status_code == 200

        response = client.get("/api/v1/health/live")

        assert response.status_code == 429
        assert response.text == LIMIT_MESSAGE
        assert response.headers["x-ratelimit-remaining"] == "0"
        assert int(response.headers["retry-after"]) > 0

    def test_allowed_responses_carry_budget_headers(self, client):
        response = client.get("/api/v1/health/live")

        assert response.headers["x-ratelimit-limit"] == "100"
        assert response.headers["x-ratelimit-remaining"] == "99"

    def test_pages_are_not_limited(self, app):
        app_client = TestClient(app, raise_server_exceptions=False)
        for _ in range(101):
            app_client.get("/api/v1/health/live")

        response = app_client.get("/login")

        assert response.status_code == 200

    def test_forwarded_clients_are_counted_separately(self, app, limiter):
        limiter.limit = 1
        client = TestClient(app)

        first = client.get("/api/v1/health/live", headers={"X-Forwarded-For": "203.0.113.7"})
        second = client.get("/api/v1/health/live", headers={"X-Forwarded-For": "198.51.100.4, 10.0.0.1"})
        third = client.get("/api/v1/health/live", headers={"X-Forwarded-For": "203.0.113.7"})

        assert first.status_code == 200
        assert second.status_code == 200
        assert third.status_code == 429
