# =============================================================================
# app/middleware/rate_limit.py - Rate Limiting Stage
# =============================================================================
# Fixed-window request counting per client address, scoped to a URL prefix.
#
# Counter state lives in a keyed store:
# - InMemoryCounterStore: per-process, lock-protected, injectable clock
# - RedisCounterStore: shared between processes (INCR + EXPIRE NX)
#
# Requests over the cap get a 429 with a fixed plain-text message.
# =============================================================================

import asyncio
import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Protocol

from starlette.datastructures import MutableHeaders
from starlette.responses import PlainTextResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from app.middleware.base import client_address

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 100
DEFAULT_WINDOW_SECONDS = 60 * 60
LIMIT_MESSAGE = "Too many requests from this IP, please try again in an hour."


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of counting one request."""
    allowed: bool
    count: int
    limit: int
    reset_in: float

    @property
    def remaining(self) -> int:
        return max(self.limit - self.count, 0)


class CounterStore(Protocol):
    """Keyed counters that reset when their window expires."""

    async def increment(self, key: str, window_seconds: int) -> tuple[int, float]:
        """Count one hit; return (hits in current window, seconds until reset)."""
        ...


class InMemoryCounterStore:
    """
    Per-process counter store.

    Each key's window starts at its first hit and expires `window_seconds`
    later. Increments are serialized with a lock so interleaved requests
    never lose an update. Expired keys are swept at most once per window,
    so the store holds no more than the addresses seen in the last two
    windows.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self._counters: dict[str, tuple[int, float]] = {}
        self._lock = asyncio.Lock()
        self._next_sweep = 0.0

    def __len__(self) -> int:
        return len(self._counters)

    async def increment(self, key: str, window_seconds: int) -> tuple[int, float]:
        async with self._lock:
            now = self.clock()
            if now >= self._next_sweep:
                self._sweep(now)
                self._next_sweep = now + window_seconds
            count, reset_at = self._counters.get(key, (0, 0.0))
            if now >= reset_at:
                count, reset_at = 0, now + window_seconds
            count += 1
            self._counters[key] = (count, reset_at)
            return count, reset_at - now

    def _sweep(self, now: float) -> None:
        expired = [key for key, (_, reset_at) in self._counters.items() if now >= reset_at]
        for key in expired:
            del self._counters[key]
        if expired:
            logger.debug(f"Swept {len(expired)} expired rate limit keys")

    def reset(self, key: str | None = None) -> None:
        """Forget one key, or every key."""
        if key is None:
            self._counters.clear()
        else:
            self._counters.pop(key, None)


class RedisCounterStore:
    """
    Counter store shared through Redis.

    INCR and EXPIRE NX run in one transaction, so the window is set by the
    first hit and the count is atomic across processes.
    """

    def __init__(self, redis, prefix: str = "ratelimit:"):
        self.redis = redis
        self.prefix = prefix

    async def increment(self, key: str, window_seconds: int) -> tuple[int, float]:
        redis_key = f"{self.prefix}{key}"
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.incr(redis_key)
            pipe.expire(redis_key, window_seconds, nx=True)
            pipe.ttl(redis_key)
            count, _, ttl = await pipe.execute()

        return int(count), float(ttl if ttl and ttl > 0 else window_seconds)


class FixedWindowRateLimiter:
    """
    Count requests per key against a cap.

    Example:
        limiter = FixedWindowRateLimiter(InMemoryCounterStore(), limit=100)
        result = await limiter.hit("203.0.113.7")
        if not result.allowed: ...
    """

    def __init__(
        self,
        store: CounterStore,
        limit: int = DEFAULT_LIMIT,
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
    ):
        self.store = store
        self.limit = limit
        self.window_seconds = window_seconds

    async def hit(self, key: str) -> RateLimitResult:
        count, reset_in = await self.store.increment(key, self.window_seconds)
        return RateLimitResult(
            allowed=count <= self.limit,
            count=count,
            limit=self.limit,
            reset_in=reset_in,
        )


class RateLimitMiddleware:
    """Apply a rate limiter to requests under `prefix`."""

    def __init__(
        self,
        app: ASGIApp,
        limiter: FixedWindowRateLimiter,
        prefix: str = "/api",
        message: str = LIMIT_MESSAGE,
        trust_proxy: bool = True,
    ):
        self.app = app
        self.limiter = limiter
        self.prefix = prefix.rstrip("/")
        self.message = message
        self.trust_proxy = trust_proxy

    def applies_to(self, path: str) -> bool:
        return path == self.prefix or path.startswith(self.prefix + "/")

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not self.applies_to(scope["path"]):
            await self.app(scope, receive, send)
            return

        address = client_address(scope, self.trust_proxy)
        result = await self.limiter.hit(address)
        headers = {
            "X-RateLimit-Limit": str(result.limit),
            "X-RateLimit-Remaining": str(result.remaining),
        }

        if not result.allowed:
            logger.info(f"Rate limit exceeded for {address}")
            headers["Retry-After"] = str(math.ceil(result.reset_in))
            response = PlainTextResponse(self.message, status_code=429, headers=headers)
            await response(scope, receive, send)
            return

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message).update(headers)
            await send(message)

        await self.app(scope, receive, send_with_headers)
