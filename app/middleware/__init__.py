# =============================================================================
# app/middleware/ - Request Pipeline
# =============================================================================
# Every inbound request passes through these stages, in this order, before
# any route handler runs. Later stages rely on earlier ones:
#
#   1. cors                 Starlette CORS (any origin), empty 204 for every OPTIONS
#   2. static               serve public files, short-circuit
#   3. security_headers     Content-Security-Policy
#   4. access_log           console (development) / file (production)
#   5. rate_limit           100 requests per hour per client under /api
#   6. raw_body             webhook body kept as exact bytes
#   7. body_parser          JSON / URL-encoded bodies up to 10kb
#   8. cookie_parser        request.state.cookies
#   9. sanitize             strip operator keys, escape markup
#  10. parameter_pollution  last value wins outside the whitelist
#  11. compression          gzip above 1kb unless x-no-compression
#  12. request_time         request.state.request_time
#
# The stage list is explicit; `install_pipeline` adds it to the app so the
# first stage is the outermost middleware.
# =============================================================================

import logging
from typing import Any, NamedTuple

from fastapi import FastAPI

from app.config import Settings
from app.middleware.access_log import AccessLogMiddleware
from app.middleware.body import BodyParserMiddleware, RawBodyMiddleware
from app.middleware.compression import CompressionMiddleware
from app.middleware.cookies import CookieParserMiddleware
from app.middleware.cors import CrossOriginMiddleware
from app.middleware.parameter_pollution import WHITELIST, ParameterPollutionMiddleware
from app.middleware.rate_limit import (
    FixedWindowRateLimiter,
    InMemoryCounterStore,
    RateLimitMiddleware,
    RedisCounterStore,
)
from app.middleware.request_time import RequestTimeMiddleware
from app.middleware.sanitize import SanitizeMiddleware
from app.middleware.security_headers import SecurityHeadersMiddleware
from app.middleware.static import StaticAssetMiddleware

logger = logging.getLogger(__name__)


class Stage(NamedTuple):
    """One named pipeline stage: a middleware class and its options."""
    name: str
    middleware: type
    options: dict[str, Any]


def build_rate_limiter(settings: Settings) -> FixedWindowRateLimiter:
    """Rate limiter backed by Redis when REDIS_URL is set, in-process otherwise."""
    if settings.REDIS_URL:
        import redis.asyncio as aioredis

        store = RedisCounterStore(aioredis.from_url(settings.REDIS_URL))
        logger.info("Rate limiter using shared Redis store")
    else:
        store = InMemoryCounterStore()

    return FixedWindowRateLimiter(
        store,
        limit=settings.RATE_LIMIT_MAX,
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
    )


def build_pipeline(
    settings: Settings,
    limiter: FixedWindowRateLimiter | None = None,
) -> list[Stage]:
    """
    The ordered request pipeline for a configuration.

    Args:
        settings: Application settings
        limiter: Rate limiter to use (built from settings when omitted)

    Returns:
        Stages, outermost first
    """
    if settings.is_production:
        # The log location must exist from boot, before the first request
        settings.access_log_path.parent.mkdir(parents=True, exist_ok=True)

    return [
        Stage("cors", CrossOriginMiddleware, {}),
        Stage(
            "static",
            StaticAssetMiddleware,
            {"directory": settings.static_path, "production": settings.is_production},
        ),
        Stage("security_headers", SecurityHeadersMiddleware, {}),
        Stage(
            "access_log",
            AccessLogMiddleware,
            {
                "mode": settings.NODE_ENV,
                "log_path": settings.access_log_path,
                "trust_proxy": settings.TRUST_PROXY,
            },
        ),
        Stage(
            "rate_limit",
            RateLimitMiddleware,
            {
                "limiter": limiter or build_rate_limiter(settings),
                "prefix": settings.RATE_LIMIT_PREFIX,
                "trust_proxy": settings.TRUST_PROXY,
            },
        ),
        Stage("raw_body", RawBodyMiddleware, {"path": settings.WEBHOOK_PATH}),
        Stage("body_parser", BodyParserMiddleware, {"limit": settings.BODY_LIMIT_BYTES}),
        Stage("cookie_parser", CookieParserMiddleware, {}),
        Stage("sanitize", SanitizeMiddleware, {}),
        Stage("parameter_pollution", ParameterPollutionMiddleware, {"whitelist": WHITELIST}),
        Stage(
            "compression",
            CompressionMiddleware,
            {"minimum_size": settings.COMPRESSION_THRESHOLD_BYTES},
        ),
        Stage("request_time", RequestTimeMiddleware, {}),
    ]


def install_pipeline(app: FastAPI, stages: list[Stage]) -> None:
    """Add stages so that `stages[0]` wraps everything after it."""
    # add_middleware puts each new middleware outside the ones already added
    for stage in reversed(stages):
        app.add_middleware(stage.middleware, **stage.options)
    logger.debug(f"Request pipeline: {' -> '.join(stage.name for stage in stages)}")


__all__ = [
    "Stage",
    "build_pipeline",
    "build_rate_limiter",
    "install_pipeline",
]
