# =============================================================================
# app/middleware/access_log.py - Access Logging Stage
# =============================================================================
# One line per request, written when the response has been sent:
# - development: console, "tiny" format
#     GET /tour/the-forest-hiker 200 5120 - 12.345 ms
# - production: append-only file logs/access.log
#     203.0.113.7 GET /tour/the-forest-hiker 200 12.345 ms - 5120
# =============================================================================

import logging
import time
from pathlib import Path
from typing import Literal

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from app.middleware.base import client_address

ACCESS_LOGGER = "natours.access"


def configure_access_logger(
    mode: Literal["development", "production"],
    log_path: Path | None = None,
) -> logging.Logger:
    """
    Set up the access logger for a deployment mode.

    In production the log file's directory is created if it does not exist.

    Returns:
        The configured logger (it does not propagate to the root logger)
    """
    access_logger = logging.getLogger(ACCESS_LOGGER)
    for handler in list(access_logger.handlers):
        access_logger.removeHandler(handler)
        handler.close()

    if mode == "production":
        if log_path is None:
            raise ValueError("production access logging needs a log path")
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    else:
        handler = logging.StreamHandler()

    handler.setFormatter(logging.Formatter("%(message)s"))
    access_logger.addHandler(handler)
    access_logger.setLevel(logging.INFO)
    access_logger.propagate = False
    return access_logger


class AccessLogMiddleware:
    """Log each request once its response is complete."""

    def __init__(
        self,
        app: ASGIApp,
        mode: Literal["development", "production"] = "development",
        log_path: Path | None = None,
        trust_proxy: bool = True,
    ):
        self.app = app
        self.mode = mode
        self.trust_proxy = trust_proxy
        self.logger = configure_access_logger(mode, log_path)

    def format_line(
        self,
        scope: Scope,
        status: int | str,
        elapsed_ms: float,
        length: str,
    ) -> str:
        url = scope["path"]
        if scope.get("query_string"):
            url = f"{url}?{scope['query_string'].decode('latin-1')}"

        if self.mode == "production":
            address = client_address(scope, self.trust_proxy)
            return f"{address} {scope['method']} {url} {status} {elapsed_ms:.3f} ms - {length}"
        return f"{scope['method']} {url} {status} {length} - {elapsed_ms:.3f} ms"

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        started = time.perf_counter()
        status: int | str = "-"
        length = "-"
        logged = False

        async def send_and_log(message: Message) -> None:
            nonlocal status, length, logged
            if message["type"] == "http.response.start":
                status = message["status"]
                length = Headers(raw=message.get("headers", [])).get("content-length", "-")
            await send(message)
            if message["type"] == "http.response.body" and not message.get("more_body", False):
                elapsed = (time.perf_counter() - started) * 1000
                self.logger.info(self.format_line(scope, status, elapsed, length))
                logged = True

        try:
            await self.app(scope, receive, send_and_log)
        finally:
            if not logged:
                elapsed = (time.perf_counter() - started) * 1000
                self.logger.info(self.format_line(scope, status, elapsed, length))
