#!/usr/bin/env python3
# =============================================================================
# app/server.py - Process Bootstrap
# =============================================================================
# Starts the HTTP listener and installs the process-level fault handlers:
# - missing required settings      -> log, exit(1)
# - uncaught exception             -> log, exit(1)
# - unhandled asyncio task error   -> log, close the listener, then exit(1)
# - SIGTERM                        -> close the listener gracefully
#
# Usage:
#   python -m app.server
# =============================================================================

import asyncio
import logging
import signal
import sys

import uvicorn
from pydantic import ValidationError

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("app.server")


def log_uncaught_exception(exc_type, exc, tb) -> None:
    """sys.excepthook: report a fault that escaped every handler and exit."""
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc, tb)
        return
    logger.critical(f"{exc_type.__name__}: {exc}", exc_info=(exc_type, exc, tb))
    logger.critical("UNCAUGHT EXCEPTION! Shutting down...")
    sys.exit(1)


class Server(uvicorn.Server):
    """
    uvicorn server with the application's shutdown policy.

    `exit_code` becomes 1 when an unhandled task error forced the shutdown.
    """

    def __init__(self, config: uvicorn.Config):
        super().__init__(config)
        self.exit_code = 0

    def handle_exit(self, sig: int, frame) -> None:
        if sig == signal.SIGTERM:
            logger.info("SIGTERM RECEIVED. Shutting down gracefully.")
        super().handle_exit(sig, frame)

    def handle_unhandled_error(self, loop: asyncio.AbstractEventLoop, context: dict) -> None:
        """Event loop exception handler: stop accepting requests, then exit 1."""
        exc = context.get("exception")
        name = type(exc).__name__ if exc else "Error"
        logger.error(f"{name}: {exc or context.get('message')}")
        logger.error("UNHANDLED REJECTION! Shutting down...")
        self.exit_code = 1
        self.should_exit = True

    async def serve(self, sockets=None) -> None:
        asyncio.get_running_loop().set_exception_handler(self.handle_unhandled_error)
        await super().serve(sockets=sockets)


def main() -> int:
    """
    Validate configuration and run the listener until it is closed.

    Returns:
        Process exit code
    """
    sys.excepthook = log_uncaught_exception

    try:
        from app.config import get_settings

        settings = get_settings()
    except ValidationError as e:
        logger.error(
            "Missing required environment variables: DATABASE, USERNAME, or DATABASE_PASSWORD"
        )
        logger.debug(str(e))
        return 1

    config = uvicorn.Config(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        proxy_headers=settings.TRUST_PROXY,
        forwarded_allow_ips="*" if settings.TRUST_PROXY else None,
        log_level="debug" if settings.DEBUG else "info",
    )
    server = Server(config)
    logger.info(f"App running on port {settings.PORT}...")

    asyncio.run(server.serve())

    if server.exit_code == 0:
        logger.info("Process terminated")
    return server.exit_code


if __name__ == "__main__":
    sys.exit(main())
