# =============================================================================
# app/middleware/compression.py - Response Compression Stage
# =============================================================================
# gzip for responses above a size threshold, using Starlette's GZipMiddleware.
# Clients opt out by sending an `x-no-compression` header.
# =============================================================================

from starlette.datastructures import Headers
from starlette.middleware.gzip import GZipMiddleware
from starlette.types import ASGIApp, Receive, Scope, Send

NO_COMPRESSION_HEADER = "x-no-compression"


class CompressionMiddleware:
    """GZip responses of at least `minimum_size` bytes unless the client opts out."""

    def __init__(self, app: ASGIApp, minimum_size: int = 1024, compresslevel: int = 6):
        self.app = app
        self.gzip = GZipMiddleware(app, minimum_size=minimum_size, compresslevel=compresslevel)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and NO_COMPRESSION_HEADER in Headers(scope=scope):
            await self.app(scope, receive, send)
            return
        await self.gzip(scope, receive, send)
