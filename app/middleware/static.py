# =============================================================================
# app/middleware/static.py - Static Asset Stage
# =============================================================================
# Serves files under the public directory before any other processing and
# sets Cache-Control by file type:
# - HTML: always revalidate
# - images, CSS, JS: immutable for a year
# - anything else: a year in production, no caching in development
# ETag and Last-Modified come from Starlette's FileResponse.
# =============================================================================

import re
from pathlib import Path

from starlette.datastructures import MutableHeaders
from starlette.staticfiles import StaticFiles
from starlette.types import ASGIApp, Message, Receive, Scope, Send

ONE_YEAR = 31536000

HTML_CACHE = "public, max-age=0, must-revalidate"
IMMUTABLE_CACHE = f"public, max-age={ONE_YEAR}, immutable"

IMAGE_PATTERN = re.compile(r"\.(jpg|jpeg|png|gif|ico|svg|webp)$")
ASSET_PATTERN = re.compile(r"\.(css|js)$")


def cache_control_for(path: str, production: bool) -> str:
    """Cache policy of one static file."""
    if path.endswith(".html"):
        return HTML_CACHE
    if IMAGE_PATTERN.search(path) or ASSET_PATTERN.search(path):
        return IMMUTABLE_CACHE
    return f"public, max-age={ONE_YEAR if production else 0}"


class StaticAssetMiddleware:
    """Serve existing files from `directory`; everything else passes through."""

    def __init__(self, app: ASGIApp, directory: Path, production: bool = False):
        self.app = app
        self.directory = Path(directory).resolve()
        self.production = production
        self.files = StaticFiles(directory=self.directory, check_dir=False)

    def lookup(self, request_path: str) -> Path | None:
        """The file a request path maps to, if it exists inside the directory."""
        relative = request_path.lstrip("/")
        if not relative:
            return None
        candidate = (self.directory / relative).resolve()
        if not candidate.is_relative_to(self.directory) or not candidate.is_file():
            return None
        return candidate

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if (
            scope["type"] != "http"
            or scope["method"] not in ("GET", "HEAD")
            or self.lookup(scope["path"]) is None
        ):
            await self.app(scope, receive, send)
            return

        cache_control = cache_control_for(scope["path"], self.production)

        async def send_with_cache(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message)["Cache-Control"] = cache_control
            await send(message)

        await self.files(scope, receive, send_with_cache)
