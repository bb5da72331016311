# =============================================================================
# app/middleware/cookies.py - Cookie Parsing Stage
# =============================================================================

from starlette.datastructures import Headers
from starlette.requests import cookie_parser
from starlette.types import ASGIApp, Receive, Scope, Send

from app.middleware.base import scope_state


class CookieParserMiddleware:
    """Expose request cookies as a dict on `request.state.cookies`."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            header = Headers(scope=scope).get("cookie", "")
            scope_state(scope)["cookies"] = cookie_parser(header) if header else {}
        await self.app(scope, receive, send)
