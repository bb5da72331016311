# =============================================================================
# app/middleware/request_time.py - Request Timestamp Stage
# =============================================================================

from datetime import datetime, timezone

from starlette.types import ASGIApp, Receive, Scope, Send

from app.middleware.base import scope_state


class RequestTimeMiddleware:
    """Stamp `request.state.request_time` with the capture time (ISO-8601 UTC)."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            scope_state(scope)["request_time"] = datetime.now(timezone.utc).isoformat()
        await self.app(scope, receive, send)
