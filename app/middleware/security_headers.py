# =============================================================================
# app/middleware/security_headers.py - Content Security Policy Stage
# =============================================================================
# Pure response decoration: every response gets the same CSP header,
# enumerating allowed sources per resource category.
# =============================================================================

from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

CSP_DIRECTIVES: dict[str, list[str]] = {
    "default-src": ["'self'", "data:", "blob:", "https:", "ws:"],
    "base-uri": ["'self'"],
    "font-src": ["'self'", "https://fonts.googleapis.com", "https://fonts.gstatic.com"],
    "script-src": ["'self'", "https:", "http:", "blob:", "https://unpkg.com"],
    "frame-src": ["'self'", "https://js.stripe.com"],
    "object-src": ["'none'"],
    "style-src": ["'self'", "'unsafe-inline'", "https://fonts.googleapis.com", "https://unpkg.com"],
    "worker-src": ["'self'", "blob:", "https://m.stripe.network"],
    "child-src": ["'self'", "blob:"],
    "img-src": ["'self'", "blob:", "data:", "https:"],
    "form-action": ["'self'"],
    "connect-src": ["'self'", "https:", "http:", "ws:", "wss:", "data:", "blob:"],
    "upgrade-insecure-requests": [],
}


def build_csp(directives: dict[str, list[str]]) -> str:
    """
    Serialize CSP directives.

    Example:
        build_csp({"object-src": ["'none'"], "upgrade-insecure-requests": []})
        # "object-src 'none';upgrade-insecure-requests"
    """
    return ";".join(
        " ".join([name, *sources]) for name, sources in directives.items()
    )


class SecurityHeadersMiddleware:
    """Attach the Content-Security-Policy header to every response."""

    def __init__(self, app: ASGIApp, directives: dict[str, list[str]] | None = None):
        self.app = app
        self.policy = build_csp(directives or CSP_DIRECTIVES)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_csp(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message)["Content-Security-Policy"] = self.policy
            await send(message)

        await self.app(scope, receive, send_with_csp)
