# =============================================================================
# app/middleware/cors.py - Cross-Origin Stage
# =============================================================================
# Permissive cross-origin policy on top of Starlette's CORSMiddleware:
# - cross-origin responses carry Access-Control-Allow-Origin: *
# - every OPTIONS request, on any path, is answered with an empty 204
#
# Starlette only answers real preflights (Origin + Access-Control-Request-
# Method), and with a 200 "OK" body; this stage answers the rest itself and
# reuses the library's preflight headers.
# =============================================================================

from starlette.datastructures import Headers
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp, Receive, Scope, Send

ALLOW_METHODS = "GET,HEAD,PUT,PATCH,POST,DELETE"

# Headers of the library's preflight body, dropped from the empty 204
BODY_HEADERS = frozenset({"content-length", "content-type"})


class CrossOriginMiddleware:
    """Allow any origin, and answer OPTIONS with 204 for all paths."""

    def __init__(self, app: ASGIApp, allow_origin: str = "*"):
        self.app = app
        self.allow_origin = allow_origin
        self.cors = CORSMiddleware(
            app,
            allow_origins=[allow_origin],
            allow_methods=["*"],
            allow_headers=["*"],
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope["method"] == "OPTIONS":
            await self.options_response(Headers(scope=scope))(scope, receive, send)
            return
        await self.cors(scope, receive, send)

    def options_response(self, request_headers: Headers) -> Response:
        """Empty 204: library preflight headers for real preflights, a minimal grant otherwise."""
        if "origin" in request_headers and "access-control-request-method" in request_headers:
            preflight = self.cors.preflight_response(request_headers=request_headers)
            headers = {
                name: value
                for name, value in preflight.headers.items()
                if name not in BODY_HEADERS
            }
        else:
            headers = {
                "Access-Control-Allow-Origin": self.allow_origin,
                "Access-Control-Allow-Methods": ALLOW_METHODS,
            }
        return Response(status_code=204, headers=headers)
