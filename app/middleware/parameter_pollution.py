# =============================================================================
# app/middleware/parameter_pollution.py - Parameter Pollution Guard
# =============================================================================
# ?sort=price&sort=duration  ->  ?sort=duration   (last value wins)
# ?duration=5&duration=9     ->  unchanged        (whitelisted, stays a list)
# =============================================================================

from urllib.parse import parse_qsl, urlencode

from starlette.types import ASGIApp, Receive, Scope, Send

WHITELIST = frozenset(
    {
        "duration",
        "ratingsAverage",
        "ratingsQuantity",
        "maxGroupSize",
        "difficulty",
        "price",
    }
)


def collapse_query(query_string: bytes, whitelist: frozenset[str] = WHITELIST) -> bytes:
    """Keep only the last value of repeated non-whitelisted keys."""
    pairs = parse_qsl(query_string.decode("latin-1"), keep_blank_values=True)

    last_index: dict[str, int] = {}
    for index, (key, _) in enumerate(pairs):
        last_index[key] = index

    kept = [
        (key, value)
        for index, (key, value) in enumerate(pairs)
        if key in whitelist or last_index[key] == index
    ]
    return urlencode(kept).encode("latin-1")


class ParameterPollutionMiddleware:
    """Collapse repeated query keys outside the whitelist."""

    def __init__(self, app: ASGIApp, whitelist: frozenset[str] = WHITELIST):
        self.app = app
        self.whitelist = frozenset(whitelist)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope.get("query_string"):
            scope = {**scope, "query_string": collapse_query(scope["query_string"], self.whitelist)}
        await self.app(scope, receive, send)
