# =============================================================================
# app/middleware/sanitize.py - Input Sanitization Stage
# =============================================================================
# Strips two kinds of payloads from every string input:
# - query-operator injection: keys starting with "$" or containing "."
#   (e.g. {"email": {"$gt": ""}}) are removed
# - script injection: "<" in string values is HTML-escaped
#
# Applied to the query string and the parsed body here; path params are
# sanitized by a router dependency once routing has extracted them.
# =============================================================================

import json
from typing import Any
from urllib.parse import parse_qsl, urlencode

from starlette.types import ASGIApp, Receive, Scope, Send

from app.middleware.base import read_body, replay_body, scope_state, with_body_length
from app.middleware.body import FORM_TYPES, JSON_TYPES, media_type


def is_operator_key(key: str) -> bool:
    """Keys that could smuggle a query operator into a filter."""
    return key.startswith("$") or "." in key


def clean_string(value: str) -> str:
    return value.replace("<", "&lt;")


def sanitize_value(value: Any) -> Any:
    """
    Recursively sanitize a decoded input value.

    Example:
        sanitize_value({"email": {"$gt": ""}, "name": "<script>"})
        # {"email": {}, "name": "&lt;script>"}
    """
    if isinstance(value, str):
        return clean_string(value)
    if isinstance(value, dict):
        return {
            key: sanitize_value(item)
            for key, item in value.items()
            if not is_operator_key(str(key))
        }
    if isinstance(value, list):
        return [sanitize_value(item) for item in value]
    return value


def sanitize_query_string(query_string: bytes) -> bytes:
    """Sanitize every key/value pair, keeping order and repeated keys."""
    pairs = parse_qsl(query_string.decode("latin-1"), keep_blank_values=True)
    cleaned = [
        (key, clean_string(value)) for key, value in pairs if not is_operator_key(key)
    ]
    return urlencode(cleaned).encode("latin-1")


def encode_body(kind: str, body: Any) -> bytes:
    """Serialize a sanitized body in its original content type."""
    if kind in JSON_TYPES:
        return json.dumps(body).encode("utf-8")
    return urlencode(body, doseq=True).encode("utf-8")


class SanitizeMiddleware:
    """Rewrite query string and parsed body with sanitized values."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        if scope.get("query_string"):
            scope = {**scope, "query_string": sanitize_query_string(scope["query_string"])}

        state = scope_state(scope)
        if "body" in state:
            state["body"] = sanitize_value(state["body"])
            kind = media_type(scope)
            if kind in JSON_TYPES or kind in FORM_TYPES:
                body = encode_body(kind, state["body"])
                # Drop the unsanitized bytes replayed by the parser
                await read_body(receive)
                scope = with_body_length(scope, len(body))
                receive = replay_body(body, receive)

        await self.app(scope, receive, send)
