# =============================================================================
# app/middleware/body.py - Raw Body Capture and Body Parsing Stages
# =============================================================================
# RawBodyMiddleware keeps the exact wire bytes of the checkout webhook, whose
# signature check needs the original payload. It runs before the parser, and
# the parser leaves captured requests alone.
#
# BodyParserMiddleware decodes JSON and URL-encoded bodies up to a size
# ceiling into `request.state.body` and replays the bytes downstream.
# =============================================================================

import json
import logging
from urllib.parse import parse_qsl

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Receive, Scope, Send

from app.exceptions import BadRequestError, PayloadTooLargeError
from app.middleware.base import read_body, replay_body, scope_state, send_error

logger = logging.getLogger(__name__)

JSON_TYPES = ("application/json",)
FORM_TYPES = ("application/x-www-form-urlencoded",)


def media_type(scope: Scope) -> str:
    """Content type without parameters, lowercased."""
    content_type = Headers(scope=scope).get("content-type", "")
    return content_type.split(";")[0].strip().lower()


def parse_form(body: bytes) -> dict:
    """
    Decode a URL-encoded body.

    Repeated keys become lists, single keys stay scalar.
    """
    parsed: dict = {}
    for key, value in parse_qsl(body.decode("utf-8"), keep_blank_values=True):
        if key in parsed:
            existing = parsed[key]
            parsed[key] = [*existing, value] if isinstance(existing, list) else [existing, value]
        else:
            parsed[key] = value
    return parsed


class RawBodyMiddleware:
    """Capture the body of one POST path as unparsed bytes."""

    def __init__(self, app: ASGIApp, path: str = "/webhook-checkout"):
        self.app = app
        self.path = path

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if (
            scope["type"] != "http"
            or scope["method"] != "POST"
            or scope["path"] != self.path
        ):
            await self.app(scope, receive, send)
            return

        body = await read_body(receive)
        scope_state(scope)["raw_body"] = body
        await self.app(scope, replay_body(body, receive), send)


class BodyParserMiddleware:
    """Decode JSON and URL-encoded bodies up to `limit` bytes."""

    def __init__(self, app: ASGIApp, limit: int = 10 * 1024):
        self.app = app
        self.limit = limit

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or "raw_body" in scope_state(scope):
            await self.app(scope, receive, send)
            return

        kind = media_type(scope)
        if kind not in JSON_TYPES and kind not in FORM_TYPES:
            await self.app(scope, receive, send)
            return

        declared = Headers(scope=scope).get("content-length")
        if declared and declared.isdigit() and int(declared) > self.limit:
            await send_error(PayloadTooLargeError(self.limit), scope, receive, send)
            return

        try:
            body = await read_body(receive, limit=self.limit)
        except OverflowError:
            await send_error(PayloadTooLargeError(self.limit), scope, receive, send)
            return

        try:
            if kind in JSON_TYPES:
                parsed = json.loads(body) if body.strip() else {}
            else:
                parsed = parse_form(body)
        except (ValueError, UnicodeDecodeError) as e:
            logger.debug(f"Rejected undecodable body: {e}")
            await send_error(BadRequestError("Invalid request body."), scope, receive, send)
            return

        scope_state(scope)["body"] = parsed
        await self.app(scope, replay_body(body, receive), send)
