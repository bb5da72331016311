# =============================================================================
# app/middleware/base.py - Shared ASGI Helpers
# =============================================================================
# Small helpers used by the pipeline stages:
# - reading and replaying request bodies
# - reading/writing request-scoped state
# - handing domain errors to the terminal error handler
# - resolving the client address
# =============================================================================

from typing import Any

from starlette.datastructures import Headers
from starlette.requests import Request
from starlette.types import Message, Receive, Scope, Send

from app.exceptions import AppError, error_response


def scope_state(scope: Scope) -> dict[str, Any]:
    """Request-scoped state dict (backs `request.state`)."""
    return scope.setdefault("state", {})


async def read_body(receive: Receive, limit: int | None = None) -> bytes:
    """
    Drain the request body.

    Args:
        receive: ASGI receive callable
        limit: Maximum bytes allowed (None for no limit)

    Returns:
        The complete body

    Raises:
        OverflowError: As soon as more than `limit` bytes have arrived
    """
    chunks = []
    size = 0
    more_body = True
    while more_body:
        message = await receive()
        if message["type"] == "http.disconnect":
            break
        chunk = message.get("body", b"")
        size += len(chunk)
        if limit is not None and size > limit:
            raise OverflowError(size)
        chunks.append(chunk)
        more_body = message.get("more_body", False)
    return b"".join(chunks)


def replay_body(body: bytes, receive: Receive) -> Receive:
    """Receive callable that yields `body` once, then defers to the original."""
    sent = False

    async def wrapped() -> Message:
        nonlocal sent
        if not sent:
            sent = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return wrapped


def with_body_length(scope: Scope, length: int) -> Scope:
    """Copy of `scope` whose content-length header matches a rewritten body."""
    headers = [
        (name, value) for name, value in scope["headers"] if name != b"content-length"
    ]
    headers.append((b"content-length", str(length).encode("latin-1")))
    return {**scope, "headers": headers}


def client_address(scope: Scope, trust_proxy: bool = True) -> str:
    """
    Address of the client.

    With a trusted proxy in front, the leftmost X-Forwarded-For entry is the
    original client.
    """
    if trust_proxy:
        forwarded = Headers(scope=scope).get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    client = scope.get("client")
    return client[0] if client else "unknown"


async def send_error(exc: AppError, scope: Scope, receive: Receive, send: Send) -> None:
    """Short-circuit a stage through the terminal error handler."""
    response = error_response(Request(scope, receive), exc)
    await response(scope, receive, send)
