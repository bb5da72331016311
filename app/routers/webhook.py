# =============================================================================
# app/routers/webhook.py - Checkout Webhook Endpoint
# =============================================================================
# The payment processor posts checkout events here. The raw-body stage has
# kept the exact wire bytes, which the signature check requires; this route
# hands those bytes and the signature header to the checkout webhook
# collaborator stored on app.state.
# =============================================================================

import logging
from typing import Protocol

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from app.routing import AppRoute

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "stripe-signature"

router = APIRouter(route_class=AppRoute)


class CheckoutWebhook(Protocol):
    """Processes a signed checkout event."""

    async def __call__(self, payload: bytes, signature: str | None) -> None:
        ...


async def acknowledge_checkout(payload: bytes, signature: str | None) -> None:
    """Default collaborator: log the event size and accept it."""
    logger.info(f"Received checkout webhook ({len(payload)} bytes, signed={signature is not None})")


@router.post("/webhook-checkout")
async def webhook_checkout(request: Request):
    """
    Forward the unparsed checkout event.

    Returns:
        {"received": true} once the collaborator has accepted the event
    """
    payload: bytes = getattr(request.state, "raw_body", None)
    if payload is None:
        payload = await request.body()

    handler: CheckoutWebhook = getattr(request.app.state, "checkout_webhook", acknowledge_checkout)
    await handler(payload, request.headers.get(SIGNATURE_HEADER))
    return JSONResponse({"received": True})
