# =============================================================================
# app/routing.py - Route Class
# =============================================================================
# Faults raised by a route are turned into AppError before they leave the
# route, so the AppError handler answers them from inside the pipeline and
# the response still passes back through every stage (cross-origin, security
# headers, compression). A handler registered for bare Exception would run
# outside the pipeline instead.
# =============================================================================

import logging
from typing import Any, Callable, Coroutine

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import Response
from fastapi.routing import APIRoute
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.exceptions import AppError, UnexpectedError

logger = logging.getLogger(__name__)

# Already handled by their own exception handlers
PASSTHROUGH = (AppError, StarletteHTTPException, RequestValidationError)


class AppRoute(APIRoute):
    """APIRoute whose unexpected faults surface as a non-operational AppError."""

    def get_route_handler(self) -> Callable[[Request], Coroutine[Any, Any, Response]]:
        handler = super().get_route_handler()

        async def app_route_handler(request: Request) -> Response:
            try:
                return await handler(request)
            except PASSTHROUGH:
                raise
            except Exception as exc:
                logger.exception(f"Unexpected error on {request.method} {request.url.path}: {exc}")
                raise UnexpectedError(exc) from exc

        return app_route_handler
