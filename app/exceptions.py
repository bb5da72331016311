# =============================================================================
# app/exceptions.py - Domain Errors and the Terminal Error Handler
# =============================================================================
# Centralized exception handling for the application.
# Controllers and pipeline stages never build error responses themselves:
# they raise (or hand over) an AppError and `error_response` decides the
# status code and the shape (JSON for API paths, error page for views).
# =============================================================================

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import settings

logger = logging.getLogger(__name__)

API_PREFIX = "/api"
GENERIC_MESSAGE = "Something went very wrong!"


class AppError(Exception):
    """
    Base domain error.

    All intentional errors inherit from this class. Carries a human-readable
    message, a machine-readable code and an HTTP status (500 unless the
    subclass or caller assigns one).
    """

    is_operational = True

    def __init__(
        self,
        message: str,
        code: str = "APP_ERROR",
        status_code: int = 500,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.suggestion = suggestion
        self.details = details or {}

    @property
    def status(self) -> str:
        """'fail' for client errors, 'error' for server errors."""
        return "fail" if 400 <= self.status_code < 500 else "error"

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response dict."""
        result = {
            "status": self.status,
            "detail": self.message,
            "code": self.code,
        }
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Not Found
# =============================================================================

class NotFoundError(AppError):
    """Raised when a requested resource doesn't exist."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            code="NOT_FOUND",
            status_code=404,
            details=details,
        )


class RouteNotFoundError(NotFoundError):
    """Raised when no route matches the method and path."""

    def __init__(self, url: str):
        super().__init__(
            message=f"Can't find {url} on this server!",
            details={"url": url},
        )
        self.code = "ROUTE_NOT_FOUND"


class TourNotFoundError(AppError):
    """
    Raised when a tour slug resolves to nothing.

    No status is assigned here, so the base default applies.
    # Status is an open product decision; stays the base 500 until it is made.
    The slug is kept out of the message.
    """

    def __init__(self):
        super().__init__(
            message="There is no tour with that name.",
            code="TOUR_NOT_FOUND",
        )


# =============================================================================
# Client Errors
# =============================================================================

class ValidationFailedError(AppError):
    """Raised when submitted data fails entity validation."""

    def __init__(self, errors: dict[str, str]):
        joined = ". ".join(errors.values())
        super().__init__(
            message=f"Invalid input data. {joined}",
            code="VALIDATION_ERROR",
            status_code=400,
            details={"fields": errors},
        )
        self.errors = errors


class BadRequestError(AppError):
    """Raised when the request body cannot be decoded."""

    def __init__(self, message: str):
        super().__init__(message=message, code="BAD_REQUEST", status_code=400)


class AuthenticationError(AppError):
    """Raised when a protected page is requested without a valid login."""

    def __init__(
        self,
        message: str = "You are not logged in! Please log in to get access.",
    ):
        super().__init__(
            message=message,
            code="NOT_AUTHENTICATED",
            status_code=401,
            suggestion="Log in and retry the request",
        )


class PayloadTooLargeError(AppError):
    """Raised when a request body exceeds the configured ceiling."""

    def __init__(self, limit_bytes: int):
        super().__init__(
            message=f"Request body larger than {limit_bytes // 1024}kb",
            code="PAYLOAD_TOO_LARGE",
            status_code=413,
            details={"limit_bytes": limit_bytes},
        )


class UnexpectedError(AppError):
    """Wraps a fault nobody raised on purpose."""

    is_operational = False

    def __init__(self, exc: Exception):
        super().__init__(message=str(exc) or GENERIC_MESSAGE, code="INTERNAL_ERROR")


class DatabaseError(AppError):
    """Raised when the persistence layer fails."""

    is_operational = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            code="DATABASE_ERROR",
            status_code=500,
            details=details,
        )


# =============================================================================
# Terminal Handler
# =============================================================================

def is_api_request(request: Request) -> bool:
    """Check whether the request targets the JSON API."""
    return request.url.path.startswith(API_PREFIX)


def error_response(request: Request, exc: AppError) -> Response:
    """
    Convert a domain error to the client-visible response.

    This is the only place that decides status code and response shape:
    - API paths get JSON (full detail in development)
    - View paths get the rendered error page

    In production, non-operational errors only expose a generic message.
    """
    expose = settings.is_development or exc.is_operational

    if is_api_request(request):
        if expose:
            content = exc.to_dict()
        else:
            content = {"status": "error", "detail": GENERIC_MESSAGE, "code": "INTERNAL_ERROR"}
        return JSONResponse(status_code=exc.status_code, content=content)

    # Imported here: templating reads settings at import time
    from app.templating import render

    return render(
        request,
        "error.html",
        status_code=exc.status_code,
        title="Something went wrong!",
        msg=exc.message if expose else "Please try again later.",
    )


async def app_exception_handler(request: Request, exc: AppError) -> Response:
    """Handle intentional domain errors."""
    if exc.status_code >= 500:
        logger.error(f"{exc.code}: {exc.message}")
    return error_response(request, exc)


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> Response:
    """
    Handle framework HTTP errors.

    Unmatched routes (404) and unmatched methods (405) both become a
    RouteNotFoundError naming the original URL.
    """
    if exc.status_code in (404, 405):
        url = request.url.path
        if request.url.query:
            url = f"{url}?{request.url.query}"
        return error_response(request, RouteNotFoundError(url))

    return error_response(
        request,
        AppError(str(exc.detail), code="HTTP_ERROR", status_code=exc.status_code),
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> Response:
    """
    Handle request validation errors.

    Converts pydantic error entries to field-level messages.
    """
    errors = {
        ".".join(str(part) for part in err.get("loc", ())): err.get("msg", "invalid")
        for err in exc.errors()
    }
    return error_response(request, ValidationFailedError(errors))


async def unexpected_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle unexpected faults as a generic 500."""
    logger.exception(f"Unexpected error: {exc}")
    return error_response(request, UnexpectedError(exc))
