# =============================================================================
# app/main.py - FastAPI Application Entry Point
# =============================================================================
# This is the main entry point for the Natours web application.
# It configures the FastAPI application with the request pipeline, routers,
# and the terminal error handlers.
#
# Usage:
#   python -m app.server                      (production bootstrap)
#   uvicorn app.main:app --reload --port 5000 (development)
# =============================================================================

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import Settings, settings
from app.exceptions import (
    AppError,
    app_exception_handler,
    http_exception_handler,
    unexpected_exception_handler,
    validation_exception_handler,
)
from app.middleware import build_pipeline, install_pipeline
from app.middleware.rate_limit import FixedWindowRateLimiter
from app.routing import AppRoute
from app.routers import health, views, webhook
from lib.mongo_client import MongoClient

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    - Startup: Connect to MongoDB (a failure is logged, the app keeps serving)
    - Shutdown: Close the connection pool
    """
    logger.info(f"Starting Natours in {settings.NODE_ENV} mode")
    await MongoClient.connect()

    yield

    logger.info("Shutting down Natours")
    await MongoClient.close()


def create_app(
    app_settings: Settings = settings,
    limiter: FixedWindowRateLimiter | None = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        app_settings: Settings to build the pipeline from
        limiter: Rate limiter override (tests inject one with a fake clock)

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="Natours",
        description="Tour booking: browse tours, read stories, manage bookings.",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url=None,
        openapi_url="/api/openapi.json",
        openapi_tags=[
            {
                "name": "Views",
                "description": "Server-rendered pages",
            },
            {
                "name": "Webhooks",
                "description": "Payment processor callbacks",
            },
            {
                "name": "Health",
                "description": "API health and readiness checks",
            },
        ],
    )

    # =========================================================================
    # Request Pipeline
    # =========================================================================

    install_pipeline(app, build_pipeline(app_settings, limiter=limiter))

    # =========================================================================
    # Exception Handlers
    # =========================================================================

    app.add_exception_handler(AppError, app_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unexpected_exception_handler)

    # =========================================================================
    # Routers
    # =========================================================================

    # Routes added later (including in tests) get the same fault translation
    app.router.route_class = AppRoute

    # Checkout webhook (raw body captured by the pipeline)
    app.include_router(webhook.router, tags=["Webhooks"])

    # Pages
    app.include_router(views.router, tags=["Views"])

    # Health check endpoints
    app.include_router(health.router, prefix="/api/v1", tags=["Health"])

    return app


app = create_app()
