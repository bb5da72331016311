# =============================================================================
# lib/mongo_client.py - MongoDB Client Wrapper
# =============================================================================
# This module owns the single AsyncMongoClient shared by the application.
# It implements the singleton pattern to reuse one connection pool and
# exposes the database handle the services query against.
#
# Reads through PyMongo return plain dicts (no change tracking), which is
# the lean read mode the page controllers rely on.
#
# Usage:
#   from lib.mongo_client import MongoClient
#   await MongoClient.connect()
#   db = MongoClient.get_database()
# =============================================================================

from __future__ import annotations

import logging
from typing import Any

from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import PyMongoError

from app.config import settings

# Set up logging for this module
logger = logging.getLogger(__name__)

# Pool sizing and timeouts handed to the driver
CLIENT_OPTIONS: dict[str, Any] = {
    "maxPoolSize": 10,
    "serverSelectionTimeoutMS": 5000,
    "socketTimeoutMS": 45000,
}


class MongoClientError(Exception):
    """
    Error during MongoDB operations.

    Provides actionable error messages:
    "Errors should tell HOW to fix, not just WHAT failed."
    """

    def __init__(
        self,
        message: str,
        code: str = "MONGO_ERROR",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}

    def __str__(self) -> str:
        result = f"[{self.code}] {self.message}"
        if self.suggestion:
            result += f" Suggestion: {self.suggestion}"
        return result


class MongoClient:
    """
    Process-wide MongoDB client.

    All methods are class methods for easy access without instantiation.
    The driver connects lazily, so `get_database` works before `connect`.

    Example:
        await MongoClient.connect()
        tours = MongoClient.get_database()["tours"]
    """

    _instance: AsyncMongoClient | None = None

    @classmethod
    def get_client(cls) -> AsyncMongoClient:
        """
        Get or create the singleton client.

        Returns:
            AsyncMongoClient: Driver client instance

        Raises:
            MongoClientError: If the connection string is unusable
        """
        if cls._instance is None:
            try:
                cls._instance = AsyncMongoClient(settings.database_url, **CLIENT_OPTIONS)
                logger.info("MongoDB client initialized")
            except (PyMongoError, ValueError) as e:
                raise MongoClientError(
                    message=f"Failed to create MongoDB client: {e}",
                    code="CLIENT_INIT_FAILED",
                    suggestion="Check DATABASE, USERNAME and DATABASE_PASSWORD in config.env",
                )
        return cls._instance

    @classmethod
    def get_database(cls) -> AsyncDatabase:
        """Database named in the connection string, or DATABASE_NAME."""
        return cls.get_client().get_default_database(default=settings.DATABASE_NAME)

    @classmethod
    async def ping(cls) -> bool:
        """
        Check the server is reachable.

        Raises:
            MongoClientError: If the server does not answer
        """
        try:
            await cls.get_client().admin.command("ping")
            return True
        except PyMongoError as e:
            raise MongoClientError(
                message=f"DB connection error: {e}",
                code="PING_FAILED",
                suggestion="Check the cluster is running and the IP is allowed",
            )

    @classmethod
    async def connect(cls) -> bool:
        """
        Establish the connection at startup.

        A failure is logged but not raised: the listener keeps serving so
        platform health checks can reach it while the database recovers.

        Returns:
            True when the server answered the ping
        """
        try:
            await cls.ping()
        except MongoClientError as e:
            logger.error(str(e))
            return False

        logger.info("DB connection successful!")
        return True

    @classmethod
    async def close(cls) -> None:
        """Close the pool (shutdown)."""
        if cls._instance is not None:
            await cls._instance.close()
            cls._instance = None
            logger.info("MongoDB client closed")
