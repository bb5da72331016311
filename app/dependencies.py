# =============================================================================
# app/dependencies.py - Shared Dependencies
# =============================================================================
# FastAPI dependency injection for shared resources.
# These are injected into route handlers using Depends().
# Tests replace the service providers through app.dependency_overrides.
# =============================================================================

from typing import Annotated

from fastapi import Depends
from pymongo.asynchronous.database import AsyncDatabase

from core.services.booking_service import BookingService
from core.services.tour_service import TourService
from core.services.user_service import UserService
from core.services.view_service import ViewService
from lib.mongo_client import MongoClient


def get_database() -> AsyncDatabase:
    """
    Get the application database.

    Returns the handle of the singleton client.
    """
    return MongoClient.get_database()


def get_tour_service(db: Annotated[AsyncDatabase, Depends(get_database)]) -> TourService:
    return TourService(db)


def get_booking_service(db: Annotated[AsyncDatabase, Depends(get_database)]) -> BookingService:
    return BookingService(db)


def get_user_service(db: Annotated[AsyncDatabase, Depends(get_database)]) -> UserService:
    return UserService(db)


def get_view_service(
    tours: Annotated[TourService, Depends(get_tour_service)],
    bookings: Annotated[BookingService, Depends(get_booking_service)],
    users: Annotated[UserService, Depends(get_user_service)],
) -> ViewService:
    """Assemble the page service from the collection services."""
    return ViewService(tours, bookings, users)


# Type alias for dependency injection
ViewServiceDep = Annotated[ViewService, Depends(get_view_service)]
