# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# This module provides pytest fixtures and configuration for all tests.
#
# Key features:
# - Sets up mock environment variables before any imports
# - Provides collection services mocked with unittest.mock
# - Builds a fresh application per test with the services overridden
#
# Tests never open a database connection: TestClient is used without its
# context manager, so the lifespan (and its connect) does not run.
# =============================================================================

import os
from datetime import datetime, timedelta, timezone

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================
# This must happen before importing app.config which loads settings immediately

os.environ.setdefault("DATABASE", "mongodb://<USERNAME>:<PASSWORD>@localhost:27017/natours")
os.environ.setdefault("USERNAME", "natours-test")
os.environ.setdefault("DATABASE_PASSWORD", "test-password")
os.environ.setdefault("NODE_ENV", "development")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-0123456789")

from unittest.mock import MagicMock

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from jose import jwt

from app.config import settings
from app.dependencies import get_booking_service, get_tour_service, get_user_service
from app.main import create_app
from app.middleware.rate_limit import FixedWindowRateLimiter, InMemoryCounterStore
from core.services.booking_service import BookingService
from core.services.tour_service import TourService
from core.services.user_service import UserService

USER_ID = ObjectId("5c8a1d5b0190b214360dc057")
FOREST_HIKER_ID = ObjectId("5c88fa8cf4afda39709c2955")
SEA_EXPLORER_ID = ObjectId("5c88fa8cf4afda39709c295a")
SNOW_ADVENTURER_ID = ObjectId("5c88fa8cf4afda39709c2961")


# =============================================================================
# Documents
# =============================================================================

@pytest.fixture
def user_doc():
    """A user as projected by UserService.get_active_user."""
    return {
        "_id": USER_ID,
        "name": "Laura Wilson",
        "email": "laura@example.com",
        "photo": "user-2.jpg",
        "role": "user",
    }


@pytest.fixture
def tour_docs():
    """Tours projected to the tour card fields."""
    return [
        {
            "_id": FOREST_HIKER_ID,
            "name": "The Forest Hiker",
            "slug": "the-forest-hiker",
            "price": 397,
            "ratingsAverage": 4.8,
            "ratingsQuantity": 9,
            "difficulty": "easy",
            "duration": 5,
            "maxGroupSize": 25,
            "summary": "Breathtaking hike through the Canadian Banff National Park",
            "imageCover": "tour-1-cover.jpg",
            "startLocation": {"description": "Banff, CAN"},
            "startDates": [datetime(2026, 4, 25, 9, tzinfo=timezone.utc)],
            "locations": [{"description": "Banff National Park"}],
        },
        {
            "_id": SEA_EXPLORER_ID,
            "name": "The Sea Explorer",
            "slug": "the-sea-explorer",
            "price": 497,
            "ratingsAverage": 4.6,
            "ratingsQuantity": 7,
            "difficulty": "medium",
            "duration": 7,
            "maxGroupSize": 15,
            "summary": "Exploring the jaw-dropping US east coast by foot and by boat",
            "imageCover": "tour-2-cover.jpg",
            "startLocation": {"description": "Miami, USA"},
            "startDates": [],
            "locations": [],
        },
        {
            "_id": SNOW_ADVENTURER_ID,
            "name": "The Snow Adventurer",
            "slug": "the-snow-adventurer",
            "price": 997,
            "ratingsAverage": 4.5,
            "ratingsQuantity": 6,
            "difficulty": "difficult",
            "duration": 4,
            "maxGroupSize": 10,
            "summary": "Exciting adventure in the snow with snowboarding and skiing",
            "imageCover": "tour-3-cover.jpg",
            "startLocation": {"description": "Aspen, USA"},
            "startDates": [],
            "locations": [],
        },
    ]


@pytest.fixture
def tour_detail_doc():
    """The Forest Hiker with reviews and guides expanded."""
    return {
        "_id": FOREST_HIKER_ID,
        "name": "The Forest Hiker",
        "slug": "the-forest-hiker",
        "price": 397,
        "ratingsAverage": 4.8,
        "ratingsQuantity": 9,
        "difficulty": "easy",
        "duration": 5,
        "maxGroupSize": 25,
        "summary": "Breathtaking hike through the Canadian Banff National Park",
        "description": "Lorem ipsum dolor sit amet.\nConsectetur adipisicing elit.",
        "imageCover": "tour-1-cover.jpg",
        "images": ["tour-1-1.jpg", "tour-1-2.jpg"],
        "startDates": [datetime(2026, 4, 25, 9, tzinfo=timezone.utc)],
        "startLocation": {
            "description": "Banff, CAN",
            "address": "224 Banff Ave, Banff, AB, Canada",
            "coordinates": [-115.570154, 51.178456],
        },
        "reviews": [
            {
                "_id": ObjectId(),
                "review": "Amazing trip, every day was better than the last",
                "rating": 5,
                "createdAt": datetime(2026, 5, 2, tzinfo=timezone.utc),
                "user": {"_id": USER_ID, "name": "Laura Wilson", "photo": "user-2.jpg"},
            },
        ],
        "guides": [
            {"_id": ObjectId(), "name": "Miyah Myles", "photo": "user-12.jpg", "role": "lead-guide"},
        ],
    }


# =============================================================================
# Services
# =============================================================================
# spec'd MagicMocks: async service methods become AsyncMocks, so
# `return_value` is what the awaited call returns.

@pytest.fixture
def tour_service(tour_docs, tour_detail_doc):
    service = MagicMock(spec=TourService)
    service.list_tours.return_value = tour_docs
    service.list_top_rated.return_value = [t for t in tour_docs if t["ratingsAverage"] >= 4.5]
    service.list_difficulties.return_value = [{"_id": t["_id"], "difficulty": t["difficulty"]} for t in tour_docs]
    service.list_by_ids.return_value = []
    service.list_with_latest_review.return_value = []
    service.get_by_slug_with_details.side_effect = (
        lambda slug: tour_detail_doc if slug == tour_detail_doc["slug"] else None
    )
    return service


@pytest.fixture
def booking_service():
    service = MagicMock(spec=BookingService)
    service.list_tour_ids_for_user.return_value = []
    return service


@pytest.fixture
def user_service(user_doc):
    service = MagicMock(spec=UserService)
    service.get_active_user.side_effect = lambda user_id: user_doc if user_id == USER_ID else None
    service.update_name_email.return_value = user_doc
    return service


# =============================================================================
# Application
# =============================================================================

@pytest.fixture
def limiter():
    """In-memory rate limiter so every test starts with a fresh budget."""
    return FixedWindowRateLimiter(InMemoryCounterStore(), limit=100, window_seconds=3600)


@pytest.fixture
def app(limiter, tour_service, booking_service, user_service):
    """Fresh application with the collection services mocked."""
    application = create_app(limiter=limiter)
    application.dependency_overrides[get_tour_service] = lambda: tour_service
    application.dependency_overrides[get_booking_service] = lambda: booking_service
    application.dependency_overrides[get_user_service] = lambda: user_service
    return application


@pytest.fixture
def client(app):
    """Test client that turns unexpected faults into 500 responses."""
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def make_token():
    """Factory for signed login tokens."""

    def _make_token(user_id: ObjectId = USER_ID, expires_in: int = 3600) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "id": str(user_id),
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=expires_in)).timestamp()),
        }
        return jwt.encode(payload, settings.JWT_SECRET, algorithm="HS256")

    return _make_token
