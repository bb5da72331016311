# =============================================================================
# tests/test_services.py - Collection Service Tests
# =============================================================================
# This module contains tests for the collection reads and the account write.
# The database handle is a MagicMock; tests check the projections and
# filters handed to the driver and the error translation.
# =============================================================================

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError

from app.exceptions import DatabaseError, ValidationFailedError
from core.services.booking_service import BookingService
from core.services.tour_service import (
    DIFFICULTY_ONLY,
    TOUR_CARD_FIELDS,
    TourService,
)
from core.services.user_service import USER_PUBLIC_FIELDS, UserService

from tests.conftest import FOREST_HIKER_ID, USER_ID


def make_db(rows=None):
    """Mock database whose collections return `rows` from find and aggregate."""
    cursor = MagicMock()
    cursor.limit.return_value = cursor
    cursor.to_list = AsyncMock(return_value=rows or [])

    collection = MagicMock()
    collection.find.return_value = cursor
    collection.aggregate = AsyncMock(return_value=cursor)
    collection.find_one = AsyncMock()
    collection.find_one_and_update = AsyncMock()

    db = MagicMock()
    db.__getitem__.return_value = collection
    return db, collection, cursor


# =============================================================================
# TourService
# =============================================================================

class TestTourService:

    def test_list_tours_is_projected(self):
        db, collection, _ = make_db([{"_id": FOREST_HIKER_ID}])

        tours = asyncio.run(TourService(db).list_tours())

        db.__getitem__.assert_called_with("tours")
        collection.find.assert_called_once_with({}, TOUR_CARD_FIELDS)
        assert tours == [{"_id": FOREST_HIKER_ID}]

    def test_top_rated_filter_and_limit(self):
        db, collection, cursor = make_db()

        asyncio.run(TourService(db).list_top_rated(min_rating=4.5, limit=6))

        collection.find.assert_called_once_with({"ratingsAverage": {"$gte": 4.5}}, TOUR_CARD_FIELDS)
        cursor.limit.assert_called_once_with(6)

    def test_difficulties_only(self):
        db, collection, _ = make_db()

        asyncio.run(TourService(db).list_difficulties())

        collection.find.assert_called_once_with({}, DIFFICULTY_ONLY)

    def test_by_ids(self):
        db, collection, _ = make_db()

        asyncio.run(TourService(db).list_by_ids([FOREST_HIKER_ID]))

        collection.find.assert_called_once_with({"_id": {"$in": [FOREST_HIKER_ID]}}, TOUR_CARD_FIELDS)

    def test_latest_review_pipeline(self):
        db, collection, _ = make_db()

        asyncio.run(TourService(db).list_with_latest_review(min_reviews=5, limit=8))

        pipeline = collection.aggregate.await_args.args[0]
        assert pipeline[0] == {"$match": {"ratingsQuantity": {"$gte": 5}}}
        assert pipeline[1] == {"$limit": 8}
        review_lookup = pipeline[3]["$lookup"]
        assert review_lookup["from"] == "reviews"
        assert review_lookup["pipeline"][:2] == [{"$sort": {"createdAt": -1}}, {"$limit": 1}]

    def test_slug_lookup_found(self):
        db, collection, _ = make_db([{"_id": FOREST_HIKER_ID, "slug": "the-forest-hiker"}])

        tour = asyncio.run(TourService(db).get_by_slug_with_details("the-forest-hiker"))

        pipeline = collection.aggregate.await_args.args[0]
        assert pipeline[0] == {"$match": {"slug": "the-forest-hiker"}}
        assert {stage["$lookup"]["as"] for stage in pipeline if "$lookup" in stage} == {"reviews", "guides"}
        assert tour["slug"] == "the-forest-hiker"

    def test_slug_lookup_missing(self):
        db, _, _ = make_db([])

        assert asyncio.run(TourService(db).get_by_slug_with_details("nope")) is None

    def test_driver_errors_become_database_errors(self):
        db, _, cursor = make_db()
        cursor.to_list.side_effect = ServerSelectionTimeoutError("no servers")

        with pytest.raises(DatabaseError) as exc_info:
            asyncio.run(TourService(db).list_tours())

        assert exc_info.value.is_operational is False


# =============================================================================
# BookingService
# =============================================================================

class TestBookingService:

    def test_tour_ids_for_user(self):
        db, collection, _ = make_db([{"tour": FOREST_HIKER_ID}, {"tour": None}])

        ids = asyncio.run(BookingService(db).list_tour_ids_for_user(str(USER_ID)))

        db.__getitem__.assert_called_with("bookings")
        collection.find.assert_called_once_with({"user": USER_ID}, {"tour": 1, "_id": 0})
        assert ids == [FOREST_HIKER_ID]


# =============================================================================
# UserService
# =============================================================================

class TestUserService:

    def test_active_user_filter(self):
        db, collection, _ = make_db()

        asyncio.run(UserService(db).get_active_user(USER_ID))

        collection.find_one.assert_awaited_once_with(
            {"_id": USER_ID, "active": {"$ne": False}},
            USER_PUBLIC_FIELDS,
        )

    def test_update_sets_only_name_and_email(self):
        db, collection, _ = make_db()
        collection.find_one_and_update.return_value = {"_id": USER_ID, "name": "Laura"}

        updated = asyncio.run(UserService(db).update_name_email(str(USER_ID), "Laura", "laura@example.com"))

        collection.find_one_and_update.assert_awaited_once_with(
            {"_id": USER_ID},
            {"$set": {"name": "Laura", "email": "laura@example.com"}},
            projection=USER_PUBLIC_FIELDS,
            return_document=ReturnDocument.AFTER,
        )
        assert updated["name"] == "Laura"

    def test_duplicate_email(self):
        db, collection, _ = make_db()
        collection.find_one_and_update.side_effect = DuplicateKeyError("E11000 duplicate key")

        with pytest.raises(ValidationFailedError) as exc_info:
            asyncio.run(UserService(db).update_name_email(ObjectId(), "Laura", "taken@example.com"))

        assert "taken@example.com" in exc_info.value.errors["email"]
