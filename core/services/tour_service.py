# =============================================================================
# core/services/tour_service.py - Tour Reads
# =============================================================================
# Every read is scoped with a projection: only the attributes a page renders
# are fetched. Results are plain dicts straight from the driver.
# Relations (reviews, guides, review authors) are expanded with $lookup.
# =============================================================================

import logging
from typing import Any

from bson import ObjectId
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import PyMongoError

from app.exceptions import DatabaseError

logger = logging.getLogger(__name__)


# =============================================================================
# Projections
# =============================================================================

# Fields rendered by a tour card (overview, my tours, featured lists)
TOUR_CARD_FIELDS: dict[str, int] = {
    "name": 1,
    "slug": 1,
    "price": 1,
    "ratingsAverage": 1,
    "ratingsQuantity": 1,
    "difficulty": 1,
    "duration": 1,
    "maxGroupSize": 1,
    "summary": 1,
    "imageCover": 1,
    "startLocation.description": 1,
    "startDates": 1,
    "locations": 1,
}

# Enough to count tours per difficulty
DIFFICULTY_ONLY: dict[str, int] = {"difficulty": 1}

# Fields of a tour the stories page needs
STORY_TOUR_FIELDS: dict[str, int] = {
    "name": 1,
    "slug": 1,
    "imageCover": 1,
    "duration": 1,
    "startLocation.description": 1,
}

# Fields of the tour detail page (relations are added by the pipeline)
TOUR_DETAIL_EXCLUDED: dict[str, int] = {"secretTour": 0, "__v": 0}

REVIEW_AUTHOR_FIELDS: dict[str, int] = {"name": 1, "photo": 1}
GUIDE_FIELDS: dict[str, int] = {"name": 1, "photo": 1, "role": 1}


def _author_lookup() -> list[dict[str, Any]]:
    """Pipeline stages expanding a review's `user` to name and photo."""
    return [
        {
            "$lookup": {
                "from": "users",
                "localField": "user",
                "foreignField": "_id",
                "pipeline": [{"$project": REVIEW_AUTHOR_FIELDS}],
                "as": "user",
            }
        },
        {"$unwind": {"path": "$user", "preserveNullAndEmptyArrays": True}},
    ]


class TourService:
    """
    Read access to the tours collection.

    Provides a clean interface between the view service and the database.
    """

    def __init__(self, db: AsyncDatabase):
        self.collection = db["tours"]

    async def _find(
        self,
        query: dict[str, Any],
        fields: dict[str, int],
        limit: int = 0,
    ) -> list[dict[str, Any]]:
        """Projected find returning plain dicts."""
        try:
            cursor = self.collection.find(query, fields)
            if limit:
                cursor = cursor.limit(limit)
            return await cursor.to_list()
        except PyMongoError as e:
            logger.error(f"Failed to read tours: {e}")
            raise DatabaseError(f"Failed to read tours: {e}", details={"query": str(query)})

    async def _aggregate(self, pipeline: list[dict[str, Any]]) -> list[dict[str, Any]]:
        try:
            cursor = await self.collection.aggregate(pipeline)
            return await cursor.to_list()
        except PyMongoError as e:
            logger.error(f"Failed to aggregate tours: {e}")
            raise DatabaseError(f"Failed to read tours: {e}")

    async def list_tours(self, fields: dict[str, int] = TOUR_CARD_FIELDS) -> list[dict[str, Any]]:
        """All tours, projected."""
        return await self._find({}, fields)

    async def list_top_rated(
        self,
        min_rating: float = 4.5,
        limit: int = 6,
        fields: dict[str, int] = TOUR_CARD_FIELDS,
    ) -> list[dict[str, Any]]:
        """Up to `limit` tours rated at least `min_rating`."""
        return await self._find({"ratingsAverage": {"$gte": min_rating}}, fields, limit=limit)

    async def list_difficulties(self) -> list[dict[str, Any]]:
        """Every tour projected to its difficulty only."""
        return await self._find({}, DIFFICULTY_ONLY)

    async def list_by_ids(
        self,
        tour_ids: list[ObjectId],
        fields: dict[str, int] = TOUR_CARD_FIELDS,
    ) -> list[dict[str, Any]]:
        """Tours whose id is in `tour_ids`."""
        return await self._find({"_id": {"$in": tour_ids}}, fields)

    async def list_with_latest_review(
        self,
        min_reviews: int = 5,
        limit: int = 8,
    ) -> list[dict[str, Any]]:
        """
        Tours with at least `min_reviews` reviews and their newest review.

        Each returned tour carries `reviews`: a list holding at most one
        review, with its `user` expanded to name and photo.
        """
        pipeline = [
            {"$match": {"ratingsQuantity": {"$gte": min_reviews}}},
            {"$limit": limit},
            {"$project": STORY_TOUR_FIELDS},
            {
                "$lookup": {
                    "from": "reviews",
                    "localField": "_id",
                    "foreignField": "tour",
                    "pipeline": [
                        {"$sort": {"createdAt": -1}},
                        {"$limit": 1},
                        {"$project": {"review": 1, "rating": 1, "createdAt": 1, "user": 1}},
                        *_author_lookup(),
                    ],
                    "as": "reviews",
                }
            },
        ]
        return await self._aggregate(pipeline)

    async def get_by_slug_with_details(self, slug: str) -> dict[str, Any] | None:
        """
        One tour by slug with reviews and guides expanded.

        Returns:
            Tour dict or None if no tour has this slug
        """
        pipeline = [
            {"$match": {"slug": slug}},
            {"$limit": 1},
            {"$project": TOUR_DETAIL_EXCLUDED},
            {
                "$lookup": {
                    "from": "reviews",
                    "localField": "_id",
                    "foreignField": "tour",
                    "pipeline": [
                        {"$sort": {"createdAt": 1}},
                        {"$project": {"review": 1, "rating": 1, "createdAt": 1, "user": 1}},
                        *_author_lookup(),
                    ],
                    "as": "reviews",
                }
            },
            {
                "$lookup": {
                    "from": "users",
                    "localField": "guides",
                    "foreignField": "_id",
                    "pipeline": [{"$project": GUIDE_FIELDS}],
                    "as": "guides",
                }
            },
        ]
        tours = await self._aggregate(pipeline)
        return tours[0] if tours else None
