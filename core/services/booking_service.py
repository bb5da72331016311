# =============================================================================
# core/services/booking_service.py - Booking Reads
# =============================================================================

import logging

from bson import ObjectId
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import PyMongoError

from app.exceptions import DatabaseError

logger = logging.getLogger(__name__)


class BookingService:
    """Read access to the bookings collection."""

    def __init__(self, db: AsyncDatabase):
        self.collection = db["bookings"]

    async def list_tour_ids_for_user(self, user_id: str | ObjectId) -> list[ObjectId]:
        """
        Ids of the tours a user has booked.

        Bookings are projected to their tour reference only.

        Args:
            user_id: Owner of the bookings

        Returns:
            Tour ids in booking order (may be empty)
        """
        user_oid = user_id if isinstance(user_id, ObjectId) else ObjectId(user_id)
        try:
            cursor = self.collection.find({"user": user_oid}, {"tour": 1, "_id": 0})
            bookings = await cursor.to_list()
        except PyMongoError as e:
            logger.error(f"Failed to read bookings for user {user_id}: {e}")
            raise DatabaseError(f"Failed to read bookings: {e}")

        return [booking["tour"] for booking in bookings if booking.get("tour") is not None]
