# =============================================================================
# core/services/user_service.py - User Reads and the Account Update
# =============================================================================
# The account update is the one write performed by the page controllers:
# it changes exactly `name` and `email` and returns the new projection.
# =============================================================================

import logging
from typing import Any

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError, PyMongoError

from app.exceptions import DatabaseError, ValidationFailedError

logger = logging.getLogger(__name__)

# Projection used for the logged-in user
USER_PUBLIC_FIELDS: dict[str, int] = {"name": 1, "email": 1, "photo": 1, "role": 1}


class UserService:
    """Access to the users collection."""

    def __init__(self, db: AsyncDatabase):
        self.collection = db["users"]

    async def get_active_user(self, user_id: ObjectId) -> dict[str, Any] | None:
        """
        Fetch a user that has not deactivated their account.

        Returns:
            Projected user dict or None
        """
        try:
            return await self.collection.find_one(
                {"_id": user_id, "active": {"$ne": False}},
                USER_PUBLIC_FIELDS,
            )
        except PyMongoError as e:
            logger.error(f"Failed to read user {user_id}: {e}")
            raise DatabaseError(f"Failed to read user: {e}")

    async def update_name_email(
        self,
        user_id: str | ObjectId,
        name: str,
        email: str,
    ) -> dict[str, Any] | None:
        """
        Set a user's name and email.

        Args:
            user_id: User to update
            name: Validated new name
            email: Validated new email

        Returns:
            Updated projected user, or None if the user no longer exists

        Raises:
            ValidationFailedError: If the email belongs to another user
        """
        user_oid = user_id if isinstance(user_id, ObjectId) else ObjectId(user_id)
        try:
            updated = await self.collection.find_one_and_update(
                {"_id": user_oid},
                {"$set": {"name": name, "email": email}},
                projection=USER_PUBLIC_FIELDS,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            raise ValidationFailedError(
                {"email": f"Duplicate field value: {email}. Please use another value!"}
            )
        except PyMongoError as e:
            logger.error(f"Failed to update user {user_id}: {e}")
            raise DatabaseError(f"Failed to update user: {e}")

        if updated:
            logger.info(f"Updated account data for user: {user_id}")
        return updated
