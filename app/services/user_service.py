"""
app/services/user_service.py

Purpose: User data management

- Create user records (hasPaid starts false)
- Lookups by email (exact match) and by id
- Idempotent paid-flag update used by the payment reconciler
"""

from typing import Optional, Dict, Any

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from app.db.mongo import USERS_COLLECTION
from app.core.exceptions import ConflictError
from app.core.logging import get_logger, LogContext
from app.models.user import new_user_document
from utils.constants import EMAIL_IN_USE_MESSAGE
from utils.time_utils import utcnow

logger = get_logger(__name__)


class UserService:
    """
    Reads and writes the users collection.
    """

    def __init__(self, db: AsyncIOMotorDatabase, clock=utcnow):
        self.users = db[USERS_COLLECTION]
        self.clock = clock

    async def create_user(self, name: str, email: str, password_hash: str) -> Dict[str, Any]:
        """
        Inserts a new user.

        Raises:
            ConflictError: If the email is already registered
        """
        user = new_user_document(name, email, password_hash, self.clock())

        with LogContext(user_id=str(user["_id"])):
            try:
                await self.users.insert_one(user)
            except DuplicateKeyError:
                # Lost a race against a concurrent registration with the same email
                logger.warning("Duplicate email on insert")
                raise ConflictError(EMAIL_IN_USE_MESSAGE)

            logger.info("New user created successfully")

        return user

    async def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        """
        Retrieves a user by exact, case-sensitive email.
        """
        return await self.users.find_one({"email": email})

    async def get_user_by_id(self, user_id: ObjectId) -> Optional[Dict[str, Any]]:
        return await self.users.find_one({"_id": user_id})

    async def email_exists(self, email: str) -> bool:
        return await self.users.count_documents({"email": email}, limit=1) > 0

    async def mark_user_paid(self, user_id: ObjectId) -> bool:
        """
        Sets hasPaid on the user. Safe to repeat: an already-paid user
        matches without being modified, and that is still a success.

        Args:
            user_id: User ObjectId

        Returns:
            True if the user exists, False otherwise
        """
        with LogContext(user_id=str(user_id)):
            result = await self.users.update_one(
                {"_id": user_id},
                {
                    "$set": {"hasPaid": True},
                    "$min": {"paidAt": self.clock()},
                }
            )

            if result.matched_count == 0:
                logger.warning("Cannot mark payment, user not found")
                return False

            if result.modified_count > 0:
                logger.info("User marked as paid")
            else:
                logger.info("User already marked as paid")

            return True
