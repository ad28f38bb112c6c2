"""
app/db/indexes.py

Purpose: Database index management

- Unique email per user and unique checkout id per payment record
- Lookup indexes for sessions and payments
- Expired sessions are kept, so there is no TTL index on sessions
"""

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING

from app.db.mongo import USERS_COLLECTION, SESSIONS_COLLECTION, PAYMENTS_COLLECTION
from app.core.logging import get_logger

logger = get_logger(__name__)


async def create_indexes(db: AsyncIOMotorDatabase):
    """
    Creates all necessary database indexes.
    This function is idempotent - safe to run multiple times.
    """
    try:
        users = db[USERS_COLLECTION]
        sessions = db[SESSIONS_COLLECTION]
        payments = db[PAYMENTS_COLLECTION]

        logger.info("Creating database indexes...")

        # ==============================================
        # USERS COLLECTION INDEXES
        # ==============================================

        # Exact (case-sensitive) email uniqueness backs the registration conflict check
        await users.create_index([("email", ASCENDING)], unique=True, name="email_unique")
        logger.debug("Created unique index on users.email")

        # ==============================================
        # SESSIONS COLLECTION INDEXES
        # ==============================================

        await sessions.create_index([("userId", ASCENDING)], name="session_user_idx")
        logger.debug("Created index on sessions.userId")

        await sessions.create_index([("expiresAt", ASCENDING)], name="session_expires_idx")
        logger.debug("Created index on sessions.expiresAt")

        # ==============================================
        # PAYMENTS COLLECTION INDEXES
        # ==============================================

        # Checkout session id is the idempotency key
        await payments.create_index([("sessionId", ASCENDING)], unique=True, name="payment_session_unique")
        logger.debug("Created unique index on payments.sessionId")

        await payments.create_index([("userId", ASCENDING)], name="payment_user_idx")
        logger.debug("Created index on payments.userId")

        logger.info("✅ All database indexes created successfully")

        user_indexes = await users.index_information()
        session_indexes = await sessions.index_information()
        payment_indexes = await payments.index_information()

        logger.info(
            f"Index summary: Users={len(user_indexes)}, "
            f"Sessions={len(session_indexes)}, "
            f"Payments={len(payment_indexes)}"
        )

    except Exception as e:
        logger.error(f"Failed to create indexes: {str(e)}", exc_info=True)
        raise
