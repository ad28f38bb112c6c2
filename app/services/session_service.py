"""
app/services/session_service.py

Purpose: Session lifecycle and authentication

- Registers users and signs them in (bcrypt, cost 12)
- Issues session tokens with a fixed 30-day absolute expiry
- Validates tokens on every authenticated request
- Revokes sessions on sign-out
"""

from datetime import datetime
from typing import Callable, Optional, Tuple

from bson import ObjectId
from fastapi.concurrency import run_in_threadpool
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.db.mongo import SESSIONS_COLLECTION
from app.core.config import Settings
from app.core.exceptions import AuthenticationError, ConflictError, ResourceNotFoundError
from app.core.logging import get_logger, LogContext
from app.core.security import hash_password, verify_password
from app.models.session import SessionState, get_session_state, new_session_document
from app.models.user import PublicUser
from app.services.user_service import UserService
from utils.constants import (
    EMAIL_IN_USE_MESSAGE,
    INVALID_CREDENTIALS_MESSAGE,
    INVALID_SESSION_MESSAGE,
    NO_SESSION_MESSAGE,
    USER_NOT_FOUND_MESSAGE,
)
from utils.time_utils import session_lifetime, utcnow
from utils.validation_utils import parse_object_id

logger = get_logger(__name__)


class SessionService:
    """
    Issues, validates and revokes session tokens, and performs
    registration and sign-in on top of them.
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        settings: Settings,
        users: Optional[UserService] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.sessions = db[SESSIONS_COLLECTION]
        self.settings = settings
        self.clock = clock
        self.users = users or UserService(db, clock=clock)
        self.lifetime = session_lifetime(settings.SESSION_MAX_AGE_DAYS)

    async def issue(self, user_id: ObjectId) -> str:
        """
        Creates a session for the user.

        Returns:
            The opaque session token (the session's id as 24 hex chars)
        """
        session = new_session_document(user_id, self.clock(), self.lifetime)
        await self.sessions.insert_one(session)

        with LogContext(user_id=str(user_id)):
            logger.info(f"Session issued, expires at {session['expiresAt'].isoformat()}")
        return str(session["_id"])

    async def validate(self, token: Optional[str]) -> PublicUser:
        """
        Resolves a session token to the user it belongs to.

        Raises:
            AuthenticationError: Token missing, unknown or expired
            ResourceNotFoundError: Session points at a user that no longer exists
        """
        if not token:
            raise AuthenticationError(NO_SESSION_MESSAGE)

        session_id = parse_object_id(token)
        if session_id is None:
            raise AuthenticationError(INVALID_SESSION_MESSAGE)

        session = await self.sessions.find_one({"_id": session_id})
        if not session:
            raise AuthenticationError(INVALID_SESSION_MESSAGE)

        with LogContext(user_id=str(session.get("userId"))):
            if get_session_state(session, self.clock()) == SessionState.EXPIRED:
                logger.info("Rejected expired session")
                raise AuthenticationError(INVALID_SESSION_MESSAGE)

            user = await self.users.get_user_by_id(session["userId"])
            if not user:
                logger.error("Session references a missing user")
                raise ResourceNotFoundError(USER_NOT_FOUND_MESSAGE)

        return PublicUser.from_document(user)

    async def revoke(self, token: Optional[str]) -> bool:
        """
        Deletes a session. Unknown or missing tokens are not an error.

        Returns:
            True if a session was deleted
        """
        session_id = parse_object_id(token)
        if session_id is None:
            return False

        result = await self.sessions.delete_one({"_id": session_id})
        if result.deleted_count:
            logger.info("Session revoked")
        return result.deleted_count > 0

    async def register(self, name: str, email: str, password: str) -> Tuple[PublicUser, str]:
        """
        Creates an account and signs the new user in.

        Raises:
            ConflictError: If the email is already registered
        """
        if await self.users.email_exists(email):
            logger.info("Registration rejected, email already in use")
            raise ConflictError(EMAIL_IN_USE_MESSAGE)

        password_hash = await run_in_threadpool(
            hash_password, password, self.settings.BCRYPT_ROUNDS
        )
        user = await self.users.create_user(name, email, password_hash)

        # Not atomic with the insert above; a crash here leaves a user who can sign in normally
        token = await self.issue(user["_id"])
        return PublicUser.from_document(user), token

    async def authenticate(self, email: str, password: str) -> Tuple[PublicUser, str]:
        """
        Signs in with email and password.

        Raises:
            ResourceNotFoundError: No user has this email
            AuthenticationError: Password does not match
        """
        user = await self.users.get_user_by_email(email)
        if not user:
            raise ResourceNotFoundError(USER_NOT_FOUND_MESSAGE)

        with LogContext(user_id=str(user["_id"])):
            matches = await run_in_threadpool(
                verify_password, password, user.get("passwordHash", "")
            )
            if not matches:
                logger.warning("Sign-in rejected, wrong password")
                raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

            token = await self.issue(user["_id"])
            logger.info("User signed in")

        return PublicUser.from_document(user), token
