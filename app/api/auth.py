"""
app/api/auth.py

Purpose: Authentication endpoints

- Sign-up and sign-in set the session cookie
- Sign-out revokes the session server-side and clears the cookie
- check-session resolves the cookie to the current user
"""

from fastapi import APIRouter, Depends, Request, Response

from app.api.deps import get_session_service, get_user_service
from app.core.config import settings
from app.core.exceptions import ResourceNotFoundError
from app.core.logging import get_logger
from app.core.security import set_session_cookie, clear_session_cookie
from app.models.user import PublicUser
from app.schemas.auth import SignInRequest, SignUpRequest, UserResponse
from app.schemas.response import SuccessResponse
from app.services.session_service import SessionService
from app.services.user_service import UserService
from utils.constants import USER_NOT_FOUND_MESSAGE
from utils.validation_utils import parse_object_id

logger = get_logger(__name__)
router = APIRouter()


@router.post("/signup", response_model=UserResponse)
async def signup(
    body: SignUpRequest,
    response: Response,
    sessions: SessionService = Depends(get_session_service),
):
    """
    Registers a new account and signs it in.
    """
    user, token = await sessions.register(body.name, body.email, body.password)
    set_session_cookie(response, token)
    return UserResponse(user=user)


@router.post("/signin", response_model=UserResponse)
async def signin(
    body: SignInRequest,
    response: Response,
    sessions: SessionService = Depends(get_session_service),
):
    """
    Signs in with email and password. Every sign-in gets a fresh session.
    """
    user, token = await sessions.authenticate(body.email, body.password)
    set_session_cookie(response, token)
    return UserResponse(user=user)


@router.post("/signout", response_model=SuccessResponse)
async def signout(
    request: Request,
    response: Response,
    sessions: SessionService = Depends(get_session_service),
):
    await sessions.revoke(request.cookies.get(settings.SESSION_COOKIE_NAME))
    clear_session_cookie(response)
    return SuccessResponse()


@router.get("/check-session", response_model=UserResponse)
async def check_session(
    request: Request,
    sessions: SessionService = Depends(get_session_service),
):
    """
    Returns the user owning the session cookie.

    401 if the cookie is missing, unknown or expired; 404 if the
    session points at a user that no longer exists.
    """
    user = await sessions.validate(request.cookies.get(settings.SESSION_COOKIE_NAME))
    return UserResponse(user=user)


@router.get("/user/{user_id}", response_model=UserResponse)
async def get_user(user_id: str, users: UserService = Depends(get_user_service)):
    """
    Public profile of a user, without credentials.
    """
    oid = parse_object_id(user_id)
    user = await users.get_user_by_id(oid) if oid else None
    if not user:
        raise ResourceNotFoundError(USER_NOT_FOUND_MESSAGE)
    return UserResponse(user=PublicUser.from_document(user))
