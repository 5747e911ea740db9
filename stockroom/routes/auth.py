# stockroom/routes/auth.py
import logging

from fastapi import APIRouter, Depends, Request, Response, status

from stockroom.core.config import get_settings
from stockroom.core.exceptions import AuthError
from stockroom.core.rate_limit import limiter
from stockroom.core.security import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    cookie_settings,
    extract_token,
    get_current_user,
)
from stockroom.dependencies import get_identity_client, get_user_service
from stockroom.schemas.auth import AuthenticatedUser, LoginRequest, RegisterRequest, SessionTokens
from stockroom.services.identity.client import IdentityClient
from stockroom.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

settings = get_settings()


def _set_session_cookies(response: Response, session: SessionTokens):
    options = cookie_settings()
    response.set_cookie(ACCESS_COOKIE, session.access_token, max_age=settings.ACCESS_COOKIE_MAX_AGE, **options)
    if session.refresh_token:
        response.set_cookie(REFRESH_COOKIE, session.refresh_token, max_age=settings.REFRESH_COOKIE_MAX_AGE, **options)


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    identity: IdentityClient = Depends(get_identity_client),
    users: UserService = Depends(get_user_service),
):
    user = await identity.sign_up(payload.email, payload.password, payload.name)
    await users.create_profile(user.id, email=user.email or payload.email, name=payload.name)
    return {"success": True, "user": user}


@router.post("/login")
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    response: Response,
    payload: LoginRequest,
    identity: IdentityClient = Depends(get_identity_client),
):
    session = await identity.sign_in_with_password(payload.email, payload.password)
    _set_session_cookies(response, session)
    logger.info(f"User {session.user.id} logged in")
    return {
        "success": True,
        "user": session.user,
        "access_token": session.access_token,
        "refresh_token": session.refresh_token,
        "expires_in": session.expires_in,
    }


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    identity: IdentityClient = Depends(get_identity_client),
):
    token = extract_token(request)
    if token:
        try:
            await identity.sign_out(token)
        except AuthError as e:
            # An expired session is already signed out; cookies are cleared below
            logger.info(f"Sign-out rejected by identity service: {e.message}")

    options = cookie_settings()
    response.delete_cookie(ACCESS_COOKIE, path=options["path"])
    response.delete_cookie(REFRESH_COOKIE, path=options["path"])
    return {"success": True}


@router.get("/user")
async def current_user(user: AuthenticatedUser = Depends(get_current_user)):
    return {"success": True, "user": user}


@router.get("/verify-token")
async def verify_token(user: AuthenticatedUser = Depends(get_current_user)):
    return {"success": True, "message": "Valid token"}


@router.post("/refresh-token")
async def refresh_token(
    request: Request,
    response: Response,
    identity: IdentityClient = Depends(get_identity_client),
):
    token = request.cookies.get(REFRESH_COOKIE)
    if not token:
        raise AuthError("Refresh token not provided")

    session = await identity.refresh_session(token)
    _set_session_cookies(response, session)
    return {"success": True}
