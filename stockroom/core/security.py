"""
Request authentication against the managed identity service.

Protected routes take the caller from `Depends(get_current_user)`. The bearer
token comes from the Authorization header, or from the httpOnly
`access_token` cookie set at login.
"""

from typing import Optional

from fastapi import Depends, Request

from stockroom.core.config import get_settings
from stockroom.core.exceptions import AuthError, PermissionDeniedError
from stockroom.dependencies import get_identity_client
from stockroom.schemas.auth import AuthenticatedUser
from stockroom.services.identity.client import IdentityClient

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"


def extract_token(request: Request) -> Optional[str]:
    authorization = request.headers.get("authorization", "")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()
    return request.cookies.get(ACCESS_COOKIE)


async def get_current_user(
    request: Request,
    identity: IdentityClient = Depends(get_identity_client),
) -> AuthenticatedUser:
    token = extract_token(request)
    if not token:
        raise AuthError("Token not provided")
    # IdentityClient.get_user raises AuthError for a rejected token
    user = await identity.get_user(token)
    request.state.user = user
    return user


def require_role(role: str):
    """
    Dependency factory restricting a route to one role.
    Usage: @router.delete("/{id}", dependencies=[Depends(require_role("admin"))])
    """
    async def checker(user: AuthenticatedUser = Depends(get_current_user)) -> AuthenticatedUser:
        if user.role != role:
            raise PermissionDeniedError(f"Role '{role}' required")
        return user

    return checker


def cookie_settings() -> dict:
    """
    Production serves the API cross-origin over HTTPS, so cookies must be
    Secure with SameSite=None; local development uses lax cookies over http.
    """
    is_production = get_settings().is_production
    return {
        "httponly": True,
        "secure": is_production,
        "samesite": "none" if is_production else "lax",
        "path": "/",
    }
