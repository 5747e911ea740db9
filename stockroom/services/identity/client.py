import logging
from typing import Any, Dict, Optional

import httpx

from stockroom.core.config import get_settings
from stockroom.core.exceptions import (
    AuthError,
    IdentityServiceError,
    InvalidCredentialsError,
    RegistrationError,
)
from stockroom.schemas.auth import AuthenticatedUser, SessionTokens

logger = logging.getLogger(__name__)

REJECTED_STATUSES = (400, 401, 403, 404, 422)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        return (
            body.get("msg")
            or body.get("message")
            or body.get("error_description")
            or body.get("error")
            or str(body)
        )
    return str(body)


def _error_code(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        return body.get("error_code") or body.get("error")
    return None


class IdentityClient:
    """
    Async client for the managed identity service's REST API (/auth/v1).

    Sign-up, password sign-in, session refresh, sign-out and token
    introspection. Credentials are never stored by this service; the access
    token issued here is the bearer token every protected route checks.

    Errors:
        - rejected requests (4xx) map to AuthError subclasses
        - network failures and 5xx map to IdentityServiceError
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not base_url:
            raise ValueError("IDENTITY_URL is not configured")
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings=None) -> "IdentityClient":
        settings = settings or get_settings()
        return cls(
            base_url=settings.IDENTITY_URL,
            api_key=settings.IDENTITY_API_KEY,
            timeout=settings.IDENTITY_TIMEOUT_SECONDS,
        )

    def _get_headers(self, access_token: Optional[str] = None) -> Dict[str, str]:
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {access_token or self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        data: Optional[Dict] = None,
        params: Optional[Dict] = None,
        access_token: Optional[str] = None,
    ) -> httpx.Response:
        url = f"{self.base_url}/auth/v1/{endpoint.lstrip('/')}"
        logger.debug(f"Making {method} request to {url}")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(
                    method=method,
                    url=url,
                    headers=self._get_headers(access_token),
                    json=data,
                    params=params,
                )
        except httpx.TimeoutException as e:
            logger.error(f"Identity service timed out: {e}")
            raise IdentityServiceError(f"Request timed out: {e}") from e
        except httpx.RequestError as e:
            logger.error(f"Identity service network error: {e}")
            raise IdentityServiceError(f"Network error: {e}") from e

        if response.status_code >= 500:
            logger.error(f"Identity service error {response.status_code}: {response.text}")
            raise IdentityServiceError(_error_message(response))
        return response

    async def sign_up(self, email: str, password: str, name: Optional[str] = None) -> AuthenticatedUser:
        response = await self._make_request(
            "POST",
            "signup",
            data={"email": email, "password": password, "data": {"name": name} if name else {}},
        )
        if response.status_code in REJECTED_STATUSES:
            raise RegistrationError(_error_message(response))

        body = response.json()
        # With auto-confirm the service answers with a session wrapping the user
        user = body.get("user") if isinstance(body.get("user"), dict) else body
        if not user or not user.get("id"):
            raise RegistrationError("User was not registered correctly")

        logger.info(f"Registered user {user['id']}")
        return AuthenticatedUser.from_identity(user)

    async def sign_in_with_password(self, email: str, password: str) -> SessionTokens:
        response = await self._make_request(
            "POST",
            "token",
            params={"grant_type": "password"},
            data={"email": email, "password": password},
        )
        if response.status_code in REJECTED_STATUSES:
            code = _error_code(response)
            if code in ("invalid_credentials", "invalid_grant"):
                raise InvalidCredentialsError("Invalid credentials")
            raise AuthError(_error_message(response))
        return self._session_from(response.json())

    async def refresh_session(self, refresh_token: str) -> SessionTokens:
        response = await self._make_request(
            "POST",
            "token",
            params={"grant_type": "refresh_token"},
            data={"refresh_token": refresh_token},
        )
        if response.status_code in REJECTED_STATUSES:
            raise AuthError("Invalid refresh token")
        return self._session_from(response.json())

    async def sign_out(self, access_token: str) -> None:
        response = await self._make_request("POST", "logout", access_token=access_token)
        if response.status_code in REJECTED_STATUSES:
            raise AuthError(_error_message(response))

    async def get_user(self, access_token: str) -> AuthenticatedUser:
        response = await self._make_request("GET", "user", access_token=access_token)
        if response.status_code in REJECTED_STATUSES:
            raise AuthError("Invalid token or unauthenticated user")
        return AuthenticatedUser.from_identity(response.json())

    @staticmethod
    def _session_from(body: Dict[str, Any]) -> SessionTokens:
        if not body.get("access_token") or not isinstance(body.get("user"), dict):
            raise IdentityServiceError("Identity service returned an incomplete session")
        return SessionTokens(
            user=AuthenticatedUser.from_identity(body["user"]),
            access_token=body["access_token"],
            refresh_token=body.get("refresh_token"),
            expires_in=body.get("expires_in"),
        )
