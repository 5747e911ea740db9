# tests/test_routes/test_auth_routes.py
import pytest
from unittest.mock import AsyncMock, MagicMock

from stockroom.core.exceptions import AuthError, InvalidCredentialsError
from stockroom.dependencies import get_identity_client, get_user_service
from stockroom.main import app
from stockroom.schemas.auth import AuthenticatedUser, SessionTokens
from tests.conftest import OWNER_ID

USER = AuthenticatedUser(id=OWNER_ID, email="owner@example.com", role="user")


@pytest.fixture
def identity(test_client):
    """Mocked IdentityClient"""
    client = MagicMock()
    client.sign_up = AsyncMock(return_value=USER)
    client.sign_in_with_password = AsyncMock(
        return_value=SessionTokens(user=USER, access_token="access-123", refresh_token="refresh-456", expires_in=3600)
    )
    client.refresh_session = AsyncMock(
        return_value=SessionTokens(user=USER, access_token="access-789", refresh_token="refresh-000")
    )
    client.sign_out = AsyncMock(return_value=None)
    client.get_user = AsyncMock(return_value=USER)
    app.dependency_overrides[get_identity_client] = lambda: client
    return client


@pytest.fixture
def users():
    service = MagicMock()
    service.create_profile = AsyncMock(return_value=None)
    app.dependency_overrides[get_user_service] = lambda: service
    return service


def test_register_creates_profile(test_client, identity, users):
    response = test_client.post(
        "/auth/register",
        json={"nombre": "Angela", "email": "owner@example.com", "password": "secret1"},
    )

    assert response.status_code == 201
    assert response.json()["user"]["id"] == OWNER_ID
    identity.sign_up.assert_awaited_once_with("owner@example.com", "secret1", "Angela")
    users.create_profile.assert_awaited_once_with(OWNER_ID, email="owner@example.com", name="Angela")


def test_register_rejects_short_password(test_client, identity, users):
    response = test_client.post(
        "/auth/register",
        json={"name": "Angela", "email": "owner@example.com", "password": "123"},
    )
    assert response.status_code == 400
    identity.sign_up.assert_not_called()


def test_login_sets_session_cookies(test_client, identity):
    response = test_client.post("/auth/login", json={"email": "owner@example.com", "password": "secret1"})

    assert response.status_code == 200
    body = response.json()
    assert body["access_token"] == "access-123"
    assert body["user"]["email"] == "owner@example.com"
    assert response.cookies.get("access_token") == "access-123"
    assert response.cookies.get("refresh_token") == "refresh-456"


def test_login_invalid_credentials(test_client, identity):
    identity.sign_in_with_password.side_effect = InvalidCredentialsError("Invalid credentials")

    response = test_client.post("/auth/login", json={"email": "owner@example.com", "password": "wrong"})

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid credentials"


def test_bearer_token_is_verified(test_client, identity):
    response = test_client.get("/auth/verify-token", headers={"Authorization": "Bearer access-123"})

    assert response.status_code == 200
    identity.get_user.assert_awaited_once_with("access-123")


def test_cookie_token_is_accepted(test_client, identity):
    test_client.cookies.set("access_token", "cookie-token")

    response = test_client.get("/auth/user")

    assert response.status_code == 200
    assert response.json()["user"]["id"] == OWNER_ID
    identity.get_user.assert_awaited_once_with("cookie-token")


def test_rejected_token_is_401(test_client, identity):
    identity.get_user.side_effect = AuthError("Invalid token or unauthenticated user")

    response = test_client.get("/auth/user", headers={"Authorization": "Bearer expired"})

    assert response.status_code == 401
    assert response.json()["error"] == "Invalid token or unauthenticated user"


def test_logout_clears_cookies_even_if_session_expired(test_client, identity):
    identity.sign_out.side_effect = AuthError("session not found")

    response = test_client.post("/auth/logout", headers={"Authorization": "Bearer access-123"})

    assert response.status_code == 200
    set_cookie = response.headers.get_list("set-cookie")
    assert any(header.startswith("access_token=") for header in set_cookie)
    assert any(header.startswith("refresh_token=") for header in set_cookie)


def test_refresh_without_cookie_is_401(test_client, identity):
    response = test_client.post("/auth/refresh-token")
    assert response.status_code == 401
    identity.refresh_session.assert_not_called()


def test_refresh_rotates_cookies(test_client, identity):
    test_client.cookies.set("refresh_token", "refresh-456")

    response = test_client.post("/auth/refresh-token")

    assert response.status_code == 200
    identity.refresh_session.assert_awaited_once_with("refresh-456")
    assert response.cookies.get("access_token") == "access-789"
