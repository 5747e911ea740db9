# tests/unit/services/test_identity_client.py
import json

import httpx
import pytest

from stockroom.core.exceptions import (
    AuthError,
    IdentityServiceError,
    InvalidCredentialsError,
    RegistrationError,
)
from stockroom.services.identity.client import IdentityClient

USER = {
    "id": "11111111-1111-1111-1111-111111111111",
    "email": "owner@example.com",
    "app_metadata": {"role": "admin"},
    "user_metadata": {"name": "Owner"},
}
SESSION = {
    "access_token": "access-123",
    "refresh_token": "refresh-456",
    "expires_in": 3600,
    "user": USER,
}


def make_client(handler):
    """IdentityClient whose requests are answered by `handler`"""
    seen = []

    def recording_handler(request: httpx.Request):
        seen.append(request)
        return handler(request)

    client = IdentityClient(
        "http://identity.test/",
        "anon-key",
        transport=httpx.MockTransport(recording_handler),
    )
    return client, seen


def test_requires_base_url():
    with pytest.raises(ValueError):
        IdentityClient("", "anon-key")


@pytest.mark.asyncio
async def test_sign_up_posts_name_as_metadata():
    client, seen = make_client(lambda request: httpx.Response(200, json=USER))

    user = await client.sign_up("owner@example.com", "secret1", "Owner")

    assert user.id == USER["id"]
    assert user.role == "admin"
    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == "/auth/v1/signup"
    assert request.headers["apikey"] == "anon-key"
    assert json.loads(request.content)["data"] == {"name": "Owner"}


@pytest.mark.asyncio
async def test_sign_up_accepts_session_wrapped_user():
    client, _ = make_client(lambda request: httpx.Response(200, json=SESSION))
    user = await client.sign_up("owner@example.com", "secret1")
    assert user.email == "owner@example.com"


@pytest.mark.asyncio
async def test_sign_up_rejection_is_registration_error():
    client, _ = make_client(lambda request: httpx.Response(422, json={"msg": "User already registered"}))
    with pytest.raises(RegistrationError) as exc_info:
        await client.sign_up("owner@example.com", "secret1")
    assert exc_info.value.message == "User already registered"


@pytest.mark.asyncio
async def test_password_sign_in_returns_session():
    client, seen = make_client(lambda request: httpx.Response(200, json=SESSION))

    session = await client.sign_in_with_password("owner@example.com", "secret1")

    assert session.access_token == "access-123"
    assert session.refresh_token == "refresh-456"
    assert session.user.id == USER["id"]
    assert seen[0].url.path == "/auth/v1/token"
    assert seen[0].url.params["grant_type"] == "password"


@pytest.mark.asyncio
async def test_wrong_password_is_invalid_credentials():
    client, _ = make_client(
        lambda request: httpx.Response(400, json={"error_code": "invalid_credentials", "msg": "Invalid login credentials"})
    )
    with pytest.raises(InvalidCredentialsError):
        await client.sign_in_with_password("owner@example.com", "wrong")


@pytest.mark.asyncio
async def test_get_user_sends_bearer_token():
    client, seen = make_client(lambda request: httpx.Response(200, json=USER))

    user = await client.get_user("access-123")

    assert user.id == USER["id"]
    assert seen[0].headers["authorization"] == "Bearer access-123"


@pytest.mark.asyncio
async def test_get_user_rejected_token():
    client, _ = make_client(lambda request: httpx.Response(401, json={"msg": "invalid JWT"}))
    with pytest.raises(AuthError) as exc_info:
        await client.get_user("expired")
    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_refresh_uses_refresh_grant():
    client, seen = make_client(lambda request: httpx.Response(200, json=SESSION))

    await client.refresh_session("refresh-456")

    assert seen[0].url.params["grant_type"] == "refresh_token"
    assert json.loads(seen[0].content) == {"refresh_token": "refresh-456"}


@pytest.mark.asyncio
async def test_server_error_is_identity_service_error():
    client, _ = make_client(lambda request: httpx.Response(503, text="unavailable"))
    with pytest.raises(IdentityServiceError):
        await client.get_user("access-123")


@pytest.mark.asyncio
async def test_network_failure_is_identity_service_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client, _ = make_client(handler)
    with pytest.raises(IdentityServiceError):
        await client.sign_out("access-123")


@pytest.mark.asyncio
async def test_incomplete_session_is_rejected():
    client, _ = make_client(lambda request: httpx.Response(200, json={"user": USER}))
    with pytest.raises(IdentityServiceError):
        await client.sign_in_with_password("owner@example.com", "secret1")
