import base64

import httpx
import pytest

from conftest import BASE_URL, upstream_error
from jitcard.client import MarqetaClient
from jitcard.exceptions import UpstreamError, UpstreamUnavailableError


def test_requires_credentials():
    with pytest.raises(ValueError, match="Marqeta credentials required"):
        MarqetaClient(app_token="", admin_token="admin")


@pytest.mark.asyncio
async def test_send_uses_basic_auth_and_keeps_query(client, fake):
    response = await client.send("GET", "/cardproducts?count=1")

    assert response.status == 200
    request = fake.requests[0]
    assert str(request.url) == f"{BASE_URL}/cardproducts?count=1"
    expected = base64.b64encode(b"app_token:admin_token").decode()
    assert request.headers["authorization"] == f"Basic {expected}"
    assert "content-type" not in request.headers
    assert request.headers["accept"] == "application/json"


@pytest.mark.asyncio
async def test_send_posts_json_body(client, fake):
    await client.send("POST", "/users", {"token": "user_1", "first_name": "A"})

    assert fake.posted("/users") == {"token": "user_1", "first_name": "A"}
    assert fake.calls("POST", "/users")[0].headers["content-type"] == "application/json"


@pytest.mark.asyncio
async def test_error_message_from_payload(client, fake):
    fake.on("POST", "/users", upstream_error(400, "Invalid email"))

    with pytest.raises(UpstreamError) as exc_info:
        await client.send("POST", "/users", {})

    err = exc_info.value
    assert err.status == 400
    assert err.http_status == 400
    assert err.message == "Invalid email"
    assert err.details == {"error_message": "Invalid email", "error_code": "400"}


@pytest.mark.asyncio
async def test_auth_failure_carries_hint(client, fake):
    fake.on("GET", "/cardproducts", httpx.Response(401, json={"message": "Unauthorized"}))

    with pytest.raises(UpstreamError) as exc_info:
        await client.send("GET", "/cardproducts?count=1")

    assert exc_info.value.message == (
        "Authentication failed: Unauthorized. Please check your Marqeta API credentials."
    )
    assert exc_info.value.upstream_message == "Unauthorized"


@pytest.mark.asyncio
async def test_non_json_error_body_uses_reason_phrase(client, fake):
    fake.on("GET", "/users/u1", httpx.Response(500, text="<html>oops</html>"))

    with pytest.raises(UpstreamError) as exc_info:
        await client.send("GET", "/users/u1")

    assert exc_info.value.message == "Internal Server Error"


@pytest.mark.asyncio
async def test_empty_success_body(client, fake):
    fake.on("POST", "/users", httpx.Response(204))

    response = await client.send("POST", "/users", {})

    assert response.data == {}


@pytest.mark.asyncio
async def test_transport_failure(client, fake):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    fake.on("GET", "/cardproducts", refuse)

    with pytest.raises(UpstreamUnavailableError):
        await client.send("GET", "/cardproducts?count=1")


@pytest.mark.asyncio
async def test_ping(client, fake):
    assert await client.ping() is True

    fake.on("GET", "/cardproducts", httpx.Response(401, json={"message": "Unauthorized"}))
    assert await client.ping() is False


@pytest.mark.asyncio
async def test_context_manager_closes_pool(settings, transport):
    async with MarqetaClient.from_settings(settings, transport=transport) as client:
        await client.send("GET", "/cardproducts?count=1")
        assert client._client is not None
    assert client._client is None
