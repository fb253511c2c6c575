"""Tests for the LINE profile gateway."""

import httpx
import pytest

from app.adapters.line_profile import LineProfileGateway
from app.exceptions import ExternalProfileFetchFailed

pytestmark = pytest.mark.asyncio


def gateway_for(handler):
    return LineProfileGateway(
        base_url="https://api.line.me/",
        access_token="token-abc",
        transport=httpx.MockTransport(handler),
    )


async def test_get_profile_maps_response():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json={
                "userId": "U123",
                "displayName": "Brown",
                "pictureUrl": "https://profile.line-scdn.net/abc",
                "statusMessage": "hello",
                "language": "en",
            },
        )

    profile = await gateway_for(handler).get_profile("U123")

    assert profile.external_auth_id == "U123"
    assert profile.display_name == "Brown"
    assert profile.picture_url == "https://profile.line-scdn.net/abc"
    (request,) = requests
    assert request.method == "GET"
    assert str(request.url) == "https://api.line.me/v2/bot/profile/U123"
    assert request.headers["Authorization"] == "Bearer token-abc"


async def test_missing_picture_becomes_empty_string():
    def handler(request):
        return httpx.Response(200, json={"userId": "U123", "displayName": "Brown"})

    profile = await gateway_for(handler).get_profile("U123")

    assert profile.picture_url == ""


@pytest.mark.parametrize("status", [401, 404, 500])
async def test_http_error_raises_fetch_failed(status):
    def handler(request):
        return httpx.Response(status, json={"message": "nope"})

    with pytest.raises(ExternalProfileFetchFailed) as exc_info:
        await gateway_for(handler).get_profile("U123")

    assert exc_info.value.external_auth_id == "U123"
    assert exc_info.value.reason == f"HTTP {status}"
    assert exc_info.value.retryable


async def test_network_error_raises_fetch_failed():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ExternalProfileFetchFailed, match="connection refused"):
        await gateway_for(handler).get_profile("U123")


async def test_invalid_json_raises_fetch_failed():
    def handler(request):
        return httpx.Response(200, content=b"<html>")

    with pytest.raises(ExternalProfileFetchFailed, match="Invalid JSON"):
        await gateway_for(handler).get_profile("U123")


async def test_unexpected_shape_raises_fetch_failed():
    def handler(request):
        return httpx.Response(200, json={"displayName": ["not", "a", "string"]})

    with pytest.raises(ExternalProfileFetchFailed, match="Invalid profile"):
        await gateway_for(handler).get_profile("U123")
