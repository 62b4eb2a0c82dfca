"""Tests for the shared HTTP client (retries, rate limiting, error mapping)."""

import json

import httpx
import pytest

from fantasy_gm.core.http import (
    AuthenticationError,
    BaseApiClient,
    ExternalAPIError,
    InvalidResponseError,
    RateLimitError,
)


class ExampleClient(BaseApiClient):
    BASE_URL = "https://api.example.test"


def make_client(handler, **kwargs) -> ExampleClient:
    return ExampleClient(
        transport=httpx.MockTransport(handler),
        requests_per_minute=60000,
        base_delay=0.0,
        **kwargs,
    )


class TestRequests:
    async def test_get_returns_json(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/items"
            assert request.url.params["page"] == "2"
            return httpx.Response(200, json={"items": [1, 2]})

        async with make_client(handler) as client:
            assert await client._get("/items", params={"page": 2}) == {"items": [1, 2]}

    async def test_post_sends_json_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "POST"
            assert json.loads(request.content) == {"a": 1}
            return httpx.Response(200, json={"ok": True})

        async with make_client(handler) as client:
            assert await client._post("/send", json={"a": 1}) == {"ok": True}

    async def test_default_and_request_headers_are_merged(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(request.headers)
            return httpx.Response(200, json={})

        client = ExampleClient(
            headers={"X-Default": "1"},
            transport=httpx.MockTransport(handler),
            requests_per_minute=60000,
        )
        await client._get("/", headers={"X-Extra": "2"})
        await client.close()

        assert seen["x-default"] == "1"
        assert seen["x-extra"] == "2"


class TestRetries:
    async def test_server_error_is_retried(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(503, text="unavailable")
            return httpx.Response(200, json={"ok": True})

        async with make_client(handler, max_retries=3) as client:
            assert await client._get("/flaky") == {"ok": True}
        assert len(calls) == 3

    async def test_client_error_is_not_retried(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(404, text="missing")

        async with make_client(handler, max_retries=3) as client:
            with pytest.raises(ExternalAPIError) as exc_info:
                await client._get("/missing")

        assert exc_info.value.status_code == 404
        assert len(calls) == 1

    async def test_retries_exhausted_raises_last_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="boom")

        async with make_client(handler, max_retries=2) as client:
            with pytest.raises(ExternalAPIError) as exc_info:
                await client._get("/broken")

        assert exc_info.value.status_code == 500
        assert "HTTP 500" in exc_info.value.message

    async def test_rate_limit_raises_after_retries(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(429, headers={"retry-after": "0"})

        async with make_client(handler, max_retries=1) as client:
            with pytest.raises(RateLimitError):
                await client._get("/limited")
        assert len(calls) == 2

    async def test_transport_error_is_wrapped(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler, max_retries=1) as client:
            with pytest.raises(ExternalAPIError) as exc_info:
                await client._get("/down")

        assert "ConnectError" in exc_info.value.message

    async def test_auth_failure_is_not_retried(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(401, text="login required")

        async with make_client(handler) as client:
            with pytest.raises(AuthenticationError) as exc_info:
                await client._get("/private")

        assert len(calls) == 1
        assert exc_info.value.code == "AUTH_FAILED"
        assert exc_info.value.status_code == 401

    async def test_html_body_raises_invalid_response(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                text="<html>Sign in</html>",
                headers={"content-type": "text/html"},
            )

        async with make_client(handler) as client:
            with pytest.raises(InvalidResponseError) as exc_info:
                await client._get("/league")

        assert "text/html" in exc_info.value.message

    async def test_empty_body_returns_none(self):
        async with make_client(lambda request: httpx.Response(204)) as client:
            assert await client._get("/nothing") is None
