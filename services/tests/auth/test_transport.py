"""Tests for the outbound HTTP transport."""

from urllib.parse import parse_qs

import httpx
import pytest

from livebridge.auth.transport import HttpTransport
from livebridge.errors import TransportError


class TestHttpTransport:
    async def test_post_is_form_encoded(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["content_type"] = request.headers["content-type"]
            seen["body"] = parse_qs(request.content.decode())
            return httpx.Response(200, text='{"ok": true}')

        transport = HttpTransport(timeout=5, transport=httpx.MockTransport(handler))
        body = await transport.post("https://idp.example.com/token", data={"code": "a b"})

        assert body == '{"ok": true}'
        assert seen["content_type"] == "application/x-www-form-urlencoded"
        assert seen["body"] == {"code": ["a b"]}

    async def test_get_sends_headers(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers["authorization"]
            return httpx.Response(200, text="{}")

        transport = HttpTransport(timeout=5, transport=httpx.MockTransport(handler))
        await transport.get("https://graph.example.com/me", headers={"Authorization": "Bearer t"})

        assert seen["auth"] == "Bearer t"

    async def test_error_status_body_returned(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, text='{"error": "invalid_grant"}')

        transport = HttpTransport(timeout=5, transport=httpx.MockTransport(handler))
        body = await transport.post("https://idp.example.com/token", data={})

        assert body == '{"error": "invalid_grant"}'

    async def test_connection_failure_raises_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        transport = HttpTransport(timeout=5, transport=httpx.MockTransport(handler))
        with pytest.raises(TransportError, match="connection refused"):
            await transport.get("https://graph.example.com/me")
