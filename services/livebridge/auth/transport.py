"""Outbound HTTP to the identity provider.

Returns raw response bodies whatever the HTTP status: the Microsoft identity
platform reports OAuth errors as JSON in 4xx bodies, and decoding those is
the caller's job. Only connection and protocol failures are raised, as
TransportError. No retries.
"""

import httpx

from livebridge.config import settings
from livebridge.errors import TransportError
from livebridge.logging_config import get_logger

logger = get_logger(__name__)


class HttpTransport:
    """Thin httpx wrapper used for the token and profile calls."""

    def __init__(
        self,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = timeout if timeout is not None else settings.provider.timeout_seconds
        # Injectable for tests (httpx.MockTransport)
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def get(self, url: str, headers: dict[str, str] | None = None) -> str:
        try:
            async with self._client() as client:
                resp = await client.get(url, headers=headers)
        except httpx.HTTPError as e:
            logger.warning("GET failed", url=url, error=str(e))
            raise TransportError(f"GET {url} failed: {e}") from e

        logger.debug("GET completed", url=url, status=resp.status_code)
        return resp.text

    async def post(
        self,
        url: str,
        data: dict[str, str],
        headers: dict[str, str] | None = None,
    ) -> str:
        """POST data form-encoded."""
        try:
            async with self._client() as client:
                resp = await client.post(url, data=data, headers=headers)
        except httpx.HTTPError as e:
            logger.warning("POST failed", url=url, error=str(e))
            raise TransportError(f"POST {url} failed: {e}") from e

        logger.debug("POST completed", url=url, status=resp.status_code)
        return resp.text
