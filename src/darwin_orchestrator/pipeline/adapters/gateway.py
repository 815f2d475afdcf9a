"""HTTP adapter for the chat-completions gateway, built on httpx."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from darwin_orchestrator.config.schema import DEFAULT_ENDPOINT

from .base import GatewayReply

log = logging.getLogger(__name__)


class HttpGatewayAdapter:
    """Posts request bodies to the gateway with bearer authorization.

    The adapter owns its `httpx.AsyncClient` unless one is injected; call
    `aclose()` (or use it as an async context manager) to release it.
    """

    def __init__(
        self,
        api_key: str,
        endpoint: str = DEFAULT_ENDPOINT,
        *,
        timeout: float = 120.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            api_key: Bearer credential for the gateway.
            endpoint: Full chat-completions URL.
            timeout: Per-call timeout in seconds; expiry raises `httpx.TimeoutException`.
            client: Optional pre-built client (tests pass one with a mock transport).
        """
        if not api_key:
            raise ValueError("api_key is required for the HTTP gateway adapter")
        self.endpoint = endpoint
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._timeout = timeout

    async def post(self, body: dict[str, Any]) -> GatewayReply:
        """Send one request and return the reply, whatever its status."""
        response = await self._client.post(
            self.endpoint, json=body, headers=self._headers, timeout=self._timeout
        )
        text = response.text
        try:
            payload = response.json()
        except ValueError:
            log.debug("Gateway returned a non-JSON body (status %d)", response.status_code)
            payload = None
        return GatewayReply(status_code=response.status_code, payload=payload, text=text)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> HttpGatewayAdapter:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
