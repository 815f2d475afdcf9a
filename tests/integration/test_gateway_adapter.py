import json

import httpx
import pytest

from darwin_orchestrator.pipeline.adapters.gateway import HttpGatewayAdapter

pytestmark = pytest.mark.integration

ENDPOINT = "https://gateway.test/v1/chat/completions"


def _adapter(handler) -> HttpGatewayAdapter:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpGatewayAdapter("key-123", ENDPOINT, timeout=5.0, client=client)


@pytest.mark.asyncio
async def test_posts_json_with_bearer_header():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["auth"] = request.headers["authorization"]
        captured["url"] = str(request.url)
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": []})

    adapter = _adapter(handler)
    reply = await adapter.post({"model": "m", "messages": []})

    assert captured["auth"] == "Bearer key-123"
    assert captured["url"] == ENDPOINT
    assert captured["body"] == {"model": "m", "messages": []}
    assert reply.status_code == 200
    assert reply.payload == {"choices": []}
    assert reply.is_success


@pytest.mark.asyncio
async def test_error_status_is_returned_not_raised():
    adapter = _adapter(lambda request: httpx.Response(429, text="Too Many Requests"))
    reply = await adapter.post({"model": "m"})
    assert reply.status_code == 429
    assert reply.payload is None
    assert reply.text == "Too Many Requests"
    assert not reply.is_success


@pytest.mark.asyncio
async def test_transport_errors_propagate():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    adapter = _adapter(handler)
    with pytest.raises(httpx.TransportError):
        await adapter.post({"model": "m"})


@pytest.mark.asyncio
async def test_injected_client_is_not_closed():
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
    async with HttpGatewayAdapter("k", ENDPOINT, client=client):
        pass
    assert not client.is_closed
    await client.aclose()


def test_api_key_is_required():
    with pytest.raises(ValueError, match="api_key"):
        HttpGatewayAdapter("", ENDPOINT)
