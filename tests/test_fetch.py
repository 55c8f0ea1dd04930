import asyncio

import httpx
import pytest
from conftest import mock_client

from app.core.exceptions import FetchTimeoutError, NetworkFailureError
from app.utils.fetch import fetch_with_timeout


@pytest.mark.asyncio
async def test_returns_raw_response_without_validating_it():
    async def handler(request):
        return httpx.Response(500, text="boom")

    async with mock_client(handler) as client:
        response = await fetch_with_timeout("https://example.test/", client=client)

    assert response.status_code == 500
    assert response.text == "boom"


@pytest.mark.asyncio
async def test_request_exceeding_timeout_is_aborted():
    async def handler(request):
        await asyncio.sleep(2)
        return httpx.Response(200, json={})

    loop = asyncio.get_running_loop()
    started = loop.time()
    async with mock_client(handler) as client:
        with pytest.raises(FetchTimeoutError) as exc_info:
            await fetch_with_timeout("https://slow.test/", timeout=50, client=client)

    assert loop.time() - started < 1
    assert exc_info.value.timeout_ms == 50
    assert exc_info.value.url == "https://slow.test/"


@pytest.mark.asyncio
async def test_deadline_is_disarmed_after_success():
    async def handler(request):
        return httpx.Response(200, json={"ok": True})

    async with mock_client(handler) as client:
        response = await fetch_with_timeout("https://example.test/", timeout=20, client=client)
        # would be interrupted if the deadline outlived the request
        await asyncio.sleep(0.1)

    assert response.json() == {"ok": True}


@pytest.mark.asyncio
async def test_transport_error_becomes_network_failure():
    async def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with mock_client(handler) as client:
        with pytest.raises(NetworkFailureError):
            await fetch_with_timeout("https://down.test/", client=client)


@pytest.mark.asyncio
async def test_forwards_query_params():
    seen = {}

    async def handler(request):
        seen["query"] = dict(request.url.params)
        return httpx.Response(200)

    async with mock_client(handler) as client:
        await fetch_with_timeout("https://example.test/", client=client, params={"a": "1"})

    assert seen["query"] == {"a": "1"}


@pytest.mark.asyncio
async def test_owned_client_is_bounded_only_by_the_deadline(monkeypatch):
    built = []

    async def handler(request):
        return httpx.Response(200, json={"ok": True})

    def make_client(**kwargs):
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler), **kwargs)
        built.append(client)
        return client

    monkeypatch.setattr("app.utils.fetch.AsyncClient", make_client)

    response = await fetch_with_timeout("https://example.test/", timeout=10000)

    assert response.json() == {"ok": True}
    # httpx would otherwise cut the request at its own 5 s default
    assert built[0].timeout == httpx.Timeout(None)
    assert built[0].is_closed
