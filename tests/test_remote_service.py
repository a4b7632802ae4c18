"""Tests for the remote cart service adapter (httpx mocked transport)"""
import json

import httpx
import pytest

from cartsync.errors import RemoteUnavailableError
from cartsync.storage.base import WriteMode
from cartsync.storage.remote import RemoteServiceAdapter, WriteIntent

BASE_URL = "https://shop.test"


def make_adapter(handler, base_url=BASE_URL):
    requests = []

    def recording_handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(recording_handler))
    return RemoteServiceAdapter(client, base_url), requests


def test_write_intent_flags():
    assert WriteIntent.for_mode(WriteMode.REPLACE).to_payload() == {
        "force": True,
        "preferGuest": True,
        "saveForLater": True,
        "persist": True,
        "preventExpiry": True,
    }
    assert WriteIntent.for_mode(WriteMode.MERGE).to_payload()["force"] is False


@pytest.mark.asyncio
async def test_read_parses_items():
    adapter, requests = make_adapter(
        lambda request: httpx.Response(200, json={"items": [{"itemId": "r1", "quantity": 2}]})
    )

    items = await adapter.read("owner-1")

    assert [(i.item_id, i.quantity) for i in items] == [("r1", 2)]
    assert requests[0].url.path == "/api/cart/fetch"
    assert requests[0].headers["Authorization"] == "Bearer owner-1"


@pytest.mark.asyncio
async def test_read_404_is_empty_cart():
    adapter, _ = make_adapter(lambda request: httpx.Response(404))

    assert await adapter.read("owner-1") == []


@pytest.mark.asyncio
async def test_read_server_error_raises():
    adapter, _ = make_adapter(lambda request: httpx.Response(500, json={"error": "boom"}))

    with pytest.raises(RemoteUnavailableError) as exc_info:
        await adapter.read("owner-1")

    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_network_error_raises():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    adapter, _ = make_adapter(handler)

    with pytest.raises(RemoteUnavailableError):
        await adapter.read("owner-1")


@pytest.mark.asyncio
async def test_replace_write_body(make_item):
    adapter, requests = make_adapter(lambda request: httpx.Response(200, json={"success": True}))

    result = await adapter.write("owner-1", [make_item("a", 2)], WriteMode.REPLACE)

    body = json.loads(requests[0].content)
    assert result is None
    assert requests[0].url.path == "/api/cart/persist"
    assert body["userId"] == "owner-1"
    assert body["guestCartItems"][0]["itemId"] == "a"
    assert body["force"] is True
    assert body["preventExpiry"] is True
    assert body["saveForLater"] is True


@pytest.mark.asyncio
async def test_merge_write_returns_remote_items(make_item):
    adapter, requests = make_adapter(
        lambda request: httpx.Response(
            200, json={"items": [{"itemId": "a", "quantity": 2}, {"itemId": "z"}]}
        )
    )

    assert adapter.supports_merge is True

    result = await adapter.write("owner-1", [make_item("a", 2)], WriteMode.MERGE)

    body = json.loads(requests[0].content)
    assert body["force"] is False
    assert body["preferGuest"] is True
    assert [i.item_id for i in result] == ["a", "z"]


@pytest.mark.asyncio
async def test_primary_404_retries_legacy_once(make_item):
    def handler(request):
        if request.url.path == "/api/cart/persist":
            return httpx.Response(404)
        return httpx.Response(200, json={"success": True})

    adapter, requests = make_adapter(handler)

    await adapter.write("owner-1", [make_item("a")])

    assert [r.url.path for r in requests] == ["/api/cart/persist", "/api/cart/merge"]


@pytest.mark.asyncio
async def test_legacy_404_is_not_retried_again(make_item):
    adapter, requests = make_adapter(lambda request: httpx.Response(404))

    with pytest.raises(RemoteUnavailableError) as exc_info:
        await adapter.write("owner-1", [make_item("a")])

    assert exc_info.value.status_code == 404
    assert len(requests) == 2


@pytest.mark.asyncio
async def test_primary_server_error_not_retried(make_item):
    adapter, requests = make_adapter(lambda request: httpx.Response(503))

    with pytest.raises(RemoteUnavailableError):
        await adapter.write("owner-1", [make_item("a")])

    assert len(requests) == 1


@pytest.mark.asyncio
async def test_clear_404_counts_as_cleared():
    adapter, requests = make_adapter(lambda request: httpx.Response(404))

    await adapter.clear("owner-1")

    assert requests[0].method == "DELETE"


@pytest.mark.asyncio
async def test_unconfigured_base_url_raises():
    adapter, requests = make_adapter(lambda request: httpx.Response(200), base_url="")

    with pytest.raises(RemoteUnavailableError):
        await adapter.read("owner-1")

    assert requests == []
