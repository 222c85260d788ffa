"""Tests for content store adapters."""

from __future__ import annotations

import json

import httpx
import pytest

from sitesync_core.config.models import StoreConfig
from sitesync_core.errors import ContentStoreError
from sitesync_core.interfaces.content_store import ContentLocator, ContentStore
from sitesync_core.scan.hashing import compute_hash
from sitesync_core.stores import HttpContentStore, MemoryContentStore, create_content_store


# ── MemoryContentStore ───────────────────────────────────────────────


@pytest.mark.asyncio
async def test_memory_put_get_roundtrip():
    store = MemoryContentStore(epochs=3, current_epoch=10)
    locator = await store.put(b"hello")
    assert locator.blob_id == compute_hash(b"hello")
    assert locator.end_epoch == 13
    assert not locator.already_existed
    assert await store.get(locator.blob_id) == b"hello"
    assert await store.get(locator) == b"hello"


@pytest.mark.asyncio
async def test_memory_put_is_content_addressed():
    store = MemoryContentStore()
    first = await store.put(b"same")
    second = await store.put(b"same")
    assert first.blob_id == second.blob_id
    assert second.already_existed
    assert len(store) == 1


@pytest.mark.asyncio
async def test_memory_get_unknown_blob():
    with pytest.raises(ContentStoreError, match="unknown blob"):
        await MemoryContentStore().get("nope")


@pytest.mark.asyncio
async def test_memory_blobs_expire():
    store = MemoryContentStore(epochs=1)
    locator = await store.put(b"short-lived")
    store.advance_epoch(2)
    assert locator.blob_id not in store
    with pytest.raises(ContentStoreError):
        await store.get(locator.blob_id)


def test_memory_store_satisfies_protocol():
    assert isinstance(MemoryContentStore(), ContentStore)


# ── HttpContentStore ─────────────────────────────────────────────────

PUBLISHER = "https://publisher.example.com"
AGGREGATOR = "https://aggregator.example.com"


def _store(handler, **kw) -> HttpContentStore:
    return HttpContentStore(
        PUBLISHER, AGGREGATOR, transport=httpx.MockTransport(handler), **kw
    )


@pytest.mark.asyncio
async def test_http_put_newly_created():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={
            "newlyCreated": {"blobObject": {"blobId": "abc123", "storage": {"endEpoch": 42}}}
        })

    locator = await _store(handler, epochs=7).put(b"data")
    assert locator == ContentLocator(blob_id="abc123", end_epoch=42)
    req = seen[0]
    assert req.method == "PUT"
    assert req.url.path == "/v1/blobs"
    assert req.url.params["epochs"] == "7"
    assert req.content == b"data"


@pytest.mark.asyncio
async def test_http_put_already_certified():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"alreadyCertified": {"blobId": "xyz", "endEpoch": 9}})

    locator = await _store(handler).put(b"data")
    assert locator.blob_id == "xyz"
    assert locator.already_existed


@pytest.mark.asyncio
async def test_http_put_unexpected_body():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=json.dumps({"weird": True}))

    with pytest.raises(ContentStoreError, match="unexpected response"):
        await _store(handler).put(b"data")


@pytest.mark.asyncio
async def test_http_put_server_error_wrapped():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    with pytest.raises(ContentStoreError) as exc:
        await _store(handler).put(b"data")
    assert isinstance(exc.value.__cause__, httpx.HTTPStatusError)


@pytest.mark.asyncio
async def test_http_put_non_json_body_wrapped():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"<html>oops</html>")

    with pytest.raises(ContentStoreError) as exc:
        await _store(handler).put(b"data")
    assert isinstance(exc.value.__cause__, json.JSONDecodeError)


@pytest.mark.asyncio
async def test_http_get():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.host == "aggregator.example.com"
        assert request.url.path == "/v1/blobs/abc_-1"
        return httpx.Response(200, content=b"payload")

    assert await _store(handler).get("abc_-1") == b"payload"
    assert await _store(handler).get(ContentLocator(blob_id="abc_-1")) == b"payload"


@pytest.mark.asyncio
async def test_http_get_rejects_bad_blob_id():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    with pytest.raises(ContentStoreError, match="invalid blob id"):
        await _store(handler).get("../etc/passwd")


@pytest.mark.parametrize(
    "url",
    ["ftp://publisher.example.com", "https://", "https://host\r\nX-Evil: 1"],
)
def test_http_rejects_bad_base_urls(url: str):
    with pytest.raises(ValueError):
        HttpContentStore(url, AGGREGATOR)


def test_http_warns_on_plain_http(caplog):
    with caplog.at_level("WARNING"):
        HttpContentStore("http://publisher.example.com", AGGREGATOR)
    assert "not TLS" in caplog.text


# ── create_content_store ─────────────────────────────────────────────


def test_factory_memory():
    assert isinstance(create_content_store(StoreConfig(provider="memory")), MemoryContentStore)


def test_factory_http():
    store = create_content_store(StoreConfig(provider="http", epochs=3))
    assert isinstance(store, HttpContentStore)
    assert store.epochs == 3
