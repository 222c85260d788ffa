"""HTTP publisher/aggregator content store adapter."""

from __future__ import annotations

import logging
import re
from urllib.parse import urlparse

import httpx

from sitesync_core.errors import ContentStoreError
from sitesync_core.interfaces.content_store import ContentLocator, blob_id_of

logger = logging.getLogger(__name__)

_BLOB_ID_RE = re.compile(r"[A-Za-z0-9_-]+")


def _validate_base_url(url: str, role: str) -> str:
    """Validate a publisher/aggregator URL for SSRF and injection risks."""
    if "\r" in url or "\n" in url:
        raise ValueError(f"CRLF injection detected in {role} URL")

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        raise ValueError(f"{role} URL must be http(s), got {parsed.scheme!r}")
    if not parsed.hostname:
        raise ValueError(f"{role} URL has no host: {url!r}")
    if parsed.scheme == "http" and parsed.hostname not in {"localhost", "127.0.0.1", "::1"}:
        logger.warning("%s URL %s is not TLS; ensure this is intentional", role, url)
    return url.rstrip("/")


def _decode_store_response(data: dict) -> ContentLocator:
    """Decode the publisher's two success shapes into a ContentLocator."""
    if "newlyCreated" in data:
        blob = data["newlyCreated"]["blobObject"]
        return ContentLocator(
            blob_id=blob["blobId"],
            end_epoch=blob.get("storage", {}).get("endEpoch"),
        )
    if "alreadyCertified" in data:
        cert = data["alreadyCertified"]
        return ContentLocator(
            blob_id=cert["blobId"],
            end_epoch=cert.get("endEpoch"),
            already_existed=True,
        )
    raise ValueError("unexpected response format from publisher")


class HttpContentStore:
    """Stores blobs through a publisher and reads them back from an aggregator."""

    def __init__(
        self,
        publisher_url: str,
        aggregator_url: str,
        epochs: int = 1,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._publisher = _validate_base_url(publisher_url, "publisher")
        self._aggregator = _validate_base_url(aggregator_url, "aggregator")
        self.epochs = epochs
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def put(self, data: bytes) -> ContentLocator:
        url = f"{self._publisher}/v1/blobs"
        try:
            async with self._client() as client:
                resp = await client.put(
                    url,
                    params={"epochs": self.epochs},
                    content=data,
                    headers={"Content-Type": "application/octet-stream"},
                )
                resp.raise_for_status()
        except httpx.HTTPError as e:
            raise ContentStoreError("put", e) from e

        try:
            locator = _decode_store_response(resp.json())
        except (KeyError, TypeError, ValueError) as e:
            raise ContentStoreError("put", e) from e
        logger.debug("Stored blob %s (%d bytes)", locator.blob_id, len(data))
        return locator

    async def get(self, locator: ContentLocator | str) -> bytes:
        blob_id = blob_id_of(locator)
        if not _BLOB_ID_RE.fullmatch(blob_id):
            raise ContentStoreError("get", f"invalid blob id {blob_id!r}")
        try:
            async with self._client() as client:
                resp = await client.get(f"{self._aggregator}/v1/blobs/{blob_id}")
                resp.raise_for_status()
                return resp.content
        except httpx.HTTPError as e:
            raise ContentStoreError("get", e) from e
