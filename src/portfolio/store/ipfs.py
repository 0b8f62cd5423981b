"""IPFS store client — pin raw bytes via Pinata, fetch raw bytes via a gateway.

The bytes pinned are exactly the bytes the caller hashed: documents are
uploaded as files, never re-serialized by the provider. Fetches bypass
caches because verification needs the bytes as they are now.

No retries are built in. A failed pin or fetch surfaces immediately and
the caller owns any retry decision.
"""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

import httpx

from portfolio.config import PortfolioConfig
from portfolio.crypto.commitment import digest, serialize_document
from portfolio.errors import FetchFailed, StoreRejected, StoreUnavailable
from portfolio.models.attestation import CommittedDocument, PinReceipt
from portfolio.store.locator import Locator, is_cid

logger = logging.getLogger(__name__)

PIN_FILE_PATH = "/pinning/pinFileToIPFS"
APP_TAG = "portfolio-dapp"
SNIPPET_LENGTH = 200

_NO_CACHE = {"Cache-Control": "no-cache", "Pragma": "no-cache"}


class IpfsStore:
    """Content-addressed store client.

    Usage:
        store = IpfsStore(config)
        doc = await store.pin_json({"title": "X"}, label="portfolio:X")
        raw = await store.fetch(doc.locator)
        assert raw == doc.data

    An httpx.AsyncClient may be passed in (it is then owned by the
    caller); otherwise each call opens and closes its own client.
    """

    def __init__(
        self,
        config: PortfolioConfig,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._config = config
        self._http = http_client

    @property
    def gateway_base(self) -> str:
        return self._config.gateway_base

    # ------------------------------------------------------------------
    # Pinning
    # ------------------------------------------------------------------

    async def pin(self, document: bytes, label: str) -> tuple[str, str]:
        """Pin raw bytes unchanged. Returns (locator, content_id)."""
        receipt = await self._pin_file(document, label)
        locator = Locator.for_cid(receipt.content_id)
        return locator.uri, receipt.content_id

    async def pin_document(self, document: bytes, label: str) -> CommittedDocument:
        """Hash and pin the same byte sequence."""
        commitment = digest(document)
        locator, content_id = await self.pin(document, label)
        logger.info("pinned %s (%d bytes) as %s", label, len(document), locator)
        return CommittedDocument(
            data=bytes(document),
            digest=commitment,
            locator=locator,
            content_id=content_id,
        )

    async def pin_json(self, content: dict[str, Any], label: str) -> CommittedDocument:
        """Serialize a JSON object once, then hash and pin those bytes."""
        if not isinstance(content, dict):
            raise TypeError("content is required (object)")
        return await self.pin_document(serialize_document(content), label)

    async def _pin_file(self, document: bytes, label: str) -> PinReceipt:
        url = self._config.pinata_api_url.rstrip("/") + PIN_FILE_PATH
        headers = {"Authorization": f"Bearer {self._config.pinata_jwt}"}
        files = {"file": (_filename(label), bytes(document), "application/octet-stream")}
        data = {
            "pinataOptions": json.dumps({"cidVersion": 1}),
            "pinataMetadata": json.dumps(
                {"name": label, "keyvalues": {"app": APP_TAG}}
            ),
        }
        try:
            async with self._client() as client:
                response = await client.post(url, headers=headers, files=files, data=data)
        except httpx.RequestError as exc:
            raise StoreUnavailable(f"pinning request to {url} failed: {exc}") from exc

        if response.is_error:
            raise StoreRejected(response.status_code, f"Pinata error: {response.text}")
        return parse_pin_response(response)

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    def resolve(self, locator: str) -> str:
        """Map an ipfs:// locator to its gateway URL. No network call."""
        return Locator.parse(locator).gateway_url(self._config.gateway_base)

    async def fetch(self, locator: str) -> bytes:
        """Fetch the raw bytes behind a locator, bypassing caches.

        Raises MalformedLocator, StoreUnavailable or FetchFailed.
        """
        url = self.resolve(locator)
        try:
            async with self._client() as client:
                response = await client.get(url, headers=_NO_CACHE)
        except httpx.RequestError as exc:
            raise StoreUnavailable(f"gateway request to {url} failed: {exc}") from exc

        if response.is_error:
            raise FetchFailed(response.status_code, response.text[:SNIPPET_LENGTH])
        return response.content

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http is not None:
            yield self._http
            return
        async with httpx.AsyncClient(timeout=self._config.http_timeout) as client:
            yield client


def parse_pin_response(response: httpx.Response) -> PinReceipt:
    """Validate a Pinata pin response ({IpfsHash, PinSize, Timestamp})."""
    try:
        body = response.json()
    except ValueError:
        raise StoreRejected(
            response.status_code,
            f"non-JSON pin response: {response.text[:SNIPPET_LENGTH]}",
        ) from None
    if not isinstance(body, dict):
        raise StoreRejected(response.status_code, f"unexpected pin response: {body!r}")

    content_id = body.get("IpfsHash")
    if not isinstance(content_id, str) or not is_cid(content_id):
        raise StoreRejected(
            response.status_code, f"pin response missing valid IpfsHash: {body!r}"
        )
    size = body.get("PinSize", 0)
    return PinReceipt(
        content_id=content_id,
        size=size if isinstance(size, int) else 0,
        timestamp=str(body.get("Timestamp", "")),
    )


def _filename(label: str) -> str:
    """Pinata wants a filename; derive one from the metadata label."""
    safe = "".join(c if c.isalnum() or c in "-_." else "-" for c in label)
    return (safe.strip("-") or "document") + ".json"
