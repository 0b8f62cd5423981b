"""Verification engine — proves a record's document matches its commitment.

1. The contentURI must be a well-formed ipfs:// locator.
2. The raw bytes are fetched from the gateway (no cache).
3. Keccak-256 is computed over exactly those bytes.
4. The result is compared to the on-chain contentHash.

Outcomes are returned, never raised: content that does not verify is an
expected result, and the reason string carries the specific detail
(the transport error verbatim, or both hash values on mismatch).
Verification is side-effect free and may be repeated.
"""

from __future__ import annotations

import logging

from portfolio.crypto.commitment import digest, equal
from portfolio.errors import HashMismatch, MalformedLocator, StoreError
from portfolio.models.attestation import AttestationRequest, VerificationResult
from portfolio.store.ipfs import IpfsStore
from portfolio.store.locator import Locator

logger = logging.getLogger(__name__)


class VerificationEngine:
    """Fetches, hashes and compares committed documents."""

    def __init__(self, store: IpfsStore) -> None:
        self._store = store

    async def verify(self, record: AttestationRequest) -> VerificationResult:
        """Check a record's contentURI against its contentHash."""
        result = await self.verify_document(record.content_uri, record.content_hash)
        if result.ok:
            logger.info("request %d verified against %s", record.request_id, record.content_hash)
        else:
            logger.info("request %d failed verification: %s", record.request_id, result.reason)
        return result

    async def verify_document(self, locator: str, expected_hash: str) -> VerificationResult:
        """Check that the bytes behind a locator hash to expected_hash."""
        try:
            Locator.parse(locator)
        except MalformedLocator as exc:
            return VerificationResult(
                ok=False,
                reason=f"malformed locator: {exc}",
                expected_hash=expected_hash,
            )

        try:
            body = await self._store.fetch(locator)
        except StoreError as exc:
            return VerificationResult(
                ok=False,
                reason=f"gateway fetch failed: {exc}",
                expected_hash=expected_hash,
            )

        actual = digest(body)
        if not equal(actual, expected_hash):
            mismatch = HashMismatch(expected=expected_hash, actual=actual)
            return VerificationResult(
                ok=False,
                reason=str(mismatch),
                expected_hash=expected_hash,
                actual_hash=actual,
            )
        return VerificationResult(ok=True, expected_hash=expected_hash, actual_hash=actual)
