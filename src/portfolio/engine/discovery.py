"""Event discovery — finds the requests that concern a party.

The ledger's RequestCreated log is scanned for the owner or organizer,
then each id is resolved to its current record with a point read. The
point reads are independent and run concurrently. A read that fails is
logged and skipped; the rest of the scan still returns.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from portfolio.ledger.client import LedgerClient
from portfolio.models.attestation import (
    AttestationRequest,
    AttestationStatus,
    DiscoveryResult,
    PartialDiscoveryFailure,
    RequestCreatedLog,
)

logger = logging.getLogger(__name__)


class EventDiscovery:
    """Enumerates attestation requests for an owner or an organizer."""

    def __init__(self, ledger: LedgerClient, from_block: int = 0) -> None:
        self._ledger = ledger
        self._from_block = from_block

    async def list_for_owner(
        self, owner: str, from_block: Optional[int] = None
    ) -> list[AttestationRequest]:
        result = await self.scan(owner=owner, from_block=from_block)
        return result.records

    async def list_for_organizer(
        self, organizer: str, from_block: Optional[int] = None
    ) -> list[AttestationRequest]:
        result = await self.scan(organizer=organizer, from_block=from_block)
        return result.records

    async def pending_for_organizer(
        self, organizer: str, from_block: Optional[int] = None
    ) -> DiscoveryResult:
        """The organizer's actionable work queue (Pending only)."""
        result = await self.scan(organizer=organizer, from_block=from_block)
        result.records = [r for r in result.records if r.status == AttestationStatus.PENDING]
        return result

    async def scan(
        self,
        *,
        owner: Optional[str] = None,
        organizer: Optional[str] = None,
        from_block: Optional[int] = None,
    ) -> DiscoveryResult:
        """Scan the creation log for one party and resolve every id.

        Log order is preserved. A failure of the log scan itself raises
        LedgerError; any failure resolving a single id is recorded in
        DiscoveryResult.failures. Cancellation still propagates.
        """
        if (owner is None) == (organizer is None):
            raise ValueError("scan() needs exactly one of owner or organizer")

        start = self._from_block if from_block is None else from_block
        logs = await self._ledger.request_created_logs(
            owner=owner, organizer=organizer, from_block=start
        )
        ids = _unique_ids(logs)

        outcomes = await asyncio.gather(
            *(self._ledger.get_record(request_id) for request_id in ids),
            return_exceptions=True,
        )

        result = DiscoveryResult()
        for request_id, outcome in zip(ids, outcomes):
            if isinstance(outcome, Exception):
                logger.warning("getEvent(%d) failed, skipping: %s", request_id, outcome)
                detail = str(outcome) or type(outcome).__name__
                result.failures.append(
                    PartialDiscoveryFailure(request_id=request_id, error=detail)
                )
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                result.records.append(outcome)

        logger.debug(
            "discovery from block %d: %d ids, %d resolved, %d failed",
            start, len(ids), len(result.records), len(result.failures),
        )
        return result


def _unique_ids(logs: list[RequestCreatedLog]) -> list[int]:
    seen: set[int] = set()
    ids: list[int] = []
    for entry in logs:
        if entry.request_id not in seen:
            seen.add(entry.request_id)
            ids.append(entry.request_id)
    return ids
