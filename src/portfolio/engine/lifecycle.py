"""Lifecycle controller — creation, confirmation and rejection of requests.

Every transition starts from a fresh ledger read, never a cached record.
Refusals happen before anything is submitted:
- a finalized record raises AlreadyFinalized,
- confirm raises VerificationFailed unless the content verifies,
- reject raises InvalidRequest for a blank reason.

Rejection always pins a new justification document and submits its
locator. The ledger stores only the locator; the document's digest is
returned in the TransitionReceipt so it can be recorded off-chain.

Authorization is the ledger's job. Its refusals surface as
LedgerAuthorizationDenied, distinct from VerificationFailed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from portfolio.engine.state_machine import AttestationStateMachine
from portfolio.engine.validation import RequestValidator, to_unix_seconds
from portfolio.engine.verification import VerificationEngine
from portfolio.errors import InvalidRequest, VerificationFailed
from portfolio.ledger.client import LedgerClient
from portfolio.models.attestation import (
    AttestationRequest,
    AttestationStatus,
    CreationReceipt,
    RequestDraft,
    TransitionReceipt,
    VerificationResult,
)
from portfolio.store.ipfs import IpfsStore
from portfolio.store.locator import Locator

logger = logging.getLogger(__name__)


class LifecycleController:
    """Orchestrates request creation and the organizer's decision."""

    def __init__(
        self,
        ledger: LedgerClient,
        store: IpfsStore,
        verifier: Optional[VerificationEngine] = None,
        validator: Optional[RequestValidator] = None,
    ) -> None:
        self._ledger = ledger
        self._store = store
        self._verifier = verifier or VerificationEngine(store)
        self._validator = validator or RequestValidator()
        self._state_machine = AttestationStateMachine()

    async def create(self, draft: RequestDraft) -> CreationReceipt:
        """Pin the owner's document and submit the request.

        The document is serialized once; the same bytes are pinned,
        hashed and referenced on-chain.
        """
        errors = self._validator.validate_draft(draft)
        if errors:
            raise InvalidRequest(errors)
        assert draft.start_at is not None and draft.end_at is not None

        organizer = self._validator.normalize_organizer(draft.organizer)
        content = {
            "title": draft.title,
            "description": draft.description,
            "startAt": draft.start_at.isoformat(),
            "endAt": draft.end_at.isoformat(),
        }
        document = await self._store.pin_json(content, f"portfolio:{draft.title}")

        request_id, tx_hash = await self._ledger.create_request(
            organizer,
            to_unix_seconds(draft.start_at),
            to_unix_seconds(draft.end_at),
            document.digest,
            document.locator,
        )
        logger.info("request %d submitted for organizer %s", request_id, organizer)
        return CreationReceipt(request_id=request_id, document=document, tx_hash=tx_hash)

    async def validate(self, request_id: int) -> tuple[AttestationRequest, VerificationResult]:
        """Re-read a record and verify its content. Never submits anything."""
        record = await self._ledger.get_record(request_id)
        return record, await self._verifier.verify(record)

    async def confirm(self, request_id: int, result_uri: str = "") -> TransitionReceipt:
        """Verify the committed content, then submit the confirm transition."""
        if result_uri:
            Locator.parse(result_uri)

        record = await self._ledger.get_record(request_id)
        self._state_machine.require_transition(record, AttestationStatus.CONFIRMED)

        result = await self._verifier.verify(record)
        if not result.ok:
            raise VerificationFailed(request_id, result.reason or "content did not verify")

        tx_hash = await self._ledger.confirm(request_id, result_uri)
        logger.info("request %d confirmed in tx %s", request_id, tx_hash)
        return TransitionReceipt(
            request_id=request_id,
            status=AttestationStatus.CONFIRMED,
            tx_hash=tx_hash,
            uri=result_uri,
        )

    async def reject(
        self,
        request_id: int,
        reason_text: str,
        now: Optional[datetime] = None,
    ) -> TransitionReceipt:
        """Pin a justification document and submit the reject transition.

        The content does not need to verify: rejecting unverifiable
        content is the point of this transition.
        """
        if not reason_text.strip():
            raise InvalidRequest(["rejection reason text is required"])

        record = await self._ledger.get_record(request_id)
        self._state_machine.require_transition(record, AttestationStatus.REJECTED)

        timestamp = (now or datetime.now(timezone.utc)).strftime("%Y-%m-%dT%H:%M:%SZ")
        justification = {
            "status": "rejected",
            "reason": reason_text,
            "eventId": str(request_id),
            "organizer": record.organizer,
            "timestamp": timestamp,
        }
        document = await self._store.pin_json(
            justification, f"portfolio:reject:{request_id}"
        )

        tx_hash = await self._ledger.reject(request_id, document.locator)
        logger.info(
            "request %d rejected in tx %s (reason %s, digest %s)",
            request_id, tx_hash, document.locator, document.digest,
        )
        return TransitionReceipt(
            request_id=request_id,
            status=AttestationStatus.REJECTED,
            tx_hash=tx_hash,
            uri=document.locator,
            document_digest=document.digest,
        )
