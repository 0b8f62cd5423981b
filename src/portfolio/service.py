"""Attestation service — unified facade for the attestation workflow.

This is the primary interface for programmatic access. It orchestrates:
- Request creation (validate, pin, hash, submit)
- Discovery (owner portfolio, organizer work queue)
- Verification (fetch, hash, compare)
- Decisions (confirm after verification, reject with a pinned reason)
- Audit (every outcome, including refusals, to the audit log)

All operations produce typed results. Failures never collapse to a
generic message: each error string carries the specific mismatch or
ledger/store detail, because that detail is the audit trail.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional

from portfolio import __version__
from portfolio.engine.discovery import EventDiscovery
from portfolio.engine.lifecycle import LifecycleController
from portfolio.engine.verification import VerificationEngine
from portfolio.errors import (
    AlreadyFinalized,
    InvalidRequest,
    LedgerAuthorizationDenied,
    PortfolioError,
    VerificationFailed,
)
from portfolio.ledger.client import LedgerClient
from portfolio.models.attestation import AttestationStatus, DiscoveryResult, RequestDraft
from portfolio.persistence.audit_log import AuditKind, AuditLog
from portfolio.store.ipfs import IpfsStore


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation."""
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)


class AttestationService:
    """Attestation workflow facade.

    Usage:
        service = AttestationService(ledger, store, from_block=8998500)

        # Owner side
        result = await service.create_request(
            title="Hackathon final", organizer="0x...",
            start_at=date(2025, 9, 1), end_at=date(2025, 9, 2),
            description="Second place",
        )
        result = await service.owner_portfolio("0xOwner...")

        # Organizer side
        result = await service.organizer_queue("0xOrganizer...")
        result = await service.validate(request_id)
        result = await service.confirm(request_id)
        result = await service.reject(request_id, "Certificate does not match")

    Audit (optional):
        service = AttestationService(ledger, store, audit_log=AuditLog(path))
    """

    def __init__(
        self,
        ledger: LedgerClient,
        store: IpfsStore,
        audit_log: Optional[AuditLog] = None,
        from_block: int = 0,
        actor_id: str = "",
    ) -> None:
        self._ledger = ledger
        self._store = store
        self._verifier = VerificationEngine(store)
        self._discovery = EventDiscovery(ledger, from_block=from_block)
        self._lifecycle = LifecycleController(ledger, store, verifier=self._verifier)
        self._audit = audit_log if audit_log is not None else AuditLog()
        self._actor_id = actor_id

    @property
    def audit_log(self) -> AuditLog:
        return self._audit

    # ------------------------------------------------------------------
    # Owner operations
    # ------------------------------------------------------------------

    async def create_request(
        self,
        title: str,
        organizer: str,
        start_at: Optional[date],
        end_at: Optional[date],
        description: str,
    ) -> ServiceResult:
        """Pin the achievement document and submit a new request."""
        draft = RequestDraft(
            title=title,
            organizer=organizer,
            start_at=start_at,
            end_at=end_at,
            description=description,
        )
        try:
            receipt = await self._lifecycle.create(draft)
        except InvalidRequest as e:
            return ServiceResult(success=False, errors=e.errors)
        except PortfolioError as e:
            return ServiceResult(success=False, errors=[str(e)])

        doc = receipt.document
        self._audit.record(AuditKind.DOCUMENT_PINNED, self._actor_id, {
            "request_id": receipt.request_id,
            "locator": doc.locator,
            "digest": doc.digest,
            "size": len(doc.data),
        })
        self._audit.record(AuditKind.REQUEST_CREATED, self._actor_id, {
            "request_id": receipt.request_id,
            "organizer": draft.organizer.strip(),
            "tx_hash": receipt.tx_hash,
        })
        return ServiceResult(success=True, data={
            "request_id": receipt.request_id,
            "content_uri": doc.locator,
            "content_hash": doc.digest,
            "content_id": doc.content_id,
            "gateway_url": self._store.resolve(doc.locator),
            "tx_hash": receipt.tx_hash,
        })

    async def owner_portfolio(self, owner: str) -> ServiceResult:
        """Group an owner's requests into confirmed, rejected and pending."""
        try:
            result = await self._discovery.scan(owner=owner)
        except PortfolioError as e:
            return ServiceResult(success=False, errors=[str(e)])

        grouped: dict[str, list[dict[str, Any]]] = {s.value: [] for s in AttestationStatus}
        for record in result.records:
            grouped[record.status.value].append(record.to_dict())
        return ServiceResult(success=True, data={
            "owner": owner,
            **grouped,
            "failures": _failures(result),
        })

    # ------------------------------------------------------------------
    # Organizer operations
    # ------------------------------------------------------------------

    async def organizer_queue(self, organizer: str) -> ServiceResult:
        """Pending requests awaiting this organizer's decision."""
        try:
            result = await self._discovery.pending_for_organizer(organizer)
        except PortfolioError as e:
            return ServiceResult(success=False, errors=[str(e)])
        return ServiceResult(success=True, data={
            "organizer": organizer,
            "pending": [r.to_dict() for r in result.records],
            "failures": _failures(result),
        })

    async def get_request(self, request_id: int) -> ServiceResult:
        """Fresh point read of a single request."""
        try:
            record = await self._ledger.get_record(request_id)
        except PortfolioError as e:
            return ServiceResult(success=False, errors=[str(e)])
        return ServiceResult(success=True, data={
            **record.to_dict(),
            "gateway_url": _gateway_or_blank(self._store, record.content_uri),
        })

    async def validate(self, request_id: int) -> ServiceResult:
        """Verify a request's content against its commitment."""
        try:
            record, result = await self._lifecycle.validate(request_id)
        except PortfolioError as e:
            return ServiceResult(success=False, errors=[str(e)])

        kind = AuditKind.VERIFICATION_PASSED if result.ok else AuditKind.VERIFICATION_FAILED
        self._audit.record(kind, self._actor_id, {"request_id": request_id, **result.to_dict()})
        data = {"request_id": request_id, "content_uri": record.content_uri, **result.to_dict()}
        if result.ok:
            return ServiceResult(success=True, data=data)
        return ServiceResult(success=False, errors=[result.reason or ""], data=data)

    async def confirm(self, request_id: int, result_uri: str = "") -> ServiceResult:
        """Confirm a request. Refused unless its content verifies."""
        try:
            receipt = await self._lifecycle.confirm(request_id, result_uri)
        except VerificationFailed as e:
            self._audit.record(AuditKind.VERIFICATION_FAILED, self._actor_id, {
                "request_id": request_id,
                "ok": False,
                "reason": e.reason,
            })
            return self._refused(request_id, "confirm", "verification_failed", e)
        except AlreadyFinalized as e:
            return self._refused(request_id, "confirm", "already_finalized", e)
        except LedgerAuthorizationDenied as e:
            return self._refused(request_id, "confirm", "authorization_denied", e)
        except PortfolioError as e:
            return ServiceResult(success=False, errors=[str(e)])

        self._audit.record(AuditKind.VERIFICATION_PASSED, self._actor_id, {
            "request_id": request_id,
            "ok": True,
        })
        self._audit.record(AuditKind.REQUEST_CONFIRMED, self._actor_id, {
            "request_id": request_id,
            "result_uri": receipt.uri,
            "tx_hash": receipt.tx_hash,
        })
        return ServiceResult(success=True, data={
            "request_id": request_id,
            "status": receipt.status.value,
            "result_uri": receipt.uri,
            "tx_hash": receipt.tx_hash,
        })

    async def reject(self, request_id: int, reason_text: str) -> ServiceResult:
        """Reject a request with a pinned justification document."""
        try:
            receipt = await self._lifecycle.reject(request_id, reason_text)
        except InvalidRequest as e:
            return ServiceResult(success=False, errors=e.errors)
        except AlreadyFinalized as e:
            return self._refused(request_id, "reject", "already_finalized", e)
        except LedgerAuthorizationDenied as e:
            return self._refused(request_id, "reject", "authorization_denied", e)
        except PortfolioError as e:
            return ServiceResult(success=False, errors=[str(e)])

        self._audit.record(AuditKind.DOCUMENT_PINNED, self._actor_id, {
            "request_id": request_id,
            "locator": receipt.uri,
            "digest": receipt.document_digest,
        })
        self._audit.record(AuditKind.REQUEST_REJECTED, self._actor_id, {
            "request_id": request_id,
            "reason_uri": receipt.uri,
            "reason_digest": receipt.document_digest,
            "tx_hash": receipt.tx_hash,
        })
        return ServiceResult(success=True, data={
            "request_id": request_id,
            "status": receipt.status.value,
            "reason_uri": receipt.uri,
            "reason_digest": receipt.document_digest,
            "tx_hash": receipt.tx_hash,
        })

    async def verify_reason(self, request_id: int, expected_digest: str) -> ServiceResult:
        """Check a rejected request's reason document against a recorded digest."""
        try:
            record = await self._ledger.get_record(request_id)
        except PortfolioError as e:
            return ServiceResult(success=False, errors=[str(e)])
        if not record.reason_uri:
            return ServiceResult(
                success=False, errors=[f"request {request_id} has no reasonURI"]
            )
        result = await self._verifier.verify_document(record.reason_uri, expected_digest)
        data = {"request_id": request_id, "reason_uri": record.reason_uri, **result.to_dict()}
        if result.ok:
            return ServiceResult(success=True, data=data)
        return ServiceResult(success=False, errors=[result.reason or ""], data=data)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def status(self) -> dict[str, Any]:
        """Return a summary of locally audited activity."""
        return {
            "version": __version__,
            "gateway": self._store.gateway_base,
            "audit": {
                "total": self._audit.count,
                "by_kind": {
                    kind.value: len(self._audit.records(kind)) for kind in AuditKind
                },
            },
        }

    def _refused(
        self,
        request_id: int,
        transition: str,
        cause: str,
        error: PortfolioError,
    ) -> ServiceResult:
        self._audit.record(AuditKind.TRANSITION_REFUSED, self._actor_id, {
            "request_id": request_id,
            "transition": transition,
            "cause": cause,
            "detail": str(error),
        })
        return ServiceResult(
            success=False,
            errors=[str(error)],
            data={"request_id": request_id, "cause": cause},
        )


def _failures(result: DiscoveryResult) -> list[dict[str, Any]]:
    return [{"request_id": f.request_id, "error": f.error} for f in result.failures]


def _gateway_or_blank(store: IpfsStore, locator: str) -> str:
    try:
        return store.resolve(locator)
    except PortfolioError:
        return ""
