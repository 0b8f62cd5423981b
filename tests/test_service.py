"""Tests for AttestationService — proves the facade orchestrates and audits correctly."""

from datetime import date

import pytest

import portfolio
from portfolio.models.attestation import AttestationRequest, AttestationStatus
from portfolio.persistence.audit_log import AuditKind
from portfolio.service import AttestationService
from portfolio.store.ipfs import IpfsStore

from conftest import ORGANIZER, OTHER, OWNER, FakeGateway, InMemoryLedger


@pytest.fixture
def service(ledger: InMemoryLedger, store: IpfsStore) -> AttestationService:
    return AttestationService(ledger, store, actor_id=ORGANIZER)


class TestCreateRequest:
    @pytest.mark.asyncio
    async def test_create_success(self, service: AttestationService) -> None:
        result = await service.create_request(
            title="Hackathon", organizer=ORGANIZER,
            start_at=date(2025, 9, 1), end_at=date(2025, 9, 2),
            description="Finalist",
        )
        assert result.success
        assert result.data["request_id"] == 1
        assert result.data["content_uri"].startswith("ipfs://")
        assert result.data["gateway_url"].endswith(result.data["content_id"])
        kinds = [r.kind for r in service.audit_log.records()]
        assert kinds == [AuditKind.DOCUMENT_PINNED, AuditKind.REQUEST_CREATED]

    @pytest.mark.asyncio
    async def test_create_invalid_lists_every_error(self, service: AttestationService) -> None:
        result = await service.create_request(
            title="", organizer="nope", start_at=None, end_at=None, description="",
        )
        assert not result.success
        assert len(result.errors) == 5
        assert service.audit_log.count == 0


class TestValidate:
    @pytest.mark.asyncio
    async def test_validate_ok(self, service: AttestationService, committed: AttestationRequest) -> None:
        result = await service.validate(committed.request_id)
        assert result.success
        assert result.data["ok"] is True
        assert service.audit_log.last_record.kind == AuditKind.VERIFICATION_PASSED

    @pytest.mark.asyncio
    async def test_validate_mismatch_detail(
        self, service: AttestationService, committed: AttestationRequest, gateway: FakeGateway,
    ) -> None:
        gateway.tamper(committed.content_uri, b"tampered")
        result = await service.validate(committed.request_id)
        assert not result.success
        assert committed.content_hash in result.errors[0]
        assert result.data["actual_hash"] in result.errors[0]
        assert service.audit_log.last_record.kind == AuditKind.VERIFICATION_FAILED

    @pytest.mark.asyncio
    async def test_validate_unknown_request(self, service: AttestationService) -> None:
        result = await service.validate(404)
        assert not result.success
        assert "404" in result.errors[0]


class TestDecisions:
    @pytest.mark.asyncio
    async def test_confirm(self, service: AttestationService, committed: AttestationRequest) -> None:
        result = await service.confirm(committed.request_id)
        assert result.success
        assert result.data["status"] == "confirmed"
        assert service.audit_log.last_record.kind == AuditKind.REQUEST_CONFIRMED

    @pytest.mark.asyncio
    async def test_confirm_refused_is_audited(
        self, service: AttestationService, ledger: InMemoryLedger,
        committed: AttestationRequest, gateway: FakeGateway,
    ) -> None:
        gateway.tamper(committed.content_uri, b"tampered")
        result = await service.confirm(committed.request_id)
        assert not result.success
        assert result.data["cause"] == "verification_failed"
        assert "hash mismatch" in result.errors[0]
        assert ledger.submitted == []
        refused = service.audit_log.records(AuditKind.TRANSITION_REFUSED)
        assert refused[0].payload["detail"] == result.errors[0]

    @pytest.mark.asyncio
    async def test_authorization_cause(
        self, service: AttestationService, ledger: InMemoryLedger, committed: AttestationRequest,
    ) -> None:
        ledger.signer = OTHER
        result = await service.confirm(committed.request_id)
        assert result.data["cause"] == "authorization_denied"

    @pytest.mark.asyncio
    async def test_reject_then_retry(self, service: AttestationService, committed: AttestationRequest) -> None:
        first = await service.reject(committed.request_id, "Wrong dates")
        assert first.success
        assert first.data["reason_uri"].startswith("ipfs://")

        second = await service.reject(committed.request_id, "Wrong dates")
        assert not second.success
        assert second.data["cause"] == "already_finalized"

    @pytest.mark.asyncio
    async def test_verify_reason(self, service: AttestationService, committed: AttestationRequest) -> None:
        rejected = await service.reject(committed.request_id, "Wrong dates")
        ok = await service.verify_reason(committed.request_id, rejected.data["reason_digest"])
        assert ok.success
        bad = await service.verify_reason(committed.request_id, "0x" + "00" * 32)
        assert not bad.success
        assert "hash mismatch" in bad.errors[0]

    @pytest.mark.asyncio
    async def test_verify_reason_without_rejection(
        self, service: AttestationService, committed: AttestationRequest,
    ) -> None:
        result = await service.verify_reason(committed.request_id, "0x" + "00" * 32)
        assert not result.success
        assert "no reasonURI" in result.errors[0]


class TestViews:
    @pytest.mark.asyncio
    async def test_owner_portfolio_groups(self, service: AttestationService, ledger: InMemoryLedger) -> None:
        ledger.add(status=AttestationStatus.CONFIRMED)
        ledger.add(status=AttestationStatus.REJECTED)
        ledger.add()
        ledger.add(owner=OTHER)
        ledger.add(status=AttestationStatus.CONFIRMED)
        ledger.unreadable.add(5)

        result = await service.owner_portfolio(OWNER)
        assert result.success
        assert [r["id"] for r in result.data["confirmed"]] == [1]
        assert [r["id"] for r in result.data["rejected"]] == [2]
        assert [r["id"] for r in result.data["pending"]] == [3]
        assert result.data["failures"][0]["request_id"] == 5

    @pytest.mark.asyncio
    async def test_organizer_queue(self, service: AttestationService, ledger: InMemoryLedger) -> None:
        ledger.add()
        ledger.add(status=AttestationStatus.CONFIRMED)
        result = await service.organizer_queue(ORGANIZER)
        assert [r["id"] for r in result.data["pending"]] == [1]

    @pytest.mark.asyncio
    async def test_get_request(self, service: AttestationService, committed: AttestationRequest) -> None:
        result = await service.get_request(committed.request_id)
        assert result.data["contentHash"] == committed.content_hash
        assert result.data["gateway_url"].startswith("https://gateway.test/ipfs/")

    def test_status(self, service: AttestationService) -> None:
        status = service.status()
        assert status["version"] == portfolio.__version__
        assert status["audit"]["total"] == 0
        assert set(status["audit"]["by_kind"]) == {k.value for k in AuditKind}
