"""Tests for event discovery — proves partial failures do not sink the scan."""

import asyncio

import aiohttp
import pytest

from portfolio.engine.discovery import EventDiscovery
from portfolio.errors import LedgerError
from portfolio.models.attestation import AttestationStatus

from conftest import ORGANIZER, OTHER, OWNER, InMemoryLedger


@pytest.fixture
def discovery(ledger: InMemoryLedger) -> EventDiscovery:
    return EventDiscovery(ledger)


class TestScan:
    @pytest.mark.asyncio
    async def test_one_unreadable_among_five(self, ledger: InMemoryLedger, discovery: EventDiscovery) -> None:
        records = [ledger.add() for _ in range(5)]
        ledger.unreadable.add(records[2].request_id)

        result = await discovery.scan(owner=OWNER)
        assert [r.request_id for r in result.records] == [1, 2, 4, 5]
        assert result.partial
        assert result.failures[0].request_id == 3
        assert "execution reverted" in result.failures[0].error

    @pytest.mark.asyncio
    async def test_failure_is_logged(self, ledger: InMemoryLedger, discovery: EventDiscovery, caplog) -> None:
        ledger.add()
        ledger.unreadable.add(1)
        with caplog.at_level("WARNING", logger="portfolio.engine.discovery"):
            result = await discovery.scan(owner=OWNER)
        assert result.records == []
        assert "getEvent(1) failed" in caplog.text

    @pytest.mark.asyncio
    async def test_transport_error_isolated(self, ledger: InMemoryLedger, discovery: EventDiscovery) -> None:
        """An RPC error that is not a LedgerError still costs only its own id."""
        for _ in range(5):
            ledger.add()
        ledger.read_errors[3] = aiohttp.ClientConnectionError("429 Too Many Requests")

        result = await discovery.scan(owner=OWNER)
        assert [r.request_id for r in result.records] == [1, 2, 4, 5]
        assert result.failures[0].request_id == 3
        assert "429" in result.failures[0].error

    @pytest.mark.asyncio
    async def test_blank_error_named_by_type(self, ledger: InMemoryLedger, discovery: EventDiscovery) -> None:
        ledger.add()
        ledger.read_errors[1] = TimeoutError()
        result = await discovery.scan(owner=OWNER)
        assert result.failures[0].error == "TimeoutError"

    @pytest.mark.asyncio
    async def test_creation_order_preserved(self, ledger: InMemoryLedger, discovery: EventDiscovery) -> None:
        for _ in range(4):
            ledger.add()
        records = await discovery.list_for_owner(OWNER)
        assert [r.request_id for r in records] == [1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_filters_by_party(self, ledger: InMemoryLedger, discovery: EventDiscovery) -> None:
        ledger.add(owner=OWNER, organizer=ORGANIZER)
        ledger.add(owner=OTHER, organizer=ORGANIZER)
        ledger.add(owner=OWNER, organizer=OTHER)

        assert [r.request_id for r in await discovery.list_for_owner(OWNER)] == [1, 3]
        assert [r.request_id for r in await discovery.list_for_organizer(ORGANIZER)] == [1, 2]

    @pytest.mark.asyncio
    async def test_reflects_current_status(self, ledger: InMemoryLedger, discovery: EventDiscovery) -> None:
        record = ledger.add()
        await ledger.reject(record.request_id, "ipfs://x")
        records = await discovery.list_for_owner(OWNER)
        assert records[0].status == AttestationStatus.REJECTED

    @pytest.mark.asyncio
    async def test_duplicate_log_entries_resolved_once(self, ledger: InMemoryLedger, discovery: EventDiscovery) -> None:
        ledger.add()
        ledger.logs.append(ledger.logs[0])
        records = await discovery.list_for_owner(OWNER)
        assert len(records) == 1

    @pytest.mark.asyncio
    async def test_from_block(self, ledger: InMemoryLedger) -> None:
        ledger.add()
        ledger.add()
        cutoff = ledger.logs[1].block_number
        discovery = EventDiscovery(ledger, from_block=cutoff)
        assert [r.request_id for r in await discovery.list_for_owner(OWNER)] == [2]
        assert len(await discovery.list_for_owner(OWNER, from_block=0)) == 2

    @pytest.mark.asyncio
    async def test_log_scan_failure_is_fatal(self, ledger: InMemoryLedger, discovery: EventDiscovery) -> None:
        async def broken(**kwargs):
            raise LedgerError("eth_getLogs: block range too large")

        ledger.request_created_logs = broken  # type: ignore[method-assign]
        with pytest.raises(LedgerError, match="block range"):
            await discovery.scan(owner=OWNER)

    @pytest.mark.asyncio
    async def test_requires_exactly_one_party(self, discovery: EventDiscovery) -> None:
        with pytest.raises(ValueError):
            await discovery.scan()
        with pytest.raises(ValueError):
            await discovery.scan(owner=OWNER, organizer=ORGANIZER)

    @pytest.mark.asyncio
    async def test_reads_run_concurrently(self, ledger: InMemoryLedger, discovery: EventDiscovery) -> None:
        for _ in range(3):
            ledger.add()
        in_flight = 0
        peak = 0
        original = ledger.get_record

        async def slow_read(request_id: int):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return await original(request_id)

        ledger.get_record = slow_read  # type: ignore[method-assign]
        records = await discovery.list_for_owner(OWNER)
        assert len(records) == 3
        assert peak == 3


class TestOrganizerQueue:
    @pytest.mark.asyncio
    async def test_pending_only(self, ledger: InMemoryLedger, discovery: EventDiscovery) -> None:
        ledger.add()
        ledger.add(status=AttestationStatus.CONFIRMED)
        ledger.add(status=AttestationStatus.REJECTED)
        ledger.add()
        result = await discovery.pending_for_organizer(ORGANIZER)
        assert [r.request_id for r in result.records] == [1, 4]
