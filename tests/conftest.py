"""Shared fixtures — an in-memory ledger and a mock Pinata/gateway transport."""

from __future__ import annotations

import base64
import hashlib
import json
from typing import Optional

import httpx
import pytest
from web3 import Web3

from portfolio.config import PortfolioConfig
from portfolio.crypto.commitment import digest, serialize_document
from portfolio.errors import LedgerError
from portfolio.ledger.client import LedgerClient, classify_revert
from portfolio.models.attestation import AttestationRequest, AttestationStatus, RequestCreatedLog
from portfolio.store.ipfs import IpfsStore
from portfolio.store.locator import Locator


OWNER = Web3.to_checksum_address("0x" + "a1" * 20)
ORGANIZER = Web3.to_checksum_address("0x" + "b2" * 20)
OTHER = Web3.to_checksum_address("0x" + "c3" * 20)
GATEWAY = "https://gateway.test/ipfs/"
PINATA_API = "https://api.pinata.test"


def fake_cid(data: bytes) -> str:
    """Deterministic base32 CIDv1-shaped identifier for test content."""
    raw = base64.b32encode(hashlib.sha256(data).digest()).decode("ascii")
    return "b" + raw.lower().rstrip("=")


class FakeGateway:
    """Pinata pinFileToIPFS plus a public gateway, backed by a dict."""

    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.pins: list[dict] = []
        self.requests: list[httpx.Request] = []
        self.pin_status = 200
        self.pin_error = ""
        self.unreachable = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.unreachable:
            raise httpx.ConnectError("connection refused", request=request)
        url = str(request.url)
        if request.method == "POST" and url.startswith(PINATA_API):
            return self._pin(request)
        if request.method == "GET" and url.startswith(GATEWAY):
            cid = url[len(GATEWAY):].split("/", 1)[0]
            if cid not in self.objects:
                return httpx.Response(404, text="ipfs resolve -r /ipfs/" + cid + ": not found")
            return httpx.Response(200, content=self.objects[cid])
        return httpx.Response(400, text="unexpected request")

    def _pin(self, request: httpx.Request) -> httpx.Response:
        if self.pin_status != 200:
            return httpx.Response(self.pin_status, text=self.pin_error)
        fields = _parse_multipart(request)
        data = fields["file"]
        cid = fake_cid(data)
        self.objects[cid] = data
        self.pins.append({
            "cid": cid,
            "metadata": json.loads(fields["pinataMetadata"]),
            "options": json.loads(fields["pinataOptions"]),
            "authorization": request.headers.get("Authorization"),
        })
        return httpx.Response(200, json={
            "IpfsHash": cid,
            "PinSize": len(data),
            "Timestamp": "2026-10-19T12:00:00.000Z",
        })

    def put(self, data: bytes) -> str:
        """Store bytes directly, bypassing the pinning API."""
        cid = fake_cid(data)
        self.objects[cid] = data
        return Locator.for_cid(cid).uri

    def tamper(self, locator: str, data: bytes) -> None:
        """Replace the bytes served for a locator."""
        self.objects[Locator.parse(locator).cid] = data


def _parse_multipart(request: httpx.Request) -> dict[str, bytes | str]:
    content_type = request.headers["content-type"]
    boundary = content_type.split("boundary=", 1)[1].encode("ascii")
    body = request.read()
    fields: dict[str, bytes | str] = {}
    for part in body.split(b"--" + boundary):
        head, sep, payload = part.partition(b"\r\n\r\n")
        if not sep:
            continue
        name = head.split(b'name="', 1)[1].split(b'"', 1)[0].decode("ascii")
        value = payload[:-2] if payload.endswith(b"\r\n") else payload
        fields[name] = value if name == "file" else value.decode("utf-8")
    return fields


class InMemoryLedger(LedgerClient):
    """LedgerClient with contract semantics, held in memory.

    The signer plays the role of the connected wallet: only the record's
    organizer may decide, and only while the record is Pending.
    """

    def __init__(self, signer: str = ORGANIZER) -> None:
        self.signer = signer
        self.records: dict[int, AttestationRequest] = {}
        self.logs: list[RequestCreatedLog] = []
        self.unreadable: set[int] = set()
        self.read_errors: dict[int, Exception] = {}
        self.submitted: list[tuple[str, int, str]] = []
        self._next_id = 1
        self._block = 9_000_000

    def add(
        self,
        owner: str = OWNER,
        organizer: str = ORGANIZER,
        content_hash: str = "0x" + "00" * 32,
        content_uri: str = "",
        status: AttestationStatus = AttestationStatus.PENDING,
    ) -> AttestationRequest:
        record = AttestationRequest(
            request_id=self._next_id,
            owner=owner,
            organizer=organizer,
            start_at=1_756_684_800,
            end_at=1_756_771_200,
            content_hash=content_hash,
            content_uri=content_uri,
            status=status,
        )
        self._store(record)
        return record

    def _store(self, record: AttestationRequest) -> None:
        self.records[record.request_id] = record
        self._block += 1
        self.logs.append(RequestCreatedLog(
            request_id=record.request_id,
            owner=record.owner,
            organizer=record.organizer,
            block_number=self._block,
        ))
        self._next_id = record.request_id + 1

    def _tx(self, kind: str, request_id: int, uri: str) -> str:
        self.submitted.append((kind, request_id, uri))
        return "0x" + hashlib.sha256(f"{kind}:{request_id}:{len(self.submitted)}".encode()).hexdigest()

    async def create_request(
        self,
        organizer: str,
        start_at: int,
        end_at: int,
        content_hash: str,
        content_uri: str,
    ) -> tuple[int, str]:
        if end_at < start_at:
            raise classify_revert(None, "execution reverted: bad period")
        record = AttestationRequest(
            request_id=self._next_id,
            owner=self.signer,
            organizer=organizer,
            start_at=start_at,
            end_at=end_at,
            content_hash=content_hash,
            content_uri=content_uri,
        )
        self._store(record)
        return record.request_id, self._tx("create", record.request_id, content_uri)

    async def confirm(self, request_id: int, result_uri: str) -> str:
        record = self._decidable(request_id)
        self.records[request_id] = _replace(record, AttestationStatus.CONFIRMED, result_uri=result_uri)
        return self._tx("confirm", request_id, result_uri)

    async def reject(self, request_id: int, reason_uri: str) -> str:
        record = self._decidable(request_id)
        self.records[request_id] = _replace(record, AttestationStatus.REJECTED, reason_uri=reason_uri)
        return self._tx("reject", request_id, reason_uri)

    def _decidable(self, request_id: int) -> AttestationRequest:
        record = self.records[request_id]
        if record.organizer != self.signer:
            raise classify_revert(request_id, "execution reverted: not organizer")
        if record.status != AttestationStatus.PENDING:
            raise classify_revert(request_id, "execution reverted: not pending")
        return record

    async def get_record(self, request_id: int) -> AttestationRequest:
        if request_id in self.read_errors:
            raise self.read_errors[request_id]
        if request_id in self.unreadable:
            raise LedgerError(f"getEvent({request_id}) failed: execution reverted")
        if request_id not in self.records:
            raise LedgerError(f"request {request_id} does not exist")
        return self.records[request_id]

    async def request_created_logs(
        self,
        *,
        owner: Optional[str] = None,
        organizer: Optional[str] = None,
        from_block: int = 0,
    ) -> list[RequestCreatedLog]:
        return [
            log for log in self.logs
            if log.block_number >= from_block
            and (owner is None or log.owner.lower() == owner.lower())
            and (organizer is None or log.organizer.lower() == organizer.lower())
        ]


def _replace(record: AttestationRequest, status: AttestationStatus, **uris: str) -> AttestationRequest:
    data = {
        "request_id": record.request_id,
        "owner": record.owner,
        "organizer": record.organizer,
        "start_at": record.start_at,
        "end_at": record.end_at,
        "content_hash": record.content_hash,
        "content_uri": record.content_uri,
        "result_uri": record.result_uri,
        "reason_uri": record.reason_uri,
        "status": status,
    }
    data.update(uris)
    return AttestationRequest(**data)


@pytest.fixture
def config() -> PortfolioConfig:
    return PortfolioConfig(
        rpc_url="http://localhost:8545",
        contract_address=Web3.to_checksum_address("0x" + "de" * 20),
        private_key="0x" + "11" * 32,
        pinata_jwt="test-jwt",
        gateway_base=GATEWAY,
        pinata_api_url=PINATA_API,
    )


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def store(config: PortfolioConfig, gateway: FakeGateway) -> IpfsStore:
    client = httpx.AsyncClient(transport=httpx.MockTransport(gateway.handler))
    return IpfsStore(config, http_client=client)


@pytest.fixture
def ledger() -> InMemoryLedger:
    return InMemoryLedger()


@pytest.fixture
def committed(ledger: InMemoryLedger, gateway: FakeGateway) -> AttestationRequest:
    """A Pending record whose document is served intact."""
    data = serialize_document({"title": "X"})
    locator = gateway.put(data)
    return ledger.add(content_hash=digest(data), content_uri=locator)
