"""Attestation request models.

An owner asks a named organizer to attest an off-chain achievement
document. The ledger stores a commitment (Keccak-256 digest) and an
ipfs:// locator for that document; the organizer decides exactly once.

Request lifecycle: PENDING → CONFIRMED | REJECTED (both terminal)
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional


class AttestationStatus(str, enum.Enum):
    """Lifecycle state of an attestation request."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"

    @classmethod
    def from_code(cls, code: int) -> AttestationStatus:
        """Map the ledger's numeric status (0/1/2) to a status."""
        try:
            return _STATUS_BY_CODE[code]
        except KeyError:
            raise ValueError(f"unknown status code: {code}") from None

    @property
    def code(self) -> int:
        return _CODE_BY_STATUS[self]


_STATUS_BY_CODE = {
    0: AttestationStatus.PENDING,
    1: AttestationStatus.CONFIRMED,
    2: AttestationStatus.REJECTED,
}
_CODE_BY_STATUS = {v: k for k, v in _STATUS_BY_CODE.items()}


@dataclass(frozen=True)
class AttestationRequest:
    """The on-chain record of an attestation request.

    content_hash is the single source of truth binding the record to its
    document. result_uri and reason_uri are empty strings until a
    transition sets them.
    """
    request_id: int
    owner: str
    organizer: str
    start_at: int  # unix seconds
    end_at: int  # unix seconds
    content_hash: str
    content_uri: str
    status: AttestationStatus = AttestationStatus.PENDING
    result_uri: str = ""
    reason_uri: str = ""

    @property
    def is_pending(self) -> bool:
        return self.status == AttestationStatus.PENDING

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.request_id,
            "owner": self.owner,
            "organizer": self.organizer,
            "startAt": self.start_at,
            "endAt": self.end_at,
            "contentHash": self.content_hash,
            "contentURI": self.content_uri,
            "resultURI": self.result_uri,
            "reasonURI": self.reason_uri,
            "status": self.status.value,
        }


@dataclass(frozen=True)
class RequestCreatedLog:
    """A RequestCreated entry from the ledger's append-only event log."""
    request_id: int
    owner: str
    organizer: str
    block_number: int = 0


@dataclass(frozen=True)
class CommittedDocument:
    """Exact bytes that were pinned, with their digest and locator."""
    data: bytes
    digest: str
    locator: str
    content_id: str


@dataclass(frozen=True)
class PinReceipt:
    """Validated pinning provider response."""
    content_id: str
    size: int
    timestamp: str


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of checking a record's document against its commitment."""
    ok: bool
    reason: Optional[str] = None
    expected_hash: Optional[str] = None
    actual_hash: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"ok": self.ok}
        if self.reason is not None:
            data["reason"] = self.reason
        if self.expected_hash is not None:
            data["expected_hash"] = self.expected_hash
        if self.actual_hash is not None:
            data["actual_hash"] = self.actual_hash
        return data


@dataclass
class RequestDraft:
    """An owner's attestation request before it is pinned and submitted."""
    title: str
    organizer: str
    start_at: Optional[date]
    end_at: Optional[date]
    description: str


@dataclass(frozen=True)
class CreationReceipt:
    """Result of submitting a new attestation request."""
    request_id: int
    document: CommittedDocument
    tx_hash: str


@dataclass(frozen=True)
class TransitionReceipt:
    """Result of a confirm or reject transition."""
    request_id: int
    status: AttestationStatus
    tx_hash: str
    uri: str = ""
    document_digest: str = ""


@dataclass(frozen=True)
class PartialDiscoveryFailure:
    """A single id that could not be resolved during discovery."""
    request_id: int
    error: str


@dataclass
class DiscoveryResult:
    """Resolved records plus any per-id failures from one scan."""
    records: list[AttestationRequest] = field(default_factory=list)
    failures: list[PartialDiscoveryFailure] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        return bool(self.failures)
