"""Ledger interface — the attestation contract as seen by this package.

The ledger owns record storage and authorization. This package consumes
its read/write surface and validates every response at the boundary
before it enters the typed core.
"""

from __future__ import annotations

import abc
from collections.abc import Mapping, Sequence
from typing import Any, Optional

from portfolio.crypto.commitment import ensure_prefix, is_digest
from portfolio.errors import AlreadyFinalized, LedgerAuthorizationDenied, LedgerError, MalformedRecord
from portfolio.models.attestation import AttestationRequest, AttestationStatus, RequestCreatedLog


ZERO_ADDRESS = "0x" + "0" * 40

# Field order of the contract's getEvent() struct
RECORD_FIELDS = (
    "owner",
    "organizer",
    "startAt",
    "endAt",
    "contentHash",
    "contentURI",
    "resultURI",
    "reasonURI",
    "status",
)

_AUTH_MARKERS = (
    "not organizer",
    "only organizer",
    "not the organizer",
    "unauthorized",
    "not authorized",
    "caller is not",
    "forbidden",
)
_FINAL_MARKERS = (
    "not pending",
    "already",
    "finalized",
    "finalised",
)


class LedgerClient(abc.ABC):
    """Read/write surface of the attestation ledger."""

    @abc.abstractmethod
    async def create_request(
        self,
        organizer: str,
        start_at: int,
        end_at: int,
        content_hash: str,
        content_uri: str,
    ) -> tuple[int, str]:
        """Submit a new request. Returns (request_id, tx_hash)."""

    @abc.abstractmethod
    async def confirm(self, request_id: int, result_uri: str) -> str:
        """Submit the confirm transition. Returns the tx hash."""

    @abc.abstractmethod
    async def reject(self, request_id: int, reason_uri: str) -> str:
        """Submit the reject transition. Returns the tx hash."""

    @abc.abstractmethod
    async def get_record(self, request_id: int) -> AttestationRequest:
        """Point read of the current record."""

    @abc.abstractmethod
    async def request_created_logs(
        self,
        *,
        owner: Optional[str] = None,
        organizer: Optional[str] = None,
        from_block: int = 0,
    ) -> list[RequestCreatedLog]:
        """Scan RequestCreated entries filtered by an indexed party."""


def parse_record(request_id: int, raw: Any) -> AttestationRequest:
    """Validate a raw getEvent() result into an AttestationRequest.

    Accepts either the positional struct tuple or a mapping keyed by the
    contract's field names. Raises MalformedRecord.
    """
    if isinstance(raw, Mapping):
        missing = [k for k in RECORD_FIELDS if k not in raw]
        if missing:
            raise MalformedRecord(f"request {request_id}: missing fields {missing}")
        values = {k: raw[k] for k in RECORD_FIELDS}
    elif isinstance(raw, Sequence) and not isinstance(raw, (str, bytes)):
        if len(raw) != len(RECORD_FIELDS):
            raise MalformedRecord(
                f"request {request_id}: expected {len(RECORD_FIELDS)} fields, got {len(raw)}"
            )
        values = dict(zip(RECORD_FIELDS, raw))
    else:
        raise MalformedRecord(f"request {request_id}: unexpected record type {type(raw).__name__}")

    owner = str(values["owner"])
    if owner.lower() == ZERO_ADDRESS:
        raise MalformedRecord(f"request {request_id} does not exist")

    content_hash = _hash_to_hex(values["contentHash"])
    if not is_digest(content_hash):
        raise MalformedRecord(f"request {request_id}: contentHash is not 32 bytes: {content_hash!r}")

    try:
        status = AttestationStatus.from_code(int(values["status"]))
        start_at = int(values["startAt"])
        end_at = int(values["endAt"])
    except (TypeError, ValueError) as exc:
        raise MalformedRecord(f"request {request_id}: {exc}") from exc

    return AttestationRequest(
        request_id=int(request_id),
        owner=owner,
        organizer=str(values["organizer"]),
        start_at=start_at,
        end_at=end_at,
        content_hash=ensure_prefix(content_hash),
        content_uri=str(values["contentURI"] or ""),
        result_uri=str(values["resultURI"] or ""),
        reason_uri=str(values["reasonURI"] or ""),
        status=status,
    )


def classify_revert(request_id: Optional[int], message: str) -> LedgerError:
    """Map a contract revert reason to the error taxonomy.

    The ledger's text is kept verbatim in the returned error.
    """
    lowered = message.lower()
    if any(marker in lowered for marker in _AUTH_MARKERS):
        return LedgerAuthorizationDenied(message)
    if request_id is not None and any(marker in lowered for marker in _FINAL_MARKERS):
        return AlreadyFinalized(request_id, "not pending", detail=message)
    return LedgerError(message)


def _hash_to_hex(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return str(value)
