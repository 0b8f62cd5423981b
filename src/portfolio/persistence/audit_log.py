"""Append-only audit log — the local record of every decision and refusal.

Each verification outcome, pinned document and transition (including
refused ones, with their exact error detail) becomes an AuditRecord.
Records are immutable once written and carry a SHA-256 of their
canonical JSON. The log may be persisted as JSONL and reloaded; loading
re-verifies every hash and fails closed on tampering or replayed ids.
"""

from __future__ import annotations

import enum
import hashlib
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional


class AuditKind(str, enum.Enum):
    """Classification of audit records."""
    REQUEST_CREATED = "request_created"
    DOCUMENT_PINNED = "document_pinned"
    VERIFICATION_PASSED = "verification_passed"
    VERIFICATION_FAILED = "verification_failed"
    REQUEST_CONFIRMED = "request_confirmed"
    REQUEST_REJECTED = "request_rejected"
    TRANSITION_REFUSED = "transition_refused"


def _canonical_hash(
    record_id: str,
    kind: str,
    timestamp_utc: str,
    actor_id: str,
    payload: dict[str, Any],
) -> str:
    canonical = json.dumps(
        {
            "record_id": record_id,
            "kind": kind,
            "timestamp_utc": timestamp_utc,
            "actor_id": actor_id,
            "payload": payload,
        },
        sort_keys=True,
        ensure_ascii=False,
    ).encode("utf-8")
    return f"sha256:{hashlib.sha256(canonical).hexdigest()}"


@dataclass(frozen=True)
class AuditRecord:
    """A single immutable audit entry."""
    record_id: str
    kind: AuditKind
    timestamp_utc: str
    actor_id: str
    payload: dict[str, Any]
    record_hash: str

    @staticmethod
    def create(
        record_id: str,
        kind: AuditKind,
        actor_id: str,
        payload: dict[str, Any],
        timestamp_utc: Optional[datetime] = None,
    ) -> AuditRecord:
        """Create a new audit record with computed hash."""
        ts = timestamp_utc or datetime.now(timezone.utc)
        ts_str = ts.strftime("%Y-%m-%dT%H:%M:%SZ")
        return AuditRecord(
            record_id=record_id,
            kind=kind,
            timestamp_utc=ts_str,
            actor_id=actor_id,
            payload=payload,
            record_hash=_canonical_hash(record_id, kind.value, ts_str, actor_id, payload),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "record_id": self.record_id,
            "kind": self.kind.value,
            "timestamp_utc": self.timestamp_utc,
            "actor_id": self.actor_id,
            "payload": self.payload,
            "record_hash": self.record_hash,
        }


class AuditLog:
    """Append-only audit log with optional JSONL persistence."""

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self._records: list[AuditRecord] = []
        self._record_ids: set[str] = set()
        self._storage_path = storage_path

        if storage_path and storage_path.exists():
            self._load_from_file(storage_path)

    def append(self, record: AuditRecord) -> None:
        """Append a record. Raises ValueError on a duplicate record_id."""
        if record.record_id in self._record_ids:
            raise ValueError(f"Duplicate audit record ID: {record.record_id}")

        self._records.append(record)
        self._record_ids.add(record.record_id)

        if self._storage_path:
            self._append_to_file(record)

    def record(
        self,
        kind: AuditKind,
        actor_id: str,
        payload: dict[str, Any],
    ) -> AuditRecord:
        """Create and append a record with the next sequential id."""
        entry = AuditRecord.create(
            record_id=f"A-{self.count + 1:06d}",
            kind=kind,
            actor_id=actor_id,
            payload=payload,
        )
        self.append(entry)
        return entry

    def records(
        self,
        kind: Optional[AuditKind] = None,
        request_id: Optional[int] = None,
    ) -> list[AuditRecord]:
        """Return records, optionally filtered by kind and request id."""
        result = list(self._records)
        if kind is not None:
            result = [r for r in result if r.kind == kind]
        if request_id is not None:
            result = [r for r in result if r.payload.get("request_id") == request_id]
        return result

    @property
    def count(self) -> int:
        return len(self._records)

    @property
    def last_record(self) -> Optional[AuditRecord]:
        return self._records[-1] if self._records else None

    def _append_to_file(self, record: AuditRecord) -> None:
        assert self._storage_path is not None
        self._storage_path.parent.mkdir(parents=True, exist_ok=True)
        with self._storage_path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(record.to_dict(), sort_keys=True, ensure_ascii=False) + "\n")

    def _load_from_file(self, path: Path) -> None:
        """Load records from JSONL, verifying each hash.

        Fail-closed: tampered records and duplicate ids raise ValueError.
        """
        with path.open("r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                data = json.loads(line)
                record_id = data["record_id"]

                if record_id in self._record_ids:
                    raise ValueError(
                        f"Duplicate audit record ID on recovery (line {line_num}): {record_id}"
                    )

                expected = _canonical_hash(
                    record_id,
                    data["kind"],
                    data["timestamp_utc"],
                    data["actor_id"],
                    data["payload"],
                )
                if data["record_hash"] != expected:
                    raise ValueError(
                        f"Integrity check failed (line {line_num}): record {record_id} "
                        f"stored hash {data['record_hash']} != computed {expected}"
                    )

                record = AuditRecord(
                    record_id=record_id,
                    kind=AuditKind(data["kind"]),
                    timestamp_utc=data["timestamp_utc"],
                    actor_id=data["actor_id"],
                    payload=data["payload"],
                    record_hash=data["record_hash"],
                )
                self._records.append(record)
                self._record_ids.add(record_id)
