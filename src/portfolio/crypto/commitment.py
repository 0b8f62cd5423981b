"""Commitment hashing — the digest that binds a ledger record to its document.

The ledger verifies commitments with Keccak-256, so the same function is
applied here to the literal bytes that were pinned. There is no
normalization step: no whitespace trimming, no JSON canonicalization,
no re-encoding. Any transformation between hash-at-creation and
hash-at-verification breaks the proof.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

from web3 import Web3


_HEX64 = re.compile(r"^[0-9a-fA-F]{64}$")


def digest(data: bytes) -> str:
    """Compute the Keccak-256 commitment of raw bytes as 0x-prefixed hex."""
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise TypeError(f"digest() takes raw bytes, got {type(data).__name__}")
    return "0x" + bytes(Web3.keccak(primitive=bytes(data))).hex()


def digest_file(path: Path) -> str:
    """Compute the commitment of a file's raw bytes.

    The file is its own canonical form.
    """
    return digest(path.read_bytes())


def equal(h1: str, h2: str) -> bool:
    """Compare two digests, ignoring case and an optional 0x prefix.

    Values that are not 32-byte hex strings never compare equal.
    """
    a = _strip_prefix(h1)
    b = _strip_prefix(h2)
    if not _HEX64.match(a) or not _HEX64.match(b):
        return False
    return a.lower() == b.lower()


def is_digest(value: str) -> bool:
    """Check that a value is a 32-byte hex digest (prefix optional)."""
    return bool(_HEX64.match(_strip_prefix(value)))


def ensure_prefix(hash_val: str) -> str:
    """Ensure the 0x prefix and lowercase hex on a digest string."""
    return "0x" + _strip_prefix(hash_val).lower()


def serialize_document(content: dict[str, Any]) -> bytes:
    """Serialize a JSON document once, compactly, for pinning and hashing.

    Key order is preserved as given. The returned bytes are the ones
    that must be both pinned and hashed.
    """
    return json.dumps(
        content,
        separators=(",", ":"),
        ensure_ascii=False,
    ).encode("utf-8")


def _strip_prefix(value: str) -> str:
    if value[:2] in ("0x", "0X"):
        return value[2:]
    return value
