"""Cryptographic primitives — commitment digests over raw document bytes."""

from portfolio.crypto.commitment import digest, equal, serialize_document

__all__ = ["digest", "equal", "serialize_document"]
