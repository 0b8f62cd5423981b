"""Core data models for the attestation workflow."""

from portfolio.models.attestation import (
    AttestationRequest,
    AttestationStatus,
    CommittedDocument,
    CreationReceipt,
    DiscoveryResult,
    PartialDiscoveryFailure,
    PinReceipt,
    RequestCreatedLog,
    RequestDraft,
    TransitionReceipt,
    VerificationResult,
)

__all__ = [
    "AttestationRequest",
    "AttestationStatus",
    "CommittedDocument",
    "CreationReceipt",
    "DiscoveryResult",
    "PartialDiscoveryFailure",
    "PinReceipt",
    "RequestCreatedLog",
    "RequestDraft",
    "TransitionReceipt",
    "VerificationResult",
]
