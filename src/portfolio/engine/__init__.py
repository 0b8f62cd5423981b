"""Attestation engine — discovery, verification, state machine and lifecycle."""

from portfolio.engine.discovery import EventDiscovery
from portfolio.engine.lifecycle import LifecycleController
from portfolio.engine.state_machine import AttestationStateMachine
from portfolio.engine.validation import RequestValidator
from portfolio.engine.verification import VerificationEngine

__all__ = [
    "AttestationStateMachine",
    "EventDiscovery",
    "LifecycleController",
    "RequestValidator",
    "VerificationEngine",
]
