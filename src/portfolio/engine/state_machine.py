"""Attestation state machine — enforces the decision lifecycle.

Request lifecycle:
    PENDING → CONFIRMED
    PENDING → REJECTED

State semantics:
- PENDING: created by the owner, awaiting the organizer's decision.
- CONFIRMED: terminal. The organizer attested the committed content.
- REJECTED: terminal. The organizer refused, with a pinned justification.

Fail-closed: any transition not listed is rejected. Checks run before
anything is submitted to the ledger.
"""

from __future__ import annotations

from portfolio.errors import AlreadyFinalized
from portfolio.models.attestation import AttestationRequest, AttestationStatus


# Valid transitions: {from_state: {allowed_to_states}}
_TRANSITIONS: dict[AttestationStatus, set[AttestationStatus]] = {
    AttestationStatus.PENDING: {
        AttestationStatus.CONFIRMED,
        AttestationStatus.REJECTED,
    },
    # Terminal states: no outgoing transitions
    AttestationStatus.CONFIRMED: set(),
    AttestationStatus.REJECTED: set(),
}


class AttestationStateMachine:
    """Validates attestation state transitions.

    Pure computation: the ledger applies the change, this class only
    decides whether a transition may be attempted.
    """

    @staticmethod
    def validate_transition(
        record: AttestationRequest,
        target: AttestationStatus,
    ) -> list[str]:
        """Check if a transition is valid. Returns errors (empty = OK)."""
        current = record.status
        allowed = _TRANSITIONS.get(current, set())

        if target not in allowed:
            allowed_str = ", ".join(s.value for s in sorted(allowed, key=lambda x: x.value))
            return [
                f"Invalid attestation transition for request {record.request_id}: "
                f"{current.value} → {target.value}. "
                f"Allowed from {current.value}: [{allowed_str}]"
            ]
        return []

    @staticmethod
    def require_transition(
        record: AttestationRequest,
        target: AttestationStatus,
    ) -> None:
        """Raise AlreadyFinalized if the record cannot move to target."""
        if AttestationStateMachine.is_terminal(record.status):
            raise AlreadyFinalized(record.request_id, record.status.value)
        errors = AttestationStateMachine.validate_transition(record, target)
        if errors:
            raise ValueError(errors[0])

    @staticmethod
    def is_terminal(state: AttestationStatus) -> bool:
        """Check if a state is terminal (no further transitions)."""
        return state in (AttestationStatus.CONFIRMED, AttestationStatus.REJECTED)

    @staticmethod
    def valid_transitions(state: AttestationStatus) -> set[AttestationStatus]:
        """Return the set of valid target states from the given state."""
        return set(_TRANSITIONS.get(state, set()))
