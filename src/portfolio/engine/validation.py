"""Request validator — checks an owner's draft before anything is pinned.

A draft must have:
- a non-blank title and description,
- an organizer that is a valid EVM address,
- start and end dates, with end not earlier than start.

Invalid drafts are blocked before any store or ledger call.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timezone

from web3 import Web3

from portfolio.models.attestation import RequestDraft


_ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")


class RequestValidator:
    """Validates owner drafts against the request schema."""

    def validate_draft(self, draft: RequestDraft) -> list[str]:
        """Validate a draft. Returns list of errors. Empty list = valid."""
        errors: list[str] = []

        if not draft.title.strip():
            errors.append("Please enter the event title.")

        organizer = draft.organizer.strip()
        if not organizer:
            errors.append("Please provide the organizer address.")
        elif not _ADDRESS_PATTERN.match(organizer):
            errors.append(f"Invalid Ethereum address format (0x...): {organizer[:50]}")
        elif not Web3.is_address(organizer):
            errors.append(f"Organizer address fails checksum validation: {organizer}")

        if draft.start_at is None:
            errors.append("Please select a start date.")
        if draft.end_at is None:
            errors.append("Please select an end date.")
        if draft.start_at is not None and draft.end_at is not None:
            if draft.end_at < draft.start_at:
                errors.append("End date cannot be earlier than start date.")

        if not draft.description.strip():
            errors.append("Please add a short description.")

        return errors

    @staticmethod
    def normalize_organizer(address: str) -> str:
        """Return the checksum form of a validated organizer address."""
        return Web3.to_checksum_address(address.strip())


def to_unix_seconds(day: date) -> int:
    """UTC midnight of a calendar date, as unix seconds."""
    return int(datetime(day.year, day.month, day.day, tzinfo=timezone.utc).timestamp())
