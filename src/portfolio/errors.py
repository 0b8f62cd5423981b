"""Error taxonomy for the attestation workflow.

Network and store errors carry the provider's text verbatim, because the
failure detail is the operator's audit trail. Verification outcomes are
not exceptions: "content does not verify" is reported through
VerificationResult. The exceptions below are for refused transitions,
boundary validation and transport failures.
"""

from __future__ import annotations


class PortfolioError(Exception):
    """Root of every error raised by the portfolio package."""


class ConfigError(PortfolioError):
    """Raised when required configuration is missing or unusable."""


class InvalidRequest(PortfolioError):
    """Raised when an owner's draft request fails validation."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class MalformedLocator(PortfolioError):
    """Raised when a string is not a well-formed ipfs:// locator."""

    def __init__(self, locator: str, detail: str = "malformed locator") -> None:
        self.locator = locator
        super().__init__(f"{detail}: {locator!r}")


# ------------------------------------------------------------------
# Content-addressed store
# ------------------------------------------------------------------

class StoreError(PortfolioError):
    """Base class for content store failures."""


class StoreUnavailable(StoreError):
    """Transport-level failure talking to the pinning API or gateway."""


class StoreRejected(StoreError):
    """The pinning provider answered with a non-success response."""

    def __init__(self, status: int | None, detail: str) -> None:
        self.status = status
        self.detail = detail
        super().__init__(f"pinning provider error {status}: {detail}")


class FetchFailed(StoreError):
    """The gateway answered a fetch with a non-success status."""

    def __init__(self, status: int, body_snippet: str) -> None:
        self.status = status
        self.body_snippet = body_snippet
        super().__init__(f"Gateway {status}: {body_snippet}")


# ------------------------------------------------------------------
# Verification
# ------------------------------------------------------------------

class HashMismatch(PortfolioError):
    """Fetched content does not hash to the committed digest."""

    def __init__(self, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"hash mismatch: on-chain={expected} vs fetched={actual}")


class VerificationFailed(PortfolioError):
    """A confirm was refused because the content did not verify."""

    def __init__(self, request_id: int, reason: str) -> None:
        self.request_id = request_id
        self.reason = reason
        super().__init__(
            f"cannot confirm request {request_id}: content failed validation: {reason}"
        )


# ------------------------------------------------------------------
# Ledger
# ------------------------------------------------------------------

class LedgerError(PortfolioError):
    """A ledger read or write failed. The message is the ledger's own text."""


class LedgerAuthorizationDenied(LedgerError):
    """The ledger refused a transition because the caller is not allowed."""


class AlreadyFinalized(LedgerError):
    """A transition was attempted on a record that is no longer Pending."""

    def __init__(self, request_id: int, status: str, detail: str = "") -> None:
        self.request_id = request_id
        self.status = status
        message = f"request {request_id} is already finalized ({status})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class MalformedRecord(LedgerError):
    """A ledger response could not be validated into an AttestationRequest."""
