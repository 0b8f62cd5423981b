"""Portfolio — content-addressed attestation of off-chain achievement records."""

__version__ = "0.1.0"
