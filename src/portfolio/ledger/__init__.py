"""Ledger access — the attestation contract interface and its web3 client."""

from portfolio.ledger.client import LedgerClient, classify_revert, parse_record
from portfolio.ledger.web3_client import Web3LedgerClient

__all__ = ["LedgerClient", "Web3LedgerClient", "classify_revert", "parse_record"]
