"""Configuration — endpoints and credentials as an explicit value object.

Nothing here is global: callers build a PortfolioConfig (directly or
from the environment) and pass it to the clients they construct.

Environment (optionally loaded from a .env file):
    PORTFOLIO_RPC_URL / SEPOLIA_RPC_URL     Ethereum JSON-RPC endpoint
    PORTFOLIO_CONTRACT_ADDRESS              attestation contract address
    PRIVATE_KEY / SEPOLIA_PRIVATE_KEY       signing key for transitions
    PORTFOLIO_CHAIN_ID                      default 11155111 (Sepolia)
    PORTFOLIO_FROM_BLOCK                    discovery start, default 8998500
    PINATA_JWT                              pinning API bearer token
    PINATA_GATEWAY                          gateway base URL
    PINATA_API_URL                          pinning API base URL
    PORTFOLIO_HTTP_TIMEOUT                  seconds, default 30
    PORTFOLIO_AUDIT_LOG                     optional JSONL audit log path
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from portfolio.errors import ConfigError


SEPOLIA_CHAIN_ID = 11155111
DEFAULT_FROM_BLOCK = 8998500
DEFAULT_GATEWAY = "https://gateway.pinata.cloud/ipfs/"
DEFAULT_PINATA_API = "https://api.pinata.cloud"
DEFAULT_HTTP_TIMEOUT = 30.0


@dataclass(frozen=True)
class PortfolioConfig:
    """Connection settings for the ledger and the content store."""
    rpc_url: str = ""
    contract_address: str = ""
    private_key: str = ""
    chain_id: int = SEPOLIA_CHAIN_ID
    from_block: int = DEFAULT_FROM_BLOCK
    pinata_jwt: str = ""
    gateway_base: str = DEFAULT_GATEWAY
    pinata_api_url: str = DEFAULT_PINATA_API
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    audit_log_path: Optional[Path] = None

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> PortfolioConfig:
        """Build a config from environment variables.

        If env_file is given (or a .env exists in the working directory)
        it is loaded first; variables already set in the process win.
        """
        if env_file is not None:
            load_dotenv(env_file)
        else:
            load_dotenv()

        audit = os.getenv("PORTFOLIO_AUDIT_LOG")
        try:
            chain_id = int(os.getenv("PORTFOLIO_CHAIN_ID", str(SEPOLIA_CHAIN_ID)))
            from_block = int(os.getenv("PORTFOLIO_FROM_BLOCK", str(DEFAULT_FROM_BLOCK)))
            timeout = float(os.getenv("PORTFOLIO_HTTP_TIMEOUT", str(DEFAULT_HTTP_TIMEOUT)))
        except ValueError as exc:
            raise ConfigError(f"invalid numeric setting: {exc}") from exc

        return cls(
            rpc_url=os.getenv("PORTFOLIO_RPC_URL") or os.getenv("SEPOLIA_RPC_URL") or "",
            contract_address=os.getenv("PORTFOLIO_CONTRACT_ADDRESS", ""),
            private_key=os.getenv("PRIVATE_KEY") or os.getenv("SEPOLIA_PRIVATE_KEY") or "",
            chain_id=chain_id,
            from_block=from_block,
            pinata_jwt=os.getenv("PINATA_JWT", ""),
            gateway_base=os.getenv("PINATA_GATEWAY") or DEFAULT_GATEWAY,
            pinata_api_url=os.getenv("PINATA_API_URL") or DEFAULT_PINATA_API,
            http_timeout=timeout,
            audit_log_path=Path(audit) if audit else None,
        )

    def validate(self, *, write: bool = False, pin: bool = False) -> list[str]:
        """Return missing-setting errors. Empty list means usable.

        Reads need an RPC URL and contract address; write=True also
        needs a private key; pin=True needs a pinning JWT.
        """
        errors: list[str] = []
        if not self.rpc_url:
            errors.append("missing PORTFOLIO_RPC_URL (or SEPOLIA_RPC_URL)")
        if not self.contract_address:
            errors.append("missing PORTFOLIO_CONTRACT_ADDRESS")
        if write and not self.private_key:
            errors.append("missing PRIVATE_KEY (required to sign transitions)")
        if pin and not self.pinata_jwt:
            errors.append("missing PINATA_JWT (required to pin documents)")
        if not self.gateway_base.endswith("/"):
            errors.append(f"PINATA_GATEWAY must end with '/': {self.gateway_base}")
        if self.http_timeout <= 0:
            errors.append(f"PORTFOLIO_HTTP_TIMEOUT must be positive, got {self.http_timeout}")
        return errors

    def require(self, *, write: bool = False, pin: bool = False) -> None:
        """Raise ConfigError if validate() reports anything."""
        errors = self.validate(write=write, pin=pin)
        if errors:
            raise ConfigError("; ".join(errors))
