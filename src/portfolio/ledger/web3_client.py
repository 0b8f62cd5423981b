"""Ethereum-backed ledger client — the attestation contract over web3.

Reads use eth_call and eth_getLogs; writes are signed locally with
eth_account and sent as raw transactions, then awaited for one receipt.
Contract reverts are classified into the error taxonomy with the
revert text preserved.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import aiohttp
from eth_account import Account
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import ContractLogicError, Web3Exception

from portfolio.config import PortfolioConfig
from portfolio.errors import ConfigError, LedgerError, MalformedRecord
from portfolio.ledger.abi import PORTFOLIO_ABI
from portfolio.ledger.client import LedgerClient, classify_revert, parse_record
from portfolio.models.attestation import AttestationRequest, RequestCreatedLog

logger = logging.getLogger(__name__)

RECEIPT_TIMEOUT = 300

# RPC failures the provider raises without wrapping in Web3Exception
_TRANSPORT_ERRORS = (Web3Exception, aiohttp.ClientError, OSError, asyncio.TimeoutError)


class Web3LedgerClient(LedgerClient):
    """LedgerClient over an Ethereum JSON-RPC endpoint.

    Usage:
        async with Web3LedgerClient(config) as ledger:
            record = await ledger.get_record(7)

    The provider connection is released by aclose() (or on context exit),
    including when a call fails.
    """

    def __init__(self, config: PortfolioConfig, w3: Optional[AsyncWeb3] = None) -> None:
        config.require()
        self._config = config
        self._w3 = w3 or AsyncWeb3(AsyncHTTPProvider(config.rpc_url))
        self._contract = self._w3.eth.contract(
            address=Web3.to_checksum_address(config.contract_address),
            abi=PORTFOLIO_ABI,
        )

    async def __aenter__(self) -> Web3LedgerClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        disconnect = getattr(self._w3.provider, "disconnect", None)
        if disconnect is not None:
            await disconnect()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_record(self, request_id: int) -> AttestationRequest:
        try:
            raw = await self._contract.functions.getEvent(request_id).call()
        except ContractLogicError as exc:
            raise classify_revert(request_id, _revert_text(exc)) from exc
        except _TRANSPORT_ERRORS as exc:
            raise LedgerError(f"getEvent({request_id}) failed: {exc}") from exc
        return parse_record(request_id, raw)

    async def request_created_logs(
        self,
        *,
        owner: Optional[str] = None,
        organizer: Optional[str] = None,
        from_block: int = 0,
    ) -> list[RequestCreatedLog]:
        filters: dict[str, str] = {}
        if owner:
            filters["owner"] = Web3.to_checksum_address(owner)
        if organizer:
            filters["organizer"] = Web3.to_checksum_address(organizer)
        try:
            logs = await self._contract.events.EventRequested().get_logs(
                argument_filters=filters,
                from_block=from_block,
                to_block="latest",
            )
        except _TRANSPORT_ERRORS as exc:
            raise LedgerError(f"EventRequested log scan failed: {exc}") from exc

        entries: list[RequestCreatedLog] = []
        for log in logs:
            args = log["args"]
            try:
                entries.append(
                    RequestCreatedLog(
                        request_id=int(args["id"]),
                        owner=str(args["owner"]),
                        organizer=str(args["organizer"]),
                        block_number=int(log.get("blockNumber") or 0),
                    )
                )
            except (KeyError, TypeError, ValueError) as exc:
                raise MalformedRecord(f"malformed EventRequested log: {exc}") from exc
        return entries

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_request(
        self,
        organizer: str,
        start_at: int,
        end_at: int,
        content_hash: str,
        content_uri: str,
    ) -> tuple[int, str]:
        fn = self._contract.functions.createEventRequest(
            Web3.to_checksum_address(organizer),
            start_at,
            end_at,
            bytes.fromhex(content_hash.removeprefix("0x")),
            content_uri,
        )
        tx_hash, receipt = await self._transact(fn, None)
        events = self._contract.events.EventRequested().process_receipt(receipt)
        if not events:
            raise LedgerError(f"transaction {tx_hash} emitted no EventRequested log")
        request_id = int(events[0]["args"]["id"])
        logger.info("created request %d in tx %s", request_id, tx_hash)
        return request_id, tx_hash

    async def confirm(self, request_id: int, result_uri: str) -> str:
        fn = self._contract.functions.confirmEvent(request_id, result_uri)
        tx_hash, _ = await self._transact(fn, request_id)
        return tx_hash

    async def reject(self, request_id: int, reason_uri: str) -> str:
        fn = self._contract.functions.rejectEvent(request_id, reason_uri)
        tx_hash, _ = await self._transact(fn, request_id)
        return tx_hash

    async def _transact(self, fn: Any, request_id: Optional[int]) -> tuple[str, Any]:
        account = self._account()
        try:
            nonce = await self._w3.eth.get_transaction_count(account.address)
            tx = await fn.build_transaction({
                "from": account.address,
                "nonce": nonce,
                "chainId": self._config.chain_id,
            })
            signed = account.sign_transaction(tx)
            sent = await self._w3.eth.send_raw_transaction(signed.raw_transaction)
            receipt = await self._w3.eth.wait_for_transaction_receipt(
                sent, timeout=RECEIPT_TIMEOUT
            )
        except ContractLogicError as exc:
            raise classify_revert(request_id, _revert_text(exc)) from exc
        except _TRANSPORT_ERRORS as exc:
            raise LedgerError(f"transaction failed: {exc}") from exc

        tx_hash = Web3.to_hex(sent)
        if receipt["status"] != 1:
            raise LedgerError(f"transaction {tx_hash} reverted in block {receipt['blockNumber']}")
        return tx_hash, receipt

    def _account(self) -> Any:
        if not self._config.private_key:
            raise ConfigError("missing PRIVATE_KEY (required to sign transitions)")
        return Account.from_key(self._config.private_key)


def _revert_text(exc: ContractLogicError) -> str:
    message = getattr(exc, "message", None) or str(exc)
    return str(message)
