"""Portfolio CLI — command-line interface for the attestation workflow.

Usage:
    python -m portfolio.cli config-check
    python -m portfolio.cli create --title "Hackathon" --organizer 0x... \
        --start 2025-09-01 --end 2025-09-02 --description "Second place"
    python -m portfolio.cli list-owner --address 0x...
    python -m portfolio.cli list-organizer --address 0x...
    python -m portfolio.cli show --id 7
    python -m portfolio.cli validate --id 7
    python -m portfolio.cli confirm --id 7
    python -m portfolio.cli reject --id 7 --reason "Certificate does not match"
    python -m portfolio.cli verify-reason --id 7 --digest 0x...
    python -m portfolio.cli gateway-url ipfs://<cid>

Settings come from the environment or a .env file (see portfolio.config).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from contextlib import asynccontextmanager
from datetime import date
from pathlib import Path
from typing import AsyncIterator, Awaitable, Callable

import httpx
from eth_account import Account

from portfolio.config import PortfolioConfig
from portfolio.errors import PortfolioError
from portfolio.ledger.web3_client import Web3LedgerClient
from portfolio.persistence.audit_log import AuditLog
from portfolio.service import AttestationService, ServiceResult
from portfolio.store.ipfs import IpfsStore


ServiceCall = Callable[[AttestationService], Awaitable[ServiceResult]]


@asynccontextmanager
async def open_service(config: PortfolioConfig) -> AsyncIterator[AttestationService]:
    """Build a service whose HTTP and RPC connections close on exit."""
    async with httpx.AsyncClient(timeout=config.http_timeout) as http:
        async with Web3LedgerClient(config) as ledger:
            audit = AuditLog(config.audit_log_path) if config.audit_log_path else None
            actor = Account.from_key(config.private_key).address if config.private_key else ""
            yield AttestationService(
                ledger,
                IpfsStore(config, http_client=http),
                audit_log=audit,
                from_block=config.from_block,
                actor_id=actor,
            )


def _load_config(args: argparse.Namespace) -> PortfolioConfig:
    return PortfolioConfig.from_env(args.env_file)


def _execute(
    args: argparse.Namespace,
    call: ServiceCall,
    *,
    write: bool = False,
    pin: bool = False,
) -> int:
    try:
        config = _load_config(args)
    except PortfolioError as e:
        print(f"Failed: {e}", file=sys.stderr)
        return 1
    errors = config.validate(write=write, pin=pin)
    if errors:
        print(f"Failed: {'; '.join(errors)}", file=sys.stderr)
        return 1

    async def _run() -> ServiceResult:
        async with open_service(config) as service:
            return await call(service)

    return _report(asyncio.run(_run()))


def _report(result: ServiceResult) -> int:
    if result.success:
        print(json.dumps(result.data, indent=2, default=str))
        return 0
    if result.data:
        print(json.dumps(result.data, indent=2, default=str))
    print(f"Failed: {'; '.join(result.errors)}", file=sys.stderr)
    return 1


def cmd_config_check(args: argparse.Namespace) -> int:
    config = _load_config(args)
    errors = config.validate(write=True, pin=True)
    print(json.dumps({
        "rpc_url": bool(config.rpc_url),
        "contract_address": config.contract_address,
        "chain_id": config.chain_id,
        "from_block": config.from_block,
        "gateway": config.gateway_base,
        "signer": bool(config.private_key),
        "pinning": bool(config.pinata_jwt),
        "errors": errors,
    }, indent=2))
    return 0 if not errors else 1


def cmd_gateway_url(args: argparse.Namespace) -> int:
    config = _load_config(args)
    try:
        print(IpfsStore(config).resolve(args.locator))
    except PortfolioError as e:
        print(f"Failed: {e}", file=sys.stderr)
        return 1
    return 0


def cmd_create(args: argparse.Namespace) -> int:
    return _execute(
        args,
        lambda s: s.create_request(
            title=args.title,
            organizer=args.organizer,
            start_at=args.start,
            end_at=args.end,
            description=args.description,
        ),
        write=True,
        pin=True,
    )


def cmd_list_owner(args: argparse.Namespace) -> int:
    return _execute(args, lambda s: s.owner_portfolio(args.address))


def cmd_list_organizer(args: argparse.Namespace) -> int:
    return _execute(args, lambda s: s.organizer_queue(args.address))


def cmd_show(args: argparse.Namespace) -> int:
    return _execute(args, lambda s: s.get_request(args.id))


def cmd_validate(args: argparse.Namespace) -> int:
    return _execute(args, lambda s: s.validate(args.id))


def cmd_confirm(args: argparse.Namespace) -> int:
    return _execute(args, lambda s: s.confirm(args.id, args.result_uri), write=True)


def cmd_reject(args: argparse.Namespace) -> int:
    return _execute(args, lambda s: s.reject(args.id, args.reason), write=True, pin=True)


def cmd_verify_reason(args: argparse.Namespace) -> int:
    return _execute(args, lambda s: s.verify_reason(args.id, args.digest))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="portfolio",
        description="Portfolio — content-addressed attestation CLI",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Path to a .env file (default: ./.env if present)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("config-check", help="Show which settings are present")

    p_gw = sub.add_parser("gateway-url", help="Map an ipfs:// locator to its gateway URL")
    p_gw.add_argument("locator", help="ipfs://<cid>[/path]")

    p_create = sub.add_parser("create", help="Pin a document and submit a request")
    p_create.add_argument("--title", required=True, help="Event title")
    p_create.add_argument("--organizer", required=True, help="Organizer address (0x...)")
    p_create.add_argument("--start", required=True, type=date.fromisoformat, help="Start date YYYY-MM-DD")
    p_create.add_argument("--end", required=True, type=date.fromisoformat, help="End date YYYY-MM-DD")
    p_create.add_argument("--description", required=True, help="Short description")

    p_owner = sub.add_parser("list-owner", help="Show an owner's requests by status")
    p_owner.add_argument("--address", required=True, help="Owner address")

    p_org = sub.add_parser("list-organizer", help="Show requests pending an organizer")
    p_org.add_argument("--address", required=True, help="Organizer address")

    p_show = sub.add_parser("show", help="Read a single request")
    p_show.add_argument("--id", required=True, type=int, help="Request ID")

    p_val = sub.add_parser("validate", help="Verify a request's content against its hash")
    p_val.add_argument("--id", required=True, type=int, help="Request ID")

    p_conf = sub.add_parser("confirm", help="Verify, then confirm a request")
    p_conf.add_argument("--id", required=True, type=int, help="Request ID")
    p_conf.add_argument("--result-uri", default="", help="Optional ipfs:// result locator")

    p_rej = sub.add_parser("reject", help="Reject a request with a pinned reason")
    p_rej.add_argument("--id", required=True, type=int, help="Request ID")
    p_rej.add_argument("--reason", required=True, help="Rejection reason text")

    p_vr = sub.add_parser("verify-reason", help="Check a reason document against its digest")
    p_vr.add_argument("--id", required=True, type=int, help="Request ID")
    p_vr.add_argument("--digest", required=True, help="Recorded reason digest (0x...)")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    commands = {
        "config-check": cmd_config_check,
        "gateway-url": cmd_gateway_url,
        "create": cmd_create,
        "list-owner": cmd_list_owner,
        "list-organizer": cmd_list_organizer,
        "show": cmd_show,
        "validate": cmd_validate,
        "confirm": cmd_confirm,
        "reject": cmd_reject,
        "verify-reason": cmd_verify_reason,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    try:
        return handler(args)
    except PortfolioError as e:
        print(f"Failed: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
