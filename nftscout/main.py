#!/usr/bin/env python3
"""Command line entry point for the NFTScout minting bot."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import sys
from pathlib import Path

from sqlalchemy.exc import SQLAlchemyError

from . import http
from .config import ScoutConfig, load_config
from .env import load_env_file, placeholder_vars
from .errors import ConfigError, StartupError
from .ledger import Ledger
from .logging_utils import setup_logging
from .pipeline import PipelineCoordinator
from .providers import build_candidate_source, build_collection_source
from .wallet import Wallet

log = logging.getLogger(__name__)

EXIT_FATAL = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="nftscout", description="Discover and mint new NFT collections")
    parser.add_argument("--env-file", default=".env", help="Environment file to load before reading configuration")
    sub = parser.add_subparsers(dest="command")
    sub.add_parser("run", help="Run the discovery/selection/submission pipeline (default)")
    history = sub.add_parser("history", help="Show recently stored collections and transactions")
    history.add_argument("--limit", type=int, default=20, help="Rows to show per table")
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    args = build_parser().parse_args(argv)
    if args.command is None:
        args.command = "run"
    return args


def _install_signal_handlers(loop: asyncio.AbstractEventLoop, coordinator: PipelineCoordinator) -> None:
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, coordinator.cancel)


async def run_pipeline(config: ScoutConfig) -> None:
    """Connect collaborators and run the pipeline until a shutdown signal arrives.

    Raises :class:`StartupError` when the database or RPC endpoint cannot be
    reached; nothing is started in that case.
    """

    http.configure(config.http_timeout)
    try:
        ledger = Ledger(config.database_url)
    except (SQLAlchemyError, ValueError) as exc:
        raise StartupError(f"invalid database url: {exc}") from exc
    try:
        await ledger.connect()
        wallet = Wallet(config.private_key, config.rpc_url)
        await wallet.connect()

        coordinator = PipelineCoordinator(
            config,
            collections=build_collection_source(config),
            candidates=build_candidate_source(config),
            gateway=ledger,
            signer=wallet,
        )
        _install_signal_handlers(asyncio.get_running_loop(), coordinator)
        log.info("NFTScout bot started (wallet=%s)", wallet.address)
        await coordinator.run()
    finally:
        await http.close_session()
        await ledger.close()


async def show_history(config: ScoutConfig, limit: int) -> None:
    async with Ledger(config.database_url) as ledger:
        collections = await ledger.recent_collections(limit)
        transactions = await ledger.recent_transactions(limit)
        errors = await ledger.recent_errors(limit)

    print(f"Collections ({len(collections)}):")
    for row in collections:
        print(f"  {row['contract_address']}  {row['name']}  [{row['source']}]")
    print(f"Transactions ({len(transactions)}):")
    for record in transactions:
        print(
            f"  {record.transaction_hash}  {record.contract_address}  "
            f"{record.name}  qty={record.unit_count}"
        )
    print(f"Errors ({len(errors)}):")
    for entry in errors:
        print(f"  {entry.timestamp:%Y-%m-%d %H:%M:%S}  [{entry.kind}]  {entry.context}  {entry.message}")


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    load_env_file(Path(args.env_file))
    try:
        config = load_config()
    except ConfigError as exc:
        setup_logging()
        log.error("%s", exc)
        return EXIT_FATAL

    setup_logging(config.log_level, json_format=config.log_json, log_file=config.log_file)
    flagged = placeholder_vars(["RPC_URL", "OPENSEA_API_KEY", "ALCHEMY_API_KEY", "MINT_FEED_URL"])
    if flagged:
        log.warning("Placeholder values configured for: %s", ", ".join(flagged))
    log.info("Loaded configuration %r", config)

    try:
        if args.command == "history":
            asyncio.run(show_history(config, max(1, args.limit)))
        else:
            asyncio.run(run_pipeline(config))
    except StartupError as exc:
        log.error("Startup failed: %s", exc)
        return EXIT_FATAL
    except KeyboardInterrupt:
        log.info("Interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
