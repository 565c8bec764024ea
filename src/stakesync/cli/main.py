#!/usr/bin/env python3
"""
stakesync CLI - Reconcile ledger registration and stake for this node.

Commands:
  stakesync reconcile      Run one reconciliation pass over all configured actors
  stakesync status         Show ledger state for configured actors (read-only)

Environment Variables:
  STAKESYNC_CONFIG_JSON         Inline JSON configuration
  STAKESYNC_CONFIG_FILE_PATH    Path to a JSON configuration file
  STAKESYNC_LOG_LEVEL           Log level when --verbose is not given (default: INFO)

Exit codes:
  0  all actors converged (reconcile) / status read ok
  1  at least one actor not converged, or ledger unreachable (status)
  2  configuration error

Example:
  # One pass, e.g. from a systemd timer
  stakesync reconcile --config /etc/stakesync/config.json

  # Inspect without submitting anything
  stakesync status --json
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import Any

from ..config import UserConfig, load_config, load_env_file
from ..core import defaults
from ..core.exceptions import ConfigError, LedgerError
from ..ledger.client import LedgerClient
from ..ledger.models import Role
from ..ledger.protocols import LedgerReader
from ..reconcile.engine import ReconciliationEngine
from ..reconcile.runner import PassReport, run_reconciliation_pass

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    if verbose:
        level = logging.DEBUG
    else:
        level = getattr(logging, os.environ.get(defaults.LOG_LEVEL_ENV, "INFO").upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load(args: argparse.Namespace) -> UserConfig | None:
    try:
        return load_config(args.config)
    except ConfigError as e:
        print(f"❌ {e}", file=sys.stderr)
        return None


# =============================================================================
# COMMANDS
# =============================================================================


def cmd_reconcile(args: argparse.Namespace) -> int:
    """Run one reconciliation pass."""
    config = _load(args)
    if config is None:
        return 2

    client = LedgerClient.from_wallet(config.wallet)
    engine = ReconciliationEngine(reader=client, writer=client)
    report = asyncio.run(
        run_reconciliation_pass(engine, config.wallet.address, config.workers, config.reputers)
    )

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print_report(report)

    return 0 if report.all_converged else 1


def print_report(report: PassReport) -> None:
    """Human-readable pass summary."""
    print(f"Reconciliation for {report.address}: {report.converged_count}/{len(report.results)} converged\n")
    for result in report.results:
        icon = "✅" if result.converged else "❌"
        line = f"{icon} {result.role.value:<8} topic {result.topic_id:<6} {result.status.value}"
        if result.role == Role.REPUTER and result.stake is not None:
            line += f"  stake {result.stake}/{result.min_stake}"
        if result.write_count:
            line += f"  writes {result.write_count}"
        print(line)
        if result.detail:
            print(f"   {result.detail}")


async def collect_status(reader: LedgerReader, config: UserConfig) -> dict[str, Any]:
    """Read ledger state for every configured actor without writing."""
    address = config.wallet.address
    params = await reader.get_chain_params()
    balance = await reader.get_balance(address)

    actors: list[dict[str, Any]] = []
    for worker in config.workers:
        actors.append({
            "role": Role.WORKER.value,
            "topic_id": worker.topic_id,
            "registered": await reader.is_registered(worker.topic_id, Role.WORKER, address),
        })
    for reputer in config.reputers:
        stake = await reader.get_stake(reputer.topic_id, address)
        actors.append({
            "role": Role.REPUTER.value,
            "topic_id": reputer.topic_id,
            "registered": await reader.is_registered(reputer.topic_id, Role.REPUTER, address),
            "stake": str(stake),
            "min_stake": str(reputer.min_stake),
            "stake_satisfied": stake >= reputer.min_stake,
        })

    return {
        "address": address,
        "balance": str(balance),
        "registration_fee": str(params.registration_fee),
        "actors": actors,
    }


def cmd_status(args: argparse.Namespace) -> int:
    """Show ledger state for configured actors."""
    config = _load(args)
    if config is None:
        return 2

    client = LedgerClient.from_wallet(config.wallet)
    try:
        status = asyncio.run(collect_status(client, config))
    except LedgerError as e:
        print(f"❌ Could not read ledger: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(status, indent=2))
        return 0

    print(f"Address: {status['address']}")
    print(f"Balance: {status['balance']}  (registration fee {status['registration_fee']})\n")
    if not status["actors"]:
        print("No actors configured.")
        return 0
    for actor in status["actors"]:
        icon = "🟢" if actor["registered"] else "🔴"
        line = f"{icon} {actor['role']:<8} topic {actor['topic_id']:<6} "
        line += "registered" if actor["registered"] else "not registered"
        if actor["role"] == Role.REPUTER.value:
            mark = "ok" if actor["stake_satisfied"] else "below minimum"
            line += f"  stake {actor['stake']}/{actor['min_stake']} ({mark})"
        print(line)
    return 0


# =============================================================================
# PARSER
# =============================================================================


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="stakesync",
        description="Keep ledger registration and stake in line with local config",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    for name, help_text in (
        ("reconcile", "Run one reconciliation pass over all configured actors"),
        ("status", "Show ledger state for configured actors (read-only)"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument(
            "--config",
            "-c",
            help="Path to JSON config (overrides environment)",
        )
        sub.add_argument(
            "--json",
            action="store_true",
            help="Output as JSON",
        )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    load_env_file()
    parser = create_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if not args.command:
        parser.print_help()
        return 0

    commands = {
        "reconcile": cmd_reconcile,
        "status": cmd_status,
    }
    return commands[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
