"""Copy trade CLI entrypoint.

    copytrade check-config            validate COPYTRADE_* settings
    copytrade watch [--once] [--testnet]
                                      mirror a trader in dry-run mode
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from typing import Any, Dict, List, Optional

from copytrade.config import load_config_from_env
from copytrade.copy_trading import PassResult, SyncScheduler
from copytrade.errors import ConfigurationInvalid, CopyTradeError
from copytrade.logging_config import get_logger, setup_logging
from copytrade.venues import BUNDLED_VENUES
from copytrade.venues.hyperliquid import HyperliquidPositionSource

logger = get_logger(__name__)


def _print_status(level: str, message: str) -> None:
    print(f"[{level}] {message}")


def _overrides(args: argparse.Namespace) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    if args.trader:
        values["trader_address"] = args.trader
    if args.follower:
        values["follower_address"] = args.follower
    if args.interval:
        values["sync_interval_seconds"] = args.interval
    if args.copy_balance:
        values["copy_balance"] = args.copy_balance
    return values


def log_pass(result: PassResult) -> None:
    """Pass listener writing one structured line per pass"""
    logger.info(
        f"Pass {result.pass_number} {result.status.value}",
        actions=result.actions_executed,
        errors=len(result.errors),
        dropped=len(result.dropped),
        equity=result.follower_equity,
    )


def cmd_check_config(args: argparse.Namespace) -> int:
    try:
        config = load_config_from_env(env_file=args.env_file, **_overrides(args))
    except CopyTradeError as e:
        _print_status("FAIL", e.message)
        return 1

    for name, value in config.model_dump().items():
        _print_status("OK", f"{name} = {getattr(value, 'value', value)}")
    return 0


def _require_bundled_venues(config) -> None:
    unsupported = [
        name for name in ("trader_venue", "follower_venue")
        if getattr(config, name) not in BUNDLED_VENUES
    ]
    if unsupported:
        venues = ", ".join(f"{name}={getattr(config, name).value}" for name in unsupported)
        raise ConfigurationInvalid(f"No bundled position source for {venues}", fields=unsupported)


async def _watch(args: argparse.Namespace) -> int:
    # No live order executor ships with the package, so the CLI only watches
    config = load_config_from_env(env_file=args.env_file, dry_run=True, **_overrides(args))
    _require_bundled_venues(config)

    async with HyperliquidPositionSource(testnet=args.testnet) as source:
        scheduler = SyncScheduler(source)
        scheduler.add_listener(log_pass)

        if args.once:
            scheduler.configure(config)
            result = await scheduler.run_pass()
            return 0 if not result.errors else 1

        stopped = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stopped.set)
            except NotImplementedError:
                # Windows event loops
                pass

        handle = scheduler.start(config)
        try:
            await stopped.wait()
        finally:
            scheduler.stop()
            await handle.wait_idle()

        logger.info("Session finished", **scheduler.get_stats())
    return 0


def cmd_watch(args: argparse.Namespace) -> int:
    try:
        return asyncio.run(_watch(args))
    except CopyTradeError as e:
        _print_status("FAIL", e.message)
        return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="copytrade", description="Mirror a trader's perpetual positions")
    parser.add_argument("--env-file", default=".env")
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument("--log-dir", default="logs")

    shared = argparse.ArgumentParser(add_help=False)
    shared.add_argument("--trader", help="trader address (overrides COPYTRADE_TRADER_ADDRESS)")
    shared.add_argument("--follower", help="follower address (overrides COPYTRADE_FOLLOWER_ADDRESS)")
    shared.add_argument("--interval", type=float, help="seconds between passes")
    shared.add_argument("--copy-balance", type=float, help="capital to scale against")

    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check-config", parents=[shared], help="validate settings and exit")
    check.set_defaults(func=cmd_check_config)

    watch = sub.add_parser("watch", parents=[shared], help="sync in dry-run mode until interrupted")
    watch.add_argument("--once", action="store_true", help="run a single pass and exit")
    watch.add_argument("--testnet", action="store_true", help="read accounts from the Hyperliquid testnet")
    watch.set_defaults(func=cmd_watch)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(log_dir=args.log_dir, level=args.log_level)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
