from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import signal
import sys
from pathlib import Path

from llm_limits.core.config.settings import get_settings
from llm_limits.core.config.store import build_config_store, read_store_settings
from llm_limits.core.usage.types import AggregatedSnapshot
from llm_limits.main import UsageMonitor, lifespan
from llm_limits.modules.usage.schemas import snapshot_to_payload

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Poll AI usage quotas and print normalized snapshots.")
    parser.add_argument("--store", type=Path, default=None, help="Path to the JSON configuration store.")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("poll", help="Poll on the configured interval (default).")
    subparsers.add_parser("once", help="Run a single aggregation pass.")
    session = subparsers.add_parser("set-claude-session", help="Store a captured claude.ai session.")
    session.add_argument("--cookie", required=True)
    session.add_argument("--org-id", default=None)

    return parser.parse_args(argv)


def _configure_logging(debug: bool) -> None:
    level = logging.DEBUG if debug else getattr(logging, get_settings().log_level)
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def _print_snapshot(snapshot: AggregatedSnapshot) -> None:
    print(json.dumps(snapshot_to_payload(snapshot)), flush=True)


def _warn_if_unconfigured(monitor: UsageMonitor) -> None:
    if monitor.settings.needs_setup():
        logger.warning("No provider is configured yet; only CLI credentials will be polled")


async def _poll(store: Path | None) -> None:
    stop = asyncio.Event()
    async with lifespan(store_path=store, consumer=_print_snapshot) as monitor:
        _warn_if_unconfigured(monitor)
        loop = asyncio.get_running_loop()
        with contextlib.suppress(NotImplementedError, AttributeError):
            loop.add_signal_handler(signal.SIGUSR1, monitor.refresh_now)
            loop.add_signal_handler(signal.SIGTERM, stop.set)
        await stop.wait()


async def _once(store: Path | None) -> None:
    async with lifespan(store_path=store, consumer=_print_snapshot, start_polling=False) as monitor:
        _warn_if_unconfigured(monitor)
        await monitor.aggregator.run_pass()


async def _set_claude_session(store: Path | None, cookie: str, org_id: str | None) -> int:
    async with lifespan(store_path=store, start_polling=False) as monitor:
        saved = await monitor.settings.save_claude_session(cookie, org_id)
    return 0 if saved else 1


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    _configure_logging(args.debug or read_store_settings(build_config_store(args.store)).debug_mode)

    exit_code = 0
    try:
        if args.command == "once":
            asyncio.run(_once(args.store))
        elif args.command == "set-claude-session":
            exit_code = asyncio.run(_set_claude_session(args.store, args.cookie, args.org_id))
        else:
            asyncio.run(_poll(args.store))
    except KeyboardInterrupt:
        pass
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
