#!/usr/bin/env python3
"""Repop Watcher: tails a game log and reports kills to the collector."""

import argparse
import asyncio
import logging
import os
import signal
import sys

from repop.config import Config, load_config, load_yaml_config, save_yaml_config
from repop.models import ConnectionState, DebugKind
from repop.status import StatusFeed
from repop.watcher import LogWatcher

logger = logging.getLogger(__name__)


def build_cli_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Repop log watcher")
    parser.add_argument(
        "--config", default="repop.yml",
        help="Path to YAML settings file (default: repop.yml)",
    )
    parser.add_argument("--server-url", dest="server_url", help="Collector base URL")
    parser.add_argument("--api-key", dest="api_key", help="Collector API key")
    parser.add_argument("--log-path", dest="log_path", help="Log file to watch")
    parser.add_argument(
        "--poll-interval", dest="poll_interval", type=float,
        help="Seconds between polls (default: 1.0)",
    )
    parser.add_argument("--log-level", dest="log_level", help="Logging level (default: INFO)")
    parser.add_argument(
        "--save", action="store_true",
        help="Write server/key/path to the settings file and exit",
    )
    parser.add_argument(
        "--debug", action="store_true",
        help="Print the debug console feed",
    )
    return parser


def _log_level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


def _print_status(state: ConnectionState) -> None:
    print(f"[status] {state.message}", file=sys.stderr, flush=True)


def _print_debug(message: str, kind: DebugKind) -> None:
    print(f"[{kind.value}] {message}", file=sys.stderr, flush=True)


async def run(config: Config, status: StatusFeed) -> int:
    """Start watching and block until SIGINT/SIGTERM. Returns the exit code."""
    watcher = LogWatcher(status)
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows event loops lack add_signal_handler
            signal.signal(sig, lambda signum, frame: loop.call_soon_threadsafe(stop.set))

    try:
        outcome = await watcher.start_watching(config)
        if outcome is not ConnectionState.CONNECTED:
            logger.error("Could not start watching: %s", outcome.message)
            return 1
        logger.info("Repop watcher running. Press Ctrl+C to stop.")
        await stop.wait()
        logger.info("Shutdown signal received, stopping...")
        return 0
    finally:
        await watcher.aclose()


def main(argv: list[str] | None = None) -> int:
    args = build_cli_parser().parse_args(argv)

    # Settings-file warnings need a handler, so configure logging before
    # reading it and apply the file's log_level afterwards.
    early_level = args.log_level or os.environ.get("REPOP_LOG_LEVEL") or "INFO"
    logging.basicConfig(
        level=_log_level(early_level),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        stream=sys.stderr,
    )
    config = load_config(args, load_yaml_config(args.config))
    logging.getLogger().setLevel(_log_level(config.log_level))

    status = StatusFeed()
    status.subscribe_status(_print_status)
    if args.debug:
        status.subscribe_debug(_print_debug)

    if args.save:
        save_yaml_config(args.config, config)
        status.signal(ConnectionState.SAVED)
        return 0

    return asyncio.run(run(config, status))


if __name__ == "__main__":
    sys.exit(main())
