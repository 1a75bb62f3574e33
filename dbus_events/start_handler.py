"""
D-Bus Events Handler Startup Script

Loads the rule configuration, subscribes to every signal on the bus and
routes them until the bus goes away.
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from .configs import ConfigManager
from .core import (
    ActionDispatcher,
    BusConnection,
    BusFatalError,
    BusKind,
    ConfigError,
    MessageShapeError,
    Router,
    RouterMode,
)
from .tools import ShellRunner

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")

logger = logging.getLogger("dbus_events")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dbus-events",
        description="Run shell commands or signal processes when D-Bus signals match configured rules.",
    )
    parser.add_argument(
        "-m", "--mode",
        choices=[m.value for m in RouterMode],
        default=RouterMode.EVENT.value,
        help="event: dispatch matching rules; watch: print every signal",
    )
    parser.add_argument(
        "-b", "--bus",
        choices=[k.value for k in BusKind],
        default=BusKind.SESSION.value,
        help="bus to listen on (default: session)",
    )
    parser.add_argument("-c", "--config", type=Path, default=None, help="rule file (YAML)")
    parser.add_argument(
        "--max-concurrent-actions",
        type=int,
        default=None,
        help="limit concurrently running exec actions (default: unlimited)",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=os.environ.get("DBUS_EVENTS_LOG_LEVEL", "INFO"),
        help="logging level (default: $DBUS_EVENTS_LOG_LEVEL or INFO)",
    )
    return parser


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


async def main(argv: Optional[List[str]] = None, connection=None) -> int:
    """Entry point for the router. Returns the process exit code."""
    args = build_parser().parse_args(argv)
    mode = RouterMode(args.mode)

    # Step 1: Load configuration
    config = ConfigManager(args.config)
    try:
        rules = config.load_rule_set()
    except ConfigError as e:
        logger.error(f"Invalid configuration in {config.config_path}: {e}")
        return 1
    if rules is None:
        logger.warning(f"Config {config.config_path} is empty, exiting.")
        return 0

    # Step 2: Subscribe and route
    runner = ShellRunner(max_concurrent=args.max_concurrent_actions)
    connection = connection or BusConnection(BusKind(args.bus))
    router = Router(connection, rules, ActionDispatcher(runner), mode=mode)
    try:
        await router.run()
    except BusFatalError as e:
        logger.error(f"Fatal bus error: {e}")
        return 1
    except MessageShapeError as e:
        logger.error(f"Malformed message from bus: {e}")
        return 1
    finally:
        await runner.close()
        disconnect = getattr(connection, "disconnect", None)
        if disconnect is not None:
            await disconnect()
    return 0


def run(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args, _ = parser.parse_known_args(argv)
    # choices are not applied to the environment default
    if args.log_level not in LOG_LEVELS:
        parser.error(f"invalid log level {args.log_level!r} (choose from {', '.join(LOG_LEVELS)})")
    configure_logging(args.log_level)
    try:
        exit_code = asyncio.run(main(argv))
        sys.exit(exit_code)
    except KeyboardInterrupt:
        logger.info("Received shutdown signal, stopping...")
        sys.exit(0)


if __name__ == "__main__":
    run()
