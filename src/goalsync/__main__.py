# src/goalsync/__main__.py
"""
Command line entry point for goalsync.

Usage:
    python -m goalsync [-v|-vv] run [--config PATH]
    python -m goalsync submit [--goal N] [--config PATH]
    python -m goalsync daystamp [--at ISO] [--config PATH]

``run`` keeps the service alive until interrupted (Ctrl+C).  ``submit``
queues one goal (1-based, as in the ``submit-datapoint-goal-N`` commands)
or every goal and processes the queue before exiting.  ``daystamp``
prints the day-stamp for now, or for the ``--at`` timestamp.
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from typing import List, Optional

from .config import SyncConfig, load_config
from .exceptions import GoalSyncError
from .logging_config import configure_logging, get_log_file_path, set_component_level, set_console_level
from .service import GoalSync

logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the goalsync CLI."""
    parser = argparse.ArgumentParser(
        prog="goalsync",
        description="Push document metrics to remote goal trackers",
    )
    parser.add_argument(
        "--config", "-c",
        help="Path to configuration file",
        default=None
    )
    parser.add_argument(
        "--verbose", "-v",
        help="Log to the console (-vv for debug output)",
        action="count",
        default=0
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("run", help="Run the sync service until interrupted")

    submit_parser = subparsers.add_parser("submit", help="Submit datapoints once and exit")
    submit_parser.add_argument(
        "--goal", "-g",
        help="1-based goal number (default: all goals)",
        type=int,
        default=None
    )

    daystamp_parser = subparsers.add_parser("daystamp", help="Print the current day-stamp")
    daystamp_parser.add_argument(
        "--at",
        help="ISO 8601 timestamp with offset (default: now)",
        default=None
    )

    return parser


def _setup_logging(config: SyncConfig, verbose: int) -> None:
    log_config = dict(config.logging)
    if verbose:
        log_config["console_enabled"] = True
    configure_logging(app_name="goalsync", config=log_config)
    if verbose:
        set_console_level("DEBUG" if verbose > 1 else "INFO")
    if verbose > 1:
        set_component_level("goalsync", "DEBUG")


async def _run(config: SyncConfig) -> None:
    sync = await GoalSync.create(config)
    await sync.start()
    print(f"goalsync running with {len(config.goals)} goal(s). Press Ctrl+C to stop.")
    log_path = get_log_file_path()
    if log_path is not None:
        print(f"Logging to {log_path}")
    try:
        await asyncio.Event().wait()
    finally:
        await sync.stop()


async def _submit(config: SyncConfig, goal_number: Optional[int]) -> int:
    sync = await GoalSync.create(config)
    try:
        index = None if goal_number is None else goal_number - 1
        results = await sync.run_once(index)
    finally:
        await sync.stop()

    for result in results:
        print(json.dumps(result.to_dict()))
    return 0 if results else 1


def cmd_run(config: SyncConfig) -> int:
    try:
        asyncio.run(_run(config))
    except KeyboardInterrupt:
        logger.info("goalsync interrupted by user (Ctrl+C)")
    except GoalSyncError as e:
        logger.error(f"goalsync could not run: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


def cmd_submit(config: SyncConfig, goal_number: Optional[int]) -> int:
    if goal_number is not None and not 1 <= goal_number <= len(config.goals):
        print(f"Error: no goal number {goal_number} ({len(config.goals)} configured)", file=sys.stderr)
        return 2
    try:
        return asyncio.run(_submit(config, goal_number))
    except GoalSyncError as e:
        logger.error(f"Submit failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_daystamp(config: SyncConfig, at: Optional[str]) -> int:
    if at is None:
        now = datetime.now(timezone.utc)
    else:
        try:
            now = datetime.fromisoformat(at)
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 2
        if now.tzinfo is None:
            print("Error: --at needs a UTC offset, e.g. 2024-03-01T07:00:00+00:00", file=sys.stderr)
            return 2

    boundary = config.boundary
    print(f"{boundary.stamp(now)} ({boundary.kind}, {config.timezone}, day ends {config.day_end})")
    return 0


def main(args: Optional[List[str]] = None) -> int:
    """
    Main entry point for the goalsync CLI.

    Args:
        args: Command line arguments (defaults to sys.argv)

    Returns:
        Exit code
    """
    parser = create_parser()
    parsed = parser.parse_args(args)

    if parsed.command is None:
        parser.print_help()
        return 0

    try:
        config = load_config(parsed.config)
    except GoalSyncError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    _setup_logging(config, parsed.verbose)

    if parsed.command == "run":
        return cmd_run(config)
    elif parsed.command == "submit":
        return cmd_submit(config, parsed.goal)
    elif parsed.command == "daystamp":
        return cmd_daystamp(config, parsed.at)
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
