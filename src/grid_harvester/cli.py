"""
Command-line interface for the application.

This module provides the main entry point for the CLI.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from grid_harvester import __version__
from grid_harvester.config import get_settings
from grid_harvester.errors import AuthError
from grid_harvester.flows.harvest import harvest_flow, retry_failed_flow
from grid_harvester.grid import expand_grid, grid_size, parse_axis
from grid_harvester.schemas import HarvestJob

# Exit code when a harvest finished but some points failed
EXIT_PARTIAL = 2


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="grid-harvester",
        description="Harvest authenticated JSON APIs across a parameter grid into one table",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("info", help="Show application info")

    # 'grid' command - preview the points a set of axes expands to
    grid_parser = subparsers.add_parser("grid", help="Preview a parameter grid")
    grid_parser.add_argument(
        "--axis",
        action="append",
        required=True,
        metavar="NAME=VALUES",
        help="Axis definition, e.g. week=1..18 or season=2021,2022 (repeatable)",
    )
    grid_parser.add_argument(
        "--limit",
        type=int,
        default=20,
        help="Number of points to print (default: 20)",
    )

    # 'harvest' command - run a job file
    harvest_parser = subparsers.add_parser("harvest", help="Run a harvest job")
    harvest_parser.add_argument("--job", type=Path, required=True, help="Job definition (JSON)")
    harvest_parser.add_argument(
        "--force",
        action="store_true",
        help="Harvest even if the stored table is still fresh",
    )

    # 'retry' command - re-run failed points of the stored run
    retry_parser = subparsers.add_parser("retry", help="Retry failed points of a stored run")
    retry_parser.add_argument("--job", type=Path, required=True, help="Job definition (JSON)")

    return parser


def configure_logging(debug: bool) -> None:
    settings = get_settings()
    level = logging.DEBUG if debug or settings.debug else settings.log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def load_job(path: Path) -> HarvestJob | None:
    """Load a job file, printing a message instead of raising on bad input."""
    try:
        return HarvestJob.from_file(path)
    except FileNotFoundError:
        print(f"Error: job file not found: {path}", file=sys.stderr)
    except (json.JSONDecodeError, ValidationError) as exc:
        print(f"Error: invalid job file {path}: {exc}", file=sys.stderr)
    return None


def cmd_info(_args: argparse.Namespace) -> int:
    """Handle the 'info' command."""
    settings = get_settings()
    print(f"Application: {settings.app_name}")
    print(f"Version: {__version__}")
    print(f"Environment: {settings.app_env}")
    print(f"Debug: {settings.debug}")
    print(f"Token URL: {settings.token_url or '(not set)'}")
    print(f"Credentials: {'configured' if settings.has_credentials else 'missing'}")
    print(f"Concurrency: {settings.concurrency}")
    print(f"Data dir: {settings.data_dir}")
    return 0


def cmd_grid(args: argparse.Namespace) -> int:
    """Handle the 'grid' command."""
    try:
        axes = [parse_axis(text) for text in args.axis]
        size = grid_size(axes)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Grid size: {size}")
    for point in expand_grid(axes)[: args.limit]:
        print(f"  {point}")
    if size > args.limit:
        print(f"  ... {size - args.limit} more")
    return 0


def cmd_harvest(args: argparse.Namespace) -> int:
    """Handle the 'harvest' command."""
    job = load_job(args.job)
    if job is None:
        return 1
    try:
        result = harvest_flow(job, force=args.force)
    except (AuthError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if result.get("failed"):
        print(f"{result['failed']} points failed; run 'grid-harvester retry --job {args.job}'")
        return EXIT_PARTIAL
    return 0


def cmd_retry(args: argparse.Namespace) -> int:
    """Handle the 'retry' command."""
    job = load_job(args.job)
    if job is None:
        return 1
    try:
        result = retry_failed_flow(job)
    except (AuthError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return EXIT_PARTIAL if result.get("failed") else 0


def main() -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        return 0

    configure_logging(args.debug)

    commands = {
        "info": cmd_info,
        "grid": cmd_grid,
        "harvest": cmd_harvest,
        "retry": cmd_retry,
    }

    handler = commands.get(args.command)
    if handler:
        return handler(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
