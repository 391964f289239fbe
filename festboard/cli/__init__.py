#!/usr/bin/env python3
"""
Festival Results Board CLI

Usage:
    python -m festboard.cli <command> [options]

Commands:
    serve       Run the API server (uvicorn)
    db          Database operations (init, seed, cleanup)
    display     Run a headless display client against a server

Environment:
    DATABASE_URL      SQLAlchemy async URL (default: sqlite+aiosqlite:///./festboard.db)
    DISPLAY_BASE_URL  Server the display client connects to
    LOG_LEVEL         DEBUG|INFO|WARNING|ERROR
"""
import sys
import argparse
import logging
from typing import Optional

from festboard import __version__
from festboard.cli.db_commands import DbCommand
from festboard.cli.display_commands import DisplayCommand
from festboard.cli.serve_commands import ServeCommand
from festboard.config.settings import settings


def setup_logging(level: str = "INFO") -> None:
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="festboard",
        description="Festival Results Board CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s db init
  %(prog)s db seed --demo
  %(prog)s serve --port 8000
  %(prog)s display run --base-url http://localhost:8000
        """
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    parser.add_argument(
        "--log-level",
        default=settings.LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be done without executing"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Server
    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", default=settings.HOST, help="Bind address")
    serve_parser.add_argument("--port", type=int, default=settings.PORT, help="Bind port")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")

    # Database commands
    db_parser = subparsers.add_parser("db", help="Database operations")
    db_subparsers = db_parser.add_subparsers(dest="db_action")

    # db init
    db_subparsers.add_parser("init", help="Create missing tables")

    # db seed
    seed_parser = db_subparsers.add_parser("seed", help="Seed houses and example events")
    seed_parser.add_argument("--demo", action="store_true", help="Also create demo events with random results")

    # db cleanup
    db_subparsers.add_parser("cleanup", help="Remove demo results and demo events")

    # Display commands
    display_parser = subparsers.add_parser("display", help="Display client operations")
    display_subparsers = display_parser.add_subparsers(dest="display_action")

    # display run
    run_parser = display_subparsers.add_parser("run", help="Follow the live board and log every change")
    run_parser.add_argument("--base-url", default=settings.DISPLAY_BASE_URL, help="Server base URL")
    run_parser.add_argument(
        "--single-track",
        action="store_true",
        help="One track for all levels instead of one per level"
    )

    return parser


def main(args: Optional[list] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    if not parsed.command:
        parser.print_help()
        return 1

    # Setup logging
    setup_logging(parsed.log_level)

    # Route to appropriate command handler
    command_map = {
        "serve": ServeCommand,
        "db": DbCommand,
        "display": DisplayCommand,
    }

    if parsed.command in command_map:
        handler = command_map[parsed.command](dry_run=parsed.dry_run)
        return handler.execute(parsed)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
