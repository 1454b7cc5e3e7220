#!/usr/bin/env python
"""Command-line entry point for Kiro Notes."""
import argparse
import atexit
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from kiro_notes import __version__, commands
from kiro_notes.config import config
from kiro_notes.exceptions import KiroError
from kiro_notes.observability import configure_logging, is_logging_configured
from kiro_notes.store import close_store, open_store


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one subcommand per store command."""
    parser = argparse.ArgumentParser(prog="kiro-notes", description="Kiro note store")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--database-path",
        help="SQLite database file path",
        type=str,
        default=os.environ.get("KIRO_DATABASE_PATH")
    )
    parser.add_argument(
        "--log-level",
        help="Logging level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=os.environ.get("KIRO_LOG_LEVEL", "WARNING")
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("search", help="Search notes (supports y:YYYY and m:MM/YY)")
    p.add_argument("query", nargs="?", default="")
    p.add_argument("--limit", type=int, default=None)

    p = sub.add_parser("get", help="Show one note")
    p.add_argument("id", type=int)

    p = sub.add_parser("create", help="Create a note")
    p.add_argument("title")
    p.add_argument("body")

    p = sub.add_parser("update", help="Replace a note's body, or title and body")
    p.add_argument("id", type=int)
    p.add_argument("body")
    p.add_argument("--title", default=None)

    p = sub.add_parser("delete", help="Delete notes by id")
    p.add_argument("ids", type=int, nargs="+")

    sub.add_parser("count", help="Count stored notes")

    p = sub.add_parser("seed", help="Insert sample notes")
    p.add_argument("count", type=int)

    p = sub.add_parser("import", help="Import text files")
    p.add_argument("paths", nargs="+")

    p = sub.add_parser("export", help="Export notes as Markdown")
    p.add_argument("ids", type=int, nargs="+")
    p.add_argument("--target-dir", default=None)

    return parser


def run_command(args: argparse.Namespace) -> commands.CommandResult:
    """Dispatch parsed arguments to the matching command."""
    if args.command == "search":
        return commands.search(args.query, args.limit)
    if args.command == "get":
        return commands.get_note(args.id)
    if args.command == "create":
        return commands.create_note(args.title, args.body)
    if args.command == "update":
        if args.title is not None:
            return commands.update_note_full(args.id, args.title, args.body)
        return commands.update_note(args.id, args.body)
    if args.command == "delete":
        return commands.delete_notes(args.ids)
    if args.command == "count":
        return commands.get_note_count()
    if args.command == "seed":
        return commands.seed_notes(args.count)
    if args.command == "import":
        return commands.import_files(args.paths)
    if args.command == "export":
        return commands.export_notes(args.ids, args.target_dir)
    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[List[str]] = None) -> int:
    """Run one command against the note store and print the JSON result."""
    args = build_parser().parse_args(argv)
    if args.database_path:
        config.database_path = Path(args.database_path)

    log_level = getattr(logging, args.log_level.upper(), logging.WARNING)
    if not is_logging_configured():
        try:
            configure_logging(level=log_level, console=True)
        except OSError as e:
            # Fall back to basic console logging if file logging fails
            logging.basicConfig(level=log_level)
            logging.getLogger(__name__).warning(f"Failed to configure file logging: {e}")

    logger = logging.getLogger(__name__)

    try:
        open_store(config.database_path)
    except KiroError as e:
        logger.error(f"Failed to open note store: {e}")
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    atexit.register(close_store)

    result = run_command(args)
    print(result.model_dump_json(indent=2))
    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(main())
