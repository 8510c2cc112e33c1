#!/usr/bin/env python3
"""
Reel - Media File Renamer

Command line driver: scan, match against TMDB, preview the plan and
apply it. ``--undo`` reverts the last applied batch.
"""
import argparse
import logging
import sqlite3
import sys
from pathlib import Path

from .batch import DEFAULT_MAX_CONCURRENCY, match_files
from .cache import Cache
from .cancellation import CancellationToken
from .history import RenameHistoryManager
from .matcher import Matcher
from .models import PlanStatus, RenamePlanEntry
from .planner import NamingTemplates, RenamePlan, execute, plan
from .provider import MetadataProvider
from .scanner import find_media_files
from .settings import SettingsManager
from .tmdb import TMDBClient, TMDBError

log = logging.getLogger(__name__)


def print_diff(old_name: str, new_name: str) -> None:
    """Print a rename preview line."""
    print("Video:")
    print(f"  {old_name}")
    print(f"  -> {new_name}")


def print_skip(old_name: str, reason: str) -> None:
    """Print skip message."""
    print("Video:")
    print(f"  [SKIP] {old_name}")
    print(f"         Reason: {reason}")


def print_error(old_name: str, error: str) -> None:
    """Print error message."""
    print("Video:")
    print(f"  [ERROR] {old_name}")
    print(f"          {error}")


def print_entry(entry: RenamePlanEntry) -> None:
    old_name = entry.source.name
    if entry.status in (PlanStatus.PENDING, PlanStatus.APPLIED):
        print_diff(old_name, entry.target.name)
    elif entry.status == PlanStatus.FAILED:
        print_error(old_name, entry.reason or "Unknown error")
    elif entry.status != PlanStatus.UNCHANGED:
        print_skip(old_name, entry.reason or entry.status.value)


def confirm_proceed(count: int) -> bool:
    """
    Ask user to confirm proceeding with rename.

    Args:
        count: Number of files to rename

    Returns:
        True if user confirms, False otherwise
    """
    while True:
        response = input(f"\nProceed with renaming {count} files? (y/n): ").strip().lower()
        if response in ('y', 'yes'):
            return True
        if response in ('n', 'no'):
            return False
        print("Please enter 'y' or 'n'.")


def print_summary(executed: RenamePlan) -> None:
    counts = executed.summary()
    renamed = counts[PlanStatus.APPLIED.value]
    errors = counts[PlanStatus.FAILED.value]
    skipped = len(executed) - renamed - errors
    print()
    print("-" * 50)
    print(f"Renamed: {renamed} | Skipped: {skipped} | Errors: {errors}")


def undo_last(history: RenameHistoryManager) -> int:
    """Revert the most recent batch recorded in the history."""
    tx = history.get_last_undoable()
    if tx is None:
        print("Nothing to undo.")
        return 0

    print(f"Undoing batch {tx.batch_id} ({len(tx.items)} file(s)) in {tx.folder}")
    undo = tx.undo_plan()
    for entry in undo:
        print_entry(entry)

    executed = execute(undo)
    print_summary(executed)

    # A partially reverted batch stays undoable for the files left over
    if not executed.with_status(PlanStatus.FAILED) and not executed.with_status(PlanStatus.WOULD_COLLIDE):
        history.mark_reverted(tx.batch_id)
    return 0 if not executed.with_status(PlanStatus.FAILED) else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reel",
        description="Rename media files using TMDB metadata."
    )

    parser.add_argument(
        "path",
        type=Path,
        nargs="?",
        help="File or directory to process"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be renamed without actually renaming"
    )
    parser.add_argument(
        "--recursive", "-r",
        action="store_true",
        help="Process directories recursively"
    )
    parser.add_argument(
        "--destination", "-d",
        type=Path,
        default=None,
        metavar="DIR",
        help="Move renamed files into DIR instead of their own folder"
    )
    parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Replace existing files at the destination"
    )
    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        metavar="N",
        help=f"Maximum concurrent TMDB lookups (default: {DEFAULT_MAX_CONCURRENCY})"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        metavar="S",
        help="Give up on unfinished lookups after S seconds"
    )
    parser.add_argument(
        "--language",
        type=str,
        default=None,
        help="Language for TMDB results (default: from settings, en-US)"
    )
    parser.add_argument(
        "--movie-template",
        type=str,
        default=None,
        metavar="T",
        help="Naming template for movies, e.g. '{title} ({year})'"
    )
    parser.add_argument(
        "--series-template",
        type=str,
        default=None,
        metavar="T",
        help="Naming template for episodes"
    )
    parser.add_argument(
        "--confirm",
        action="store_true",
        help="Ask for confirmation before renaming"
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        metavar="N",
        help="Limit number of files to process"
    )
    parser.add_argument(
        "--cache-dir",
        type=Path,
        default=None,
        help="Directory for cache file (default: current directory)"
    )
    parser.add_argument(
        "--undo",
        action="store_true",
        help="Revert the last batch of renames"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show detailed debug information"
    )
    return parser


def main(
    args: list[str] | None = None,
    provider: MetadataProvider | None = None,
    settings: SettingsManager | None = None,
    history: RenameHistoryManager | None = None,
) -> int:
    """Main entry point."""
    parser = build_parser()
    parsed_args = parser.parse_args(args)

    logging.basicConfig(
        level=logging.DEBUG if parsed_args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    settings = settings or SettingsManager()

    if parsed_args.undo:
        history = history or RenameHistoryManager()
        try:
            return undo_last(history)
        finally:
            history.close()

    if parsed_args.path is None:
        parser.error("the following arguments are required: path")

    # Validate path
    if not parsed_args.path.exists():
        print(f"Error: Path does not exist: {parsed_args.path}")
        return 1

    templates = NamingTemplates(
        movie=parsed_args.movie_template or settings.naming_templates().movie,
        episode=parsed_args.series_template or settings.naming_templates().episode,
    )
    problems = settings.validate(templates)
    if problems:
        for problem in problems:
            print(f"Error: {problem}")
        return 1

    workers = parsed_args.workers or int(settings.get("max_concurrency"))
    if workers < 1:
        print("Error: --workers must be at least 1")
        return 1

    # Setup TMDB client if needed
    if provider is None:
        try:
            provider = TMDBClient(
                api_key=settings.api_key(),
                cache=Cache(parsed_args.cache_dir),
                language=parsed_args.language or settings.get("tmdb_language"),
                timeout=float(settings.get("provider_timeout")),
            )
        except TMDBError as e:
            print(f"Error: {e}")
            return 1

    # Find media files
    files = find_media_files(parsed_args.path, parsed_args.recursive)
    if not files:
        print("No media files found.")
        return 0

    # Apply limit if specified
    if parsed_args.limit and parsed_args.limit > 0:
        files = files[:parsed_args.limit]

    print(f"Found {len(files)} media file(s)")
    if parsed_args.dry_run:
        print("[DRY RUN - no files will be renamed]\n")
    else:
        print()

    cancel = CancellationToken(parsed_args.timeout)
    matches = match_files(files, Matcher(provider), max_concurrency=workers, cancel=cancel)

    destination = parsed_args.destination
    if destination is None and settings.get("destination_root"):
        destination = Path(settings.get("destination_root"))

    rename_plan = plan(
        ((m.path, m.result) for m in matches),
        templates=templates,
        destination_root=destination,
        overwrite=parsed_args.overwrite or bool(settings.get("overwrite")),
    )

    # Display preview
    for entry in rename_plan:
        if entry.status == PlanStatus.UNCHANGED:
            continue
        print_entry(entry)
        print()  # Blank line between files

    rename_count = len(rename_plan.pending)

    # If dry run, show summary and exit
    if parsed_args.dry_run:
        print("-" * 50)
        print(f"Would rename: {rename_count} files")
        return 0

    # If no files to rename, exit
    if rename_count == 0:
        print("-" * 50)
        print("No files to rename.")
        return 0

    # Ask for confirmation if --confirm is set
    if parsed_args.confirm:
        if not confirm_proceed(rename_count):
            print("Cancelled.")
            return 0

    print("\nRenaming files...")
    print("-" * 50)

    executed = execute(rename_plan)
    for entry in executed:
        if entry.status in (PlanStatus.APPLIED, PlanStatus.FAILED):
            print_entry(entry)

    history = history or RenameHistoryManager()
    try:
        history.save_transaction(str(parsed_args.path.resolve()), executed)
    except sqlite3.Error as e:
        log.warning("Could not record rename history: %s", e)
    finally:
        history.close()

    settings.set("last_input_directory", str(parsed_args.path.resolve()))
    settings.save()

    print_summary(executed)
    return 0 if not executed.with_status(PlanStatus.FAILED) else 1


if __name__ == "__main__":
    sys.exit(main())
