"""CLI entrypoint for scheduled collection."""

from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import UTC, datetime
from pathlib import Path

from bookwatch.catalog.client import GoogleBooksClient
from bookwatch.collect.channels import ChannelConfig, load_channels
from bookwatch.collect.query_hash import short_hash
from bookwatch.collect.quota import QuotaGate
from bookwatch.collect.runner import RunReport, is_due, run_channels
from bookwatch.notify.models import ConsoleNotifier
from bookwatch.notify.workflow import deliver_channel
from bookwatch.shared.constants import (
    COMBINED_CHANNEL,
    DEFAULT_CHANNELS_PATH,
    PROJECT_ROOT,
)
from bookwatch.shared.db_path import resolve_db_path
from bookwatch.shared.errors import ConfigurationError
from bookwatch.store.cursors import list_cursors, reset_cursors
from bookwatch.store.database import open_database
from bookwatch.store.job_state import get_job_state


def resolve_path(value: str) -> Path:
    path = Path(value)
    return path if path.is_absolute() else PROJECT_ROOT / path


def print_report(report: RunReport) -> None:
    """
    Print per-channel collection results.

    Args:
        report: Run report.

    Returns:
        None.
    """
    for outcome in report.outcomes:
        result = outcome.result
        if result is None:
            detail = f" ({outcome.message})" if outcome.message else ""
            print(f"  - {outcome.channel}: {outcome.status}{detail}")
            continue
        print(
            f"  - {outcome.channel}: {outcome.status}, "
            f"inserted={result.inserted}, updated={result.updated}, "
            f"skipped={result.skipped}, stop={result.stop_reason}, "
            f"next startIndex={result.start_index}"
        )
    print(
        f"Totals: inserted={report.inserted}, updated={report.updated}, "
        f"skipped={report.skipped}"
    )


async def list_due(
    db_path: Path, channels: list[ChannelConfig], force: bool
) -> None:
    db = await open_database(db_path)
    try:
        now = datetime.now(UTC)
        for channel in channels:
            if not channel.enabled:
                print(f"  - {channel.name}: disabled")
                continue
            state = await get_job_state(db, channel.name)
            last_success = state.last_success_at if state else None
            due = force or is_due(last_success, now)
            print(
                f"  - {channel.name}: due={str(due).lower()} "
                f"(last success: {last_success or 'never'})"
            )
    finally:
        await db.close()


async def async_main(args: argparse.Namespace) -> int:
    """
    Run collection for the configured channels.

    Args:
        args: Parsed CLI arguments.

    Returns:
        Process exit code.
    """
    db_path = resolve_db_path(args.db)

    if args.list_cursors:
        db = await open_database(db_path)
        try:
            cursors = await list_cursors(db)
        finally:
            await db.close()
        if not cursors:
            print("No cursors stored.")
        for cursor in cursors:
            state = "exhausted" if cursor.is_exhausted else "active"
            print(
                f"  - {cursor.channel} [{short_hash(cursor.query_hash)}] "
                f"startIndex={cursor.start_index} {state} "
                f"(updated {cursor.updated_at})"
            )
        return 0

    if args.reset_cursors:
        db = await open_database(db_path)
        try:
            removed = await reset_cursors(db, args.reset_cursors)
        finally:
            await db.close()
        print(f"Removed {removed} cursor(s) for channel {args.reset_cursors}")
        return 0

    try:
        defaults, channels = load_channels(resolve_path(args.channels))
    except (FileNotFoundError, ValueError) as exc:
        raise SystemExit(str(exc)) from exc
    if args.channel:
        wanted = set(args.channel)
        channels = [channel for channel in channels if channel.name in wanted]
    if not any(channel.enabled for channel in channels):
        print("No enabled channels found.")
        return 0

    if args.dry_run:
        print("Dry run - channels that would run:")
        await list_due(db_path, channels, args.force)
        return 0

    db = await open_database(db_path)
    client = GoogleBooksClient(timeout=args.timeout)
    try:
        try:
            quota = QuotaGate.from_env(db)
        except ConfigurationError as exc:
            raise SystemExit(str(exc)) from exc
        print(await quota.status_line())
        report = await run_channels(
            db,
            client,
            quota,
            channels,
            force=args.force,
            show_progress=args.progress,
        )
        print_report(report)
        if report.fatal_error:
            print(f"Run aborted: {report.fatal_error}")
            return 1

        if args.deliver:
            outcome = await deliver_channel(
                db, COMBINED_CHANNEL, defaults.mail_limit, ConsoleNotifier()
            )
            if not outcome.selected:
                print(f"No undelivered books for {COMBINED_CHANNEL}.")
            else:
                print(f"Delivered {outcome.recorded} new book(s).")
        print(await quota.status_line())
    finally:
        await client.close()
        await db.close()
    return 0 if report.ok else 1


def main() -> None:
    """
    Parse CLI arguments and run collection.

    Args:
        None.

    Returns:
        None.
    """
    parser = argparse.ArgumentParser(
        description="Collect new books from Google Books for configured channels"
    )
    parser.add_argument(
        "--db",
        type=str,
        default=None,
        help="SQLite database path. Defaults to $BOOKWATCH_DB or data/app.db.",
    )
    parser.add_argument(
        "--channels",
        type=str,
        default=str(DEFAULT_CHANNELS_PATH.relative_to(PROJECT_ROOT)),
        help="Path to channels JSON file.",
    )
    parser.add_argument(
        "--channel",
        action="append",
        default=[],
        help="Only run the named channel. May be repeated.",
    )
    parser.add_argument(
        "--force",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Run enabled channels regardless of the due interval.",
    )
    parser.add_argument(
        "--dry-run",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Show which channels are due without calling the API.",
    )
    parser.add_argument(
        "--deliver",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Print undelivered books for the combined channel after collecting.",
    )
    parser.add_argument(
        "--progress",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Show channel progress.",
    )
    parser.add_argument(
        "--list-cursors",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Print stored pagination cursors and exit.",
    )
    parser.add_argument(
        "--reset-cursors",
        type=str,
        default="",
        metavar="CHANNEL",
        help="Delete pagination cursors for a channel and exit.",
    )
    parser.add_argument(
        "--timeout",
        type=int,
        default=20,
        help="HTTP request timeout in seconds.",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level.",
    )
    args = parser.parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    raise SystemExit(asyncio.run(async_main(args)))


if __name__ == "__main__":
    main()
