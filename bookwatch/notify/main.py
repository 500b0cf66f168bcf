"""CLI entrypoint for delivery ledger management."""

from __future__ import annotations

import argparse
import asyncio
import logging

from bookwatch.notify.models import ConsoleNotifier
from bookwatch.notify.workflow import deliver_channel
from bookwatch.shared.constants import COMBINED_CHANNEL, DEFAULT_MAIL_LIMIT
from bookwatch.shared.db_path import resolve_db_path
from bookwatch.shared.timeutil import parse_duration_days
from bookwatch.store.client import DatabaseClient
from bookwatch.store.database import open_database
from bookwatch.store.ledger import (
    count_legacy_undelivered,
    delivery_stats,
    list_batches,
    reset_ledger,
)
from bookwatch.store.records import count_books


async def show_status(db: DatabaseClient, channel: str) -> None:
    stats = await delivery_stats(db, channel)
    total = await count_books(db)
    legacy_undelivered = await count_legacy_undelivered(db)

    print("Books (global):")
    print(f"  Total: {total}")
    print(f"  Delivered (by last_delivered_at): {total - legacy_undelivered}")
    print(f"  Undelivered: {legacy_undelivered}")
    print(f'\nDelivery ledger (channel="{channel}"):')
    print(f"  Total books: {stats.total}")
    print(f"  Delivered: {stats.delivered}")
    print(f"  Undelivered: {stats.undelivered}")
    if stats.undelivered == 0 and stats.total > 0:
        print(f'\nAll books have been delivered for channel "{channel}".')
        print(
            f"Use 'bookwatch-ledger reset --channel {channel}' "
            "to make them eligible again."
        )
    elif stats.undelivered > 0:
        print(f"\n{stats.undelivered} book(s) ready for next delivery.")


async def show_batches(db: DatabaseClient, channel: str | None) -> None:
    batches = await list_batches(db, channel)
    if not batches:
        print("No delivery batches recorded.")
        return
    for batch in batches:
        print(
            f"  #{batch.batch_id} {batch.channel} {batch.delivered_at} "
            f"({len(batch.isbn13s)} book(s))"
        )


async def async_main(args: argparse.Namespace) -> int:
    """
    Execute a ledger command.

    Args:
        args: Parsed CLI arguments.

    Returns:
        Process exit code.
    """
    since_days: int | None = None
    if args.since:
        try:
            since_days = parse_duration_days(args.since)
        except ValueError as exc:
            raise SystemExit(str(exc)) from exc

    db = await open_database(resolve_db_path(args.db))
    try:
        if args.command == "status":
            await show_status(db, args.channel or COMBINED_CHANNEL)
        elif args.command == "batches":
            await show_batches(db, args.channel)
        elif args.command == "reset":
            if args.channel:
                scope = f'books delivered on channel "{args.channel}"'
            else:
                scope = "ALL delivered books"
            if since_days is not None:
                scope += f" in the last {since_days} day(s)"
            print(f"Scope: {scope}")
            removed = await reset_ledger(db, args.channel, since_days)
            stats = await delivery_stats(db, args.channel or COMBINED_CHANNEL)
            print("Reset complete.")
            print(f"  Ledger entries removed: {removed}")
            print(
                f"  Undelivered now ({args.channel or COMBINED_CHANNEL}): "
                f"{stats.undelivered}"
            )
        elif args.command == "deliver":
            channel = args.channel or COMBINED_CHANNEL
            outcome = await deliver_channel(
                db, channel, args.limit, ConsoleNotifier(), dry_run=args.dry_run
            )
            if not outcome.selected:
                print(f'No undelivered books for channel "{channel}".')
                print("Run 'bookwatch-ledger reset' to reset delivery status.")
            elif args.dry_run:
                print(f"Dry run: {len(outcome.selected)} book(s) would be delivered.")
                for record in outcome.selected:
                    print(f"  {record.isbn13}  {record.title}")
            else:
                print(f"Recorded {outcome.recorded} new ledger entries.")
    finally:
        await db.close()
    return 0


def build_parser() -> argparse.ArgumentParser:
    """
    Build CLI parser.

    Args:
        None.

    Returns:
        Argument parser.
    """
    parser = argparse.ArgumentParser(
        description="Inspect, reset, and drive the per-channel delivery ledger"
    )
    parser.add_argument(
        "command",
        choices=["status", "reset", "deliver", "batches"],
        help="Ledger operation to run.",
    )
    parser.add_argument(
        "--db",
        type=str,
        default=None,
        help="SQLite database path. Defaults to $BOOKWATCH_DB or data/app.db.",
    )
    parser.add_argument(
        "--channel",
        type=str,
        default=None,
        help=(
            "Channel name. status and deliver default to 'combined'; "
            "reset and batches default to every channel."
        ),
    )
    parser.add_argument(
        "--since",
        type=str,
        default="",
        help="For reset: only entries delivered within a duration (7d, 2w, 1m).",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=DEFAULT_MAIL_LIMIT,
        help="For deliver: maximum books per delivery.",
    )
    parser.add_argument(
        "--dry-run",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="For deliver: select without recording.",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level.",
    )
    return parser


def main() -> None:
    """
    Parse CLI arguments and run a ledger command.

    Args:
        None.

    Returns:
        None.
    """
    args = build_parser().parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    raise SystemExit(asyncio.run(async_main(args)))


if __name__ == "__main__":
    main()
