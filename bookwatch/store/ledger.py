"""Per-channel delivery ledger and the append-only delivery audit log.

The ``delivery_items`` table is the single source of truth for whether an
item was already delivered on a channel. ``deliveries`` keeps one audit row
per hand-off and is never deleted. ``books.last_delivered_at`` is still
written for older readers but nothing here decides on it.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable

from bookwatch.shared.converters import parse_json_list
from bookwatch.shared.identifiers import normalize_isbn13
from bookwatch.shared.timeutil import utc_iso_days_ago, utc_now_iso
from bookwatch.store.client import DatabaseClient
from bookwatch.store.models import DeliveryBatch, DeliveryStats
from bookwatch.store.records import count_books
from bookwatch.store.schema import DELIVERY_COLUMNS

logger = logging.getLogger(__name__)


async def record_delivery(
    db: DatabaseClient,
    channel: str,
    isbn13s: Iterable[str],
    now: str | None = None,
) -> int:
    """
    Record that a set of items was handed to a channel.

    Writes one audit batch holding the full identifier list, then one ledger
    entry per (channel, identifier) pair. Pairs that already exist are
    skipped, so repeating a call records nothing new.

    Args:
        db: Database client.
        channel: Channel name.
        isbn13s: Delivered identifiers.
        now: Optional timestamp override.

    Returns:
        Number of ledger entries created.
    """
    raw_list = [str(value) for value in isbn13s]
    if not raw_list:
        return 0
    delivered_at = now or utc_now_iso()
    batch_id = await db.insert(
        "INSERT INTO deliveries (job_name, delivered_at, isbn13_list_json) "
        "VALUES (?, ?, ?)",
        (channel, delivered_at, json.dumps(raw_list, ensure_ascii=False)),
    )
    created = 0
    for raw in raw_list:
        isbn13 = normalize_isbn13(raw)
        if isbn13 is None:
            logger.warning("Skipping unrecognized identifier in delivery: %r", raw)
            continue
        inserted = await db.insert_ignoring_duplicates(
            "delivery_items",
            {
                "delivery_id": batch_id,
                "job_name": channel,
                "isbn13": isbn13,
                "delivered_at": delivered_at,
            },
        )
        if inserted:
            created += 1
        await db.execute(
            "UPDATE books SET last_delivered_at = ? WHERE isbn13 = ?",
            (delivered_at, isbn13),
        )
    await db.commit()
    logger.info(
        "Recorded delivery batch %d for %s: %d new of %d",
        batch_id,
        channel,
        created,
        len(raw_list),
    )
    return created


async def reset_ledger(
    db: DatabaseClient,
    channel: str | None = None,
    since_days: int | None = None,
) -> int:
    """
    Remove ledger entries so items become eligible for delivery again.

    Filters combine: a channel, a recency window, both, or neither (every
    entry). Audit batches are kept.

    Args:
        db: Database client.
        channel: Restrict to one channel.
        since_days: Restrict to entries delivered within the last N days.

    Returns:
        Number of ledger entries removed.
    """
    clauses: list[str] = []
    params: list[object] = []
    if channel is not None:
        clauses.append("job_name = ?")
        params.append(channel)
    if since_days is not None:
        if since_days < 0:
            raise ValueError(f"since_days must be non-negative: {since_days}")
        clauses.append("delivered_at >= ?")
        params.append(utc_iso_days_ago(since_days))
    sql = "DELETE FROM delivery_items"
    if clauses:
        sql += " WHERE " + " AND ".join(clauses)
    removed = await db.execute(sql, tuple(params))
    legacy = await db.execute(
        """
        UPDATE books SET last_delivered_at = NULL
        WHERE last_delivered_at IS NOT NULL
          AND isbn13 NOT IN (SELECT isbn13 FROM delivery_items)
        """
    )
    await db.commit()
    logger.info("Reset %d ledger entries (%d legacy flags cleared)", removed, legacy)
    return removed


async def delivery_stats(db: DatabaseClient, channel: str) -> DeliveryStats:
    """
    Summarize delivery progress for one channel.

    ``delivered`` counts distinct ledger identifiers of the channel that are
    also present in the catalog, so ledger entries for identifiers never
    stored as records are left out and ``undelivered`` is exactly the number
    of records select_undelivered can still return.

    Args:
        db: Database client.
        channel: Channel name.

    Returns:
        Total records, delivered catalog records, and the remainder.
    """
    total = await count_books(db)
    row = await db.fetchone(
        """
        SELECT COUNT(DISTINCT d.isbn13)
        FROM delivery_items d
        JOIN books b ON b.isbn13 = d.isbn13
        WHERE d.job_name = ?
        """,
        (channel,),
    )
    delivered = int(row[0]) if row else 0
    return DeliveryStats(
        total=total, delivered=delivered, undelivered=max(0, total - delivered)
    )


async def count_legacy_undelivered(db: DatabaseClient) -> int:
    """
    Count records whose legacy delivery flag is unset.

    Args:
        db: Database client.

    Returns:
        Number of records with no legacy delivery timestamp.
    """
    row = await db.fetchone(
        "SELECT COUNT(*) FROM books WHERE last_delivered_at IS NULL"
    )
    return int(row[0]) if row else 0


async def list_batches(
    db: DatabaseClient, channel: str | None = None
) -> list[DeliveryBatch]:
    """
    Read the delivery audit log, oldest first.

    Args:
        db: Database client.
        channel: Optional channel filter.

    Returns:
        Audit batches.
    """
    sql = f"SELECT {', '.join(DELIVERY_COLUMNS)} FROM deliveries"
    params: tuple[str, ...] = ()
    if channel is not None:
        sql += " WHERE job_name = ?"
        params = (channel,)
    rows = await db.fetchall(f"{sql} ORDER BY id", params)
    return [
        DeliveryBatch(
            batch_id=int(batch_id),
            channel=str(job_name),
            delivered_at=str(delivered_at),
            isbn13s=[str(value) for value in parse_json_list(list_json)],
        )
        for batch_id, job_name, delivered_at, list_json in rows
    ]
