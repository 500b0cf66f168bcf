"""Undelivered record selection per channel."""

from __future__ import annotations

from bookwatch.store.client import DatabaseClient
from bookwatch.store.models import CatalogRecord
from bookwatch.store.records import row_to_record
from bookwatch.store.schema import BOOK_SELECT

UNDELIVERED_SQL = f"""
{BOOK_SELECT}
WHERE NOT EXISTS (
    SELECT 1 FROM delivery_items d
    WHERE d.job_name = ? AND d.isbn13 = books.isbn13
)
ORDER BY first_seen_at DESC, isbn13 DESC
LIMIT ?
"""


async def select_undelivered(
    db: DatabaseClient, channel: str, limit: int
) -> list[CatalogRecord]:
    """
    Pick records never delivered on a channel, newest discoveries first.

    Nothing is substituted when every record was already delivered; the
    result is simply empty.

    Args:
        db: Database client.
        channel: Channel name.
        limit: Maximum records to return.

    Returns:
        Undelivered records ordered by first_seen_at then isbn13, descending.
    """
    if limit <= 0:
        return []
    rows = await db.fetchall(UNDELIVERED_SQL, (channel, limit))
    return [row_to_record(row) for row in rows]
