"""Resumable pagination cursors keyed by channel and query-set hash."""

from __future__ import annotations

from bookwatch.shared.timeutil import utc_now_iso
from bookwatch.store.client import DatabaseClient
from bookwatch.store.models import CollectionCursor
from bookwatch.store.schema import CURSOR_COLUMNS

# Offsets only move forward and exhaustion is sticky until reset_cursors.
CURSOR_UPSERT = """
INSERT INTO collect_cursors (job_name, query_hash, start_index, is_exhausted, updated_at)
VALUES (?, ?, ?, ?, ?)
ON CONFLICT(job_name, query_hash) DO UPDATE SET
    start_index = MAX(collect_cursors.start_index, excluded.start_index),
    is_exhausted = MAX(collect_cursors.is_exhausted, excluded.is_exhausted),
    updated_at = excluded.updated_at
"""


async def get_cursor(
    db: DatabaseClient, channel: str, query_hash: str
) -> CollectionCursor | None:
    """
    Fetch the cursor for a channel and query set.

    Args:
        db: Database client.
        channel: Channel name.
        query_hash: Query-set hash.

    Returns:
        Stored cursor, or None when collection never ran for the pair.
    """
    row = await db.fetchone(
        f"SELECT {', '.join(CURSOR_COLUMNS)} FROM collect_cursors "
        "WHERE job_name = ? AND query_hash = ?",
        (channel, query_hash),
    )
    if row is None:
        return None
    job_name, hash_value, start_index, is_exhausted, updated_at = row
    return CollectionCursor(
        channel=str(job_name),
        query_hash=str(hash_value),
        start_index=int(start_index),
        is_exhausted=bool(is_exhausted),
        updated_at=updated_at,
    )


async def load_cursor(
    db: DatabaseClient, channel: str, query_hash: str
) -> CollectionCursor:
    """
    Fetch a cursor, falling back to a fresh unsaved one at offset 0.

    Args:
        db: Database client.
        channel: Channel name.
        query_hash: Query-set hash.

    Returns:
        Stored or fresh cursor.
    """
    cursor = await get_cursor(db, channel, query_hash)
    if cursor is not None:
        return cursor
    return CollectionCursor(
        channel=channel,
        query_hash=query_hash,
        start_index=0,
        is_exhausted=False,
        updated_at=None,
    )


async def save_cursor(
    db: DatabaseClient,
    channel: str,
    query_hash: str,
    start_index: int,
    is_exhausted: bool,
    now: str | None = None,
) -> None:
    """
    Create or advance a cursor. The caller commits.

    Args:
        db: Database client.
        channel: Channel name.
        query_hash: Query-set hash.
        start_index: Next upstream offset.
        is_exhausted: Whether the query set is fully consumed.
        now: Optional timestamp override.

    Returns:
        None.
    """
    if start_index < 0:
        raise ValueError(f"Cursor offset must be non-negative: {start_index}")
    await db.execute(
        CURSOR_UPSERT,
        (channel, query_hash, start_index, int(is_exhausted), now or utc_now_iso()),
    )


async def list_cursors(
    db: DatabaseClient, channel: str | None = None
) -> list[CollectionCursor]:
    """
    List stored cursors.

    Args:
        db: Database client.
        channel: Optional channel filter.

    Returns:
        Cursors ordered by channel and hash.
    """
    sql = f"SELECT {', '.join(CURSOR_COLUMNS)} FROM collect_cursors"
    params: tuple[str, ...] = ()
    if channel is not None:
        sql += " WHERE job_name = ?"
        params = (channel,)
    rows = await db.fetchall(f"{sql} ORDER BY job_name, query_hash", params)
    return [
        CollectionCursor(
            channel=str(row[0]),
            query_hash=str(row[1]),
            start_index=int(row[2]),
            is_exhausted=bool(row[3]),
            updated_at=row[4],
        )
        for row in rows
    ]


async def reset_cursors(db: DatabaseClient, channel: str) -> int:
    """
    Delete every cursor of a channel so the next run starts at offset 0.

    Args:
        db: Database client.
        channel: Channel name.

    Returns:
        Number of cursors removed.
    """
    removed = await db.execute(
        "DELETE FROM collect_cursors WHERE job_name = ?", (channel,)
    )
    await db.commit()
    return removed
