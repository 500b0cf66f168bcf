"""Daily API call counters."""

from __future__ import annotations

from bookwatch.store.client import DatabaseClient


async def get_api_usage(db: DatabaseClient, date: str, provider: str) -> int:
    """
    Read the call count for one provider and day.

    Args:
        db: Database client.
        date: Day in YYYY-MM-DD form.
        provider: Provider name.

    Returns:
        Calls recorded so far, 0 when none.
    """
    row = await db.fetchone(
        "SELECT count FROM api_usage WHERE date = ? AND provider = ?",
        (date, provider),
    )
    return int(row[0]) if row else 0


async def increment_api_usage(
    db: DatabaseClient, date: str, provider: str, limit: int
) -> bool:
    """
    Atomically add one call while the day's count is below a limit.

    The limit is re-checked inside the same statement so a racing writer
    cannot push the counter past it.

    Args:
        db: Database client.
        date: Day in YYYY-MM-DD form.
        provider: Provider name.
        limit: Daily call limit.

    Returns:
        True when the counter was incremented.
    """
    if limit <= 0:
        return False
    changed = await db.execute(
        """
        INSERT INTO api_usage (date, provider, count) VALUES (?, ?, 1)
        ON CONFLICT(date, provider) DO UPDATE SET count = api_usage.count + 1
        WHERE api_usage.count < ?
        """,
        (date, provider, limit),
    )
    await db.commit()
    return changed > 0
