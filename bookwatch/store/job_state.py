"""Per-channel run bookkeeping."""

from __future__ import annotations

from bookwatch.store.client import DatabaseClient
from bookwatch.store.models import JobState


async def get_job_state(db: DatabaseClient, channel: str) -> JobState | None:
    """
    Fetch run bookkeeping for a channel.

    Args:
        db: Database client.
        channel: Channel name.

    Returns:
        Job state, or None when the channel never ran.
    """
    row = await db.fetchone(
        "SELECT job_name, last_run_at, last_success_at FROM job_state "
        "WHERE job_name = ?",
        (channel,),
    )
    if row is None:
        return None
    return JobState(channel=str(row[0]), last_run_at=row[1], last_success_at=row[2])


async def mark_run_started(db: DatabaseClient, channel: str, timestamp: str) -> None:
    await db.execute(
        """
        INSERT INTO job_state (job_name, last_run_at) VALUES (?, ?)
        ON CONFLICT(job_name) DO UPDATE SET last_run_at = excluded.last_run_at
        """,
        (channel, timestamp),
    )
    await db.commit()


async def mark_run_succeeded(db: DatabaseClient, channel: str, timestamp: str) -> None:
    await db.execute(
        """
        INSERT INTO job_state (job_name, last_success_at) VALUES (?, ?)
        ON CONFLICT(job_name) DO UPDATE SET last_success_at = excluded.last_success_at
        """,
        (channel, timestamp),
    )
    await db.commit()
