"""Versioned, idempotent schema migrations.

Applied versions are recorded in the ``schema_migrations`` table; the runner
reads that table to decide what is pending instead of guessing from the
shape of stored data. Every step is also safe to re-run on its own thanks to
IF NOT EXISTS guards and duplicate-tolerant inserts.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from bookwatch.shared.converters import parse_json_list
from bookwatch.shared.identifiers import normalize_isbn13
from bookwatch.shared.timeutil import utc_now_iso
from bookwatch.store.client import DatabaseClient
from bookwatch.store.schema import (
    BASE_SCHEMA_DDL,
    DELIVERY_ITEMS_DDL,
    SCHEMA_MIGRATIONS_DDL,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Migration:
    """
    One schema migration step.

    Args:
        version: Monotonic version number.
        name: Short description recorded in schema_migrations.
        apply: Coroutine that performs the step.
    """

    version: int
    name: str
    apply: Callable[[DatabaseClient], Awaitable[int]]


async def create_base_schema(db: DatabaseClient) -> int:
    """
    Create the catalog, audit log, quota, cursor, and job state tables.

    Args:
        db: Database client.

    Returns:
        Number of rows touched (always 0 for DDL).
    """
    await db.executescript(BASE_SCHEMA_DDL)
    return 0


async def split_delivery_ledger(db: DatabaseClient) -> int:
    """
    Create the normalized delivery ledger and backfill it from the audit log.

    Older databases only kept the denormalized ``deliveries`` rows, each
    holding a JSON list of identifiers. Every (job, identifier) pair found
    there becomes one ledger entry; the earliest batch wins.

    Args:
        db: Database client.

    Returns:
        Number of ledger entries created by the backfill.
    """
    await db.executescript(DELIVERY_ITEMS_DDL)
    rows = await db.fetchall(
        "SELECT id, job_name, delivered_at, isbn13_list_json "
        "FROM deliveries ORDER BY id"
    )
    created = 0
    for delivery_id, job_name, delivered_at, list_json in rows:
        for raw in parse_json_list(list_json):
            isbn13 = normalize_isbn13(str(raw))
            if isbn13 is None:
                continue
            inserted = await db.insert_ignoring_duplicates(
                "delivery_items",
                {
                    "delivery_id": delivery_id,
                    "job_name": job_name,
                    "isbn13": isbn13,
                    "delivered_at": delivered_at,
                },
            )
            if inserted:
                created += 1
    return created


MIGRATIONS: list[Migration] = [
    Migration(1, "base_schema", create_base_schema),
    Migration(2, "delivery_ledger", split_delivery_ledger),
]


async def get_applied_versions(db: DatabaseClient) -> set[int]:
    """
    Read applied migration versions from schema metadata.

    Args:
        db: Database client.

    Returns:
        Set of applied versions.
    """
    await db.executescript(SCHEMA_MIGRATIONS_DDL)
    rows = await db.fetchall("SELECT version FROM schema_migrations")
    return {int(row[0]) for row in rows}


async def migrate(db: DatabaseClient) -> list[int]:
    """
    Apply pending migrations in version order.

    Args:
        db: Database client.

    Returns:
        Versions applied by this call; empty when already up to date.
    """
    applied = await get_applied_versions(db)
    newly_applied: list[int] = []
    for migration in sorted(MIGRATIONS, key=lambda item: item.version):
        if migration.version in applied:
            continue
        rows = await migration.apply(db)
        await db.insert_ignoring_duplicates(
            "schema_migrations",
            {
                "version": migration.version,
                "name": migration.name,
                "applied_at": utc_now_iso(),
            },
        )
        await db.commit()
        newly_applied.append(migration.version)
        logger.info(
            "Applied migration %04d_%s (rows=%d)",
            migration.version,
            migration.name,
            rows,
        )
    return newly_applied
