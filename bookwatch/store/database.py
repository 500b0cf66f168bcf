"""Database opening helpers."""

from __future__ import annotations

from pathlib import Path

import aiosqlite

from bookwatch.shared.constants import DB_TIMEOUT_SECONDS
from bookwatch.store.client import LocalDatabaseClient
from bookwatch.store.migrations import migrate
from bookwatch.store.schema import apply_pragmas


async def open_database(db_path: Path | str) -> LocalDatabaseClient:
    """
    Open a database, apply pragmas, and run pending migrations.

    Args:
        db_path: SQLite file path, or ":memory:".

    Returns:
        Ready-to-use database client. The caller closes it.
    """
    connection = await aiosqlite.connect(str(db_path), timeout=DB_TIMEOUT_SECONDS)
    client = LocalDatabaseClient(connection)
    try:
        await apply_pragmas(connection, in_memory=str(db_path) == ":memory:")
        await migrate(client)
    except BaseException:
        await connection.close()
        raise
    return client
