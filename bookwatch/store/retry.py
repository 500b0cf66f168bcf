"""SQLite retry helpers for store access."""

from __future__ import annotations

import asyncio
import sqlite3
from typing import Any

import aiosqlite

from bookwatch.shared.constants import DB_RETRY_ATTEMPTS, DB_RETRY_BASE_DELAY


def is_lock_error(exc: sqlite3.OperationalError) -> bool:
    """
    Check whether an operational error is transient lock contention.

    Args:
        exc: Raised SQLite error.

    Returns:
        True for "database is locked" errors.
    """
    return "database is locked" in str(exc).lower()


async def execute_with_retry(
    db: aiosqlite.Connection, sql: str, params: tuple[Any, ...] | None = None
) -> aiosqlite.Cursor:
    """
    Execute a SQL statement with retries on database lock errors.

    Args:
        db: Open aiosqlite connection.
        sql: SQL statement to execute.
        params: SQL parameters.

    Returns:
        Cursor of the executed statement.
    """
    for attempt in range(DB_RETRY_ATTEMPTS):
        try:
            if params is None:
                return await db.execute(sql)
            return await db.execute(sql, params)
        except sqlite3.OperationalError as exc:
            if not is_lock_error(exc) or attempt >= DB_RETRY_ATTEMPTS - 1:
                raise
            await asyncio.sleep(DB_RETRY_BASE_DELAY * (attempt + 1))
    raise RuntimeError("unreachable")


async def executescript_with_retry(db: aiosqlite.Connection, script: str) -> None:
    """
    Execute a multi-statement SQL script with retries on lock errors.

    Args:
        db: Open aiosqlite connection.
        script: SQL script.

    Returns:
        None.
    """
    for attempt in range(DB_RETRY_ATTEMPTS):
        try:
            await db.executescript(script)
            return
        except sqlite3.OperationalError as exc:
            if not is_lock_error(exc) or attempt >= DB_RETRY_ATTEMPTS - 1:
                raise
            await asyncio.sleep(DB_RETRY_BASE_DELAY * (attempt + 1))


async def commit_with_retry(db: aiosqlite.Connection) -> None:
    """
    Commit a transaction with retries on database lock errors.

    Args:
        db: Open aiosqlite connection.

    Returns:
        None.
    """
    for attempt in range(DB_RETRY_ATTEMPTS):
        try:
            await db.commit()
            return
        except sqlite3.OperationalError as exc:
            if not is_lock_error(exc) or attempt >= DB_RETRY_ATTEMPTS - 1:
                raise
            await asyncio.sleep(DB_RETRY_BASE_DELAY * (attempt + 1))
