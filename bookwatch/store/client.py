"""Database client abstraction over a single aiosqlite connection."""

from __future__ import annotations

from typing import Any, Protocol

import aiosqlite

from bookwatch.store.retry import (
    commit_with_retry,
    execute_with_retry,
    executescript_with_retry,
)


class DatabaseClient(Protocol):
    """
    Database client protocol for read and write operations.
    """

    async def execute(self, sql: str, params: tuple[Any, ...] | None = None) -> int:
        """
        Execute a SQL statement.

        Args:
            sql: SQL statement to execute.
            params: SQL parameters.

        Returns:
            Number of rows changed by the statement.
        """

    async def insert(self, sql: str, params: tuple[Any, ...] | None = None) -> int:
        """
        Execute an INSERT statement.

        Args:
            sql: INSERT statement.
            params: SQL parameters.

        Returns:
            Row id of the inserted row.
        """

    async def executescript(self, script: str) -> None:
        """
        Execute a multi-statement DDL script.

        Args:
            script: SQL script.

        Returns:
            None.
        """

    async def insert_ignoring_duplicates(self, table: str, row: dict[str, Any]) -> bool:
        """
        Insert a row unless it collides with an existing unique key.

        Args:
            table: Target table name.
            row: Column values keyed by column name.

        Returns:
            True when a new row was created, False on a duplicate key.
        """

    async def commit(self) -> None:
        """
        Commit a transaction.

        Returns:
            None.
        """

    async def fetchall(
        self, sql: str, params: tuple[Any, ...] | None = None
    ) -> list[tuple[Any, ...]]:
        """
        Fetch all rows for a query.

        Args:
            sql: SQL statement to execute.
            params: SQL parameters.

        Returns:
            Query result rows.
        """

    async def fetchone(
        self, sql: str, params: tuple[Any, ...] | None = None
    ) -> tuple[Any, ...] | None:
        """
        Fetch a single row for a query.

        Args:
            sql: SQL statement to execute.
            params: SQL parameters.

        Returns:
            Single row or None.
        """


class LocalDatabaseClient:
    """
    Database client bound to one open aiosqlite connection.

    The connection is owned by the caller and passed in explicitly, so tests
    can hand over isolated in-memory databases.
    """

    def __init__(self, db: aiosqlite.Connection) -> None:
        """
        Initialize the client.

        Args:
            db: Open aiosqlite connection.
        """
        self._db = db

    @property
    def connection(self) -> aiosqlite.Connection:
        """Underlying aiosqlite connection."""
        return self._db

    async def close(self) -> None:
        """
        Close the underlying connection.

        Returns:
            None.
        """
        await self._db.close()

    async def execute(self, sql: str, params: tuple[Any, ...] | None = None) -> int:
        cursor = await execute_with_retry(self._db, sql, params)
        rowcount = cursor.rowcount
        await cursor.close()
        return max(0, rowcount)

    async def insert(self, sql: str, params: tuple[Any, ...] | None = None) -> int:
        cursor = await execute_with_retry(self._db, sql, params)
        row_id = cursor.lastrowid
        await cursor.close()
        if row_id is None:
            raise RuntimeError("INSERT did not produce a row id")
        return row_id

    async def executescript(self, script: str) -> None:
        await executescript_with_retry(self._db, script)

    async def insert_ignoring_duplicates(self, table: str, row: dict[str, Any]) -> bool:
        columns = list(row)
        sql = (
            f"INSERT INTO {table} ({', '.join(columns)}) "
            f"VALUES ({', '.join(['?'] * len(columns))}) "
            "ON CONFLICT DO NOTHING"
        )
        changed = await self.execute(sql, tuple(row[col] for col in columns))
        return changed > 0

    async def commit(self) -> None:
        await commit_with_retry(self._db)

    async def fetchall(
        self, sql: str, params: tuple[Any, ...] | None = None
    ) -> list[tuple[Any, ...]]:
        cursor = await execute_with_retry(self._db, sql, params)
        rows = await cursor.fetchall()
        await cursor.close()
        return [tuple(row) for row in rows]

    async def fetchone(
        self, sql: str, params: tuple[Any, ...] | None = None
    ) -> tuple[Any, ...] | None:
        cursor = await execute_with_retry(self._db, sql, params)
        row = await cursor.fetchone()
        await cursor.close()
        if row is None:
            return None
        return tuple(row)
