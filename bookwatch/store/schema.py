"""Database schema definitions and connection setup."""

from __future__ import annotations

import aiosqlite

from bookwatch.shared.constants import DB_TIMEOUT_SECONDS
from bookwatch.store.retry import execute_with_retry

BOOK_COLUMNS = [
    "isbn13",
    "title",
    "authors_json",
    "publisher",
    "published_date",
    "description",
    "cover_url",
    "links_json",
    "source",
    "first_seen_at",
    "last_seen_at",
    "last_delivered_at",
]

BOOK_SELECT = f"SELECT {', '.join(BOOK_COLUMNS)} FROM books"

DELIVERY_COLUMNS = ["id", "job_name", "delivered_at", "isbn13_list_json"]

CURSOR_COLUMNS = [
    "job_name",
    "query_hash",
    "start_index",
    "is_exhausted",
    "updated_at",
]

SCHEMA_MIGRATIONS_DDL = """
CREATE TABLE IF NOT EXISTS schema_migrations (
    version INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    applied_at TEXT NOT NULL
);
"""

BASE_SCHEMA_DDL = """
CREATE TABLE IF NOT EXISTS books (
    isbn13 TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    authors_json TEXT,
    publisher TEXT,
    published_date TEXT,
    description TEXT,
    cover_url TEXT,
    links_json TEXT,
    source TEXT NOT NULL,
    first_seen_at TEXT NOT NULL,
    last_seen_at TEXT NOT NULL,
    last_delivered_at TEXT
);

CREATE INDEX IF NOT EXISTS idx_books_undelivered
    ON books(last_delivered_at) WHERE last_delivered_at IS NULL;
CREATE INDEX IF NOT EXISTS idx_books_last_seen ON books(last_seen_at);
CREATE INDEX IF NOT EXISTS idx_books_first_seen ON books(first_seen_at);

CREATE TABLE IF NOT EXISTS deliveries (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    job_name TEXT NOT NULL,
    delivered_at TEXT NOT NULL,
    isbn13_list_json TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_deliveries_job ON deliveries(job_name);

CREATE TABLE IF NOT EXISTS job_state (
    job_name TEXT PRIMARY KEY,
    last_success_at TEXT,
    last_run_at TEXT
);

CREATE TABLE IF NOT EXISTS api_usage (
    date TEXT NOT NULL,
    provider TEXT NOT NULL,
    count INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (date, provider)
);

CREATE TABLE IF NOT EXISTS collect_cursors (
    job_name TEXT NOT NULL,
    query_hash TEXT NOT NULL,
    start_index INTEGER NOT NULL DEFAULT 0,
    is_exhausted INTEGER NOT NULL DEFAULT 0,
    updated_at TEXT NOT NULL,
    PRIMARY KEY (job_name, query_hash)
);
"""

DELIVERY_ITEMS_DDL = """
CREATE TABLE IF NOT EXISTS delivery_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    delivery_id INTEGER NOT NULL,
    job_name TEXT NOT NULL,
    isbn13 TEXT NOT NULL,
    delivered_at TEXT NOT NULL,
    UNIQUE(job_name, isbn13),
    FOREIGN KEY (delivery_id) REFERENCES deliveries(id)
);

CREATE INDEX IF NOT EXISTS idx_delivery_items_job ON delivery_items(job_name);
CREATE INDEX IF NOT EXISTS idx_delivery_items_isbn13 ON delivery_items(isbn13);
CREATE INDEX IF NOT EXISTS idx_delivery_items_delivery
    ON delivery_items(delivery_id);
CREATE INDEX IF NOT EXISTS idx_delivery_items_delivered_at
    ON delivery_items(delivered_at);
"""


async def apply_pragmas(db: aiosqlite.Connection, in_memory: bool = False) -> None:
    """
    Configure connection pragmas.

    Args:
        db: Open aiosqlite connection.
        in_memory: Whether the database lives in memory (WAL is skipped).

    Returns:
        None.
    """
    if not in_memory:
        await execute_with_retry(db, "PRAGMA journal_mode=WAL;")
        await execute_with_retry(db, "PRAGMA synchronous=NORMAL;")
    await execute_with_retry(db, "PRAGMA foreign_keys=ON;")
    await execute_with_retry(db, f"PRAGMA busy_timeout={DB_TIMEOUT_SECONDS * 1000};")
