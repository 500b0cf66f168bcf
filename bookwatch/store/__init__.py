"""Store subpackage exports."""

from bookwatch.store.client import DatabaseClient, LocalDatabaseClient
from bookwatch.store.cursors import (
    get_cursor,
    list_cursors,
    load_cursor,
    reset_cursors,
    save_cursor,
)
from bookwatch.store.database import open_database
from bookwatch.store.job_state import (
    get_job_state,
    mark_run_started,
    mark_run_succeeded,
)
from bookwatch.store.ledger import (
    count_legacy_undelivered,
    delivery_stats,
    list_batches,
    record_delivery,
    reset_ledger,
)
from bookwatch.store.migrations import MIGRATIONS, migrate
from bookwatch.store.records import count_books, get_book, upsert_book
from bookwatch.store.usage import get_api_usage, increment_api_usage

__all__ = [
    "DatabaseClient",
    "LocalDatabaseClient",
    "open_database",
    "MIGRATIONS",
    "migrate",
    "upsert_book",
    "get_book",
    "count_books",
    "get_cursor",
    "load_cursor",
    "save_cursor",
    "list_cursors",
    "reset_cursors",
    "get_job_state",
    "mark_run_started",
    "mark_run_succeeded",
    "record_delivery",
    "reset_ledger",
    "delivery_stats",
    "count_legacy_undelivered",
    "list_batches",
    "get_api_usage",
    "increment_api_usage",
]
