"""Catalog record reads and idempotent upserts."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from bookwatch.shared.converters import (
    is_blank,
    parse_json_list,
    to_json_text,
    to_text,
)
from bookwatch.shared.errors import ValidationError
from bookwatch.shared.identifiers import normalize_isbn13
from bookwatch.shared.timeutil import utc_now_iso
from bookwatch.store.client import DatabaseClient
from bookwatch.store.models import (
    BookInput,
    BookLink,
    CatalogRecord,
    UpsertResult,
)
from bookwatch.store.schema import BOOK_COLUMNS, BOOK_SELECT

# Optional fields refreshed only when the new fetch carries a value.
MERGED_COLUMNS = [
    "authors_json",
    "publisher",
    "published_date",
    "description",
    "cover_url",
    "links_json",
    "source",
]

BOOK_INSERT = f"""
INSERT INTO books ({", ".join(BOOK_COLUMNS)})
VALUES ({", ".join(["?"] * len(BOOK_COLUMNS))})
"""


def row_to_record(row: tuple[Any, ...]) -> CatalogRecord:
    """
    Convert a books row to a catalog record.

    Args:
        row: Row selected with BOOK_SELECT.

    Returns:
        Catalog record.
    """
    data = dict(zip(BOOK_COLUMNS, row, strict=True))
    links = [
        BookLink(label=str(item.get("label") or ""), url=str(item.get("url") or ""))
        for item in parse_json_list(data["links_json"])
        if isinstance(item, dict)
    ]
    return CatalogRecord(
        isbn13=str(data["isbn13"]),
        title=str(data["title"] or ""),
        authors=[str(name) for name in parse_json_list(data["authors_json"])],
        publisher=data["publisher"],
        published_date=data["published_date"],
        description=data["description"],
        cover_url=data["cover_url"],
        links=links,
        source=str(data["source"]),
        first_seen_at=str(data["first_seen_at"]),
        last_seen_at=str(data["last_seen_at"]),
        last_delivered_at=data["last_delivered_at"],
    )


def book_to_columns(book: BookInput, isbn13: str) -> dict[str, Any]:
    """
    Map a fetched book onto books columns, leaving timestamps out.

    Args:
        book: Fetched book.
        isbn13: Canonical identifier.

    Returns:
        Column values keyed by column name.
    """
    authors = [name.strip() for name in book.authors if name and name.strip()]
    links = [asdict(link) for link in book.links if link.url]
    return {
        "isbn13": isbn13,
        "title": (book.title or "").strip(),
        "authors_json": to_json_text(authors),
        "publisher": to_text(book.publisher),
        "published_date": to_text(book.published_date),
        "description": to_text(book.description),
        "cover_url": to_text(book.cover_url),
        "links_json": to_json_text(links),
        "source": to_text(book.source),
    }


async def get_book(db: DatabaseClient, isbn13: str) -> CatalogRecord | None:
    """
    Fetch one catalog record.

    Args:
        db: Database client.
        isbn13: ISBN-10 or ISBN-13 in any formatting.

    Returns:
        Stored record, or None when missing or not an ISBN.
    """
    canonical = normalize_isbn13(isbn13)
    if canonical is None:
        return None
    row = await db.fetchone(f"{BOOK_SELECT} WHERE isbn13 = ?", (canonical,))
    if row is None:
        return None
    return row_to_record(row)


async def count_books(db: DatabaseClient) -> int:
    """
    Count catalog records.

    Args:
        db: Database client.

    Returns:
        Number of stored records.
    """
    row = await db.fetchone("SELECT COUNT(*) FROM books")
    return int(row[0]) if row else 0


async def upsert_book(
    db: DatabaseClient, book: BookInput, now: str | None = None
) -> UpsertResult:
    """
    Insert a new record or merge a re-discovered one.

    On update the title always takes the latest value; every other optional
    field is replaced only when the new fetch supplied a non-empty value.
    ``first_seen_at`` never changes and ``last_seen_at`` is refreshed. The
    caller commits.

    Args:
        db: Database client.
        book: Fetched book.
        now: Optional timestamp override.

    Returns:
        Stored record and the action taken.

    Raises:
        ValidationError: The identifier is not an ISBN.
    """
    isbn13 = normalize_isbn13(book.isbn13)
    if isbn13 is None:
        raise ValidationError(f"Invalid ISBN: {book.isbn13!r}")
    timestamp = now or utc_now_iso()
    incoming = book_to_columns(book, isbn13)

    existing = await db.fetchone(f"{BOOK_SELECT} WHERE isbn13 = ?", (isbn13,))
    if existing is None:
        if incoming["source"] is None:
            raise ValidationError(f"Book {isbn13} has no source")
        values = {
            **incoming,
            "first_seen_at": timestamp,
            "last_seen_at": timestamp,
            "last_delivered_at": None,
        }
        row = tuple(values[col] for col in BOOK_COLUMNS)
        await db.execute(BOOK_INSERT, row)
        return UpsertResult(record=row_to_record(row), action="inserted")

    current = dict(zip(BOOK_COLUMNS, existing, strict=True))
    merged = dict(current)
    merged["title"] = incoming["title"]
    for column in MERGED_COLUMNS:
        if not is_blank(incoming[column]):
            merged[column] = incoming[column]
    merged["last_seen_at"] = timestamp

    assignments = ["title", *MERGED_COLUMNS, "last_seen_at"]
    await db.execute(
        f"UPDATE books SET {', '.join(f'{col} = ?' for col in assignments)} "
        "WHERE isbn13 = ?",
        (*(merged[col] for col in assignments), isbn13),
    )
    return UpsertResult(
        record=row_to_record(tuple(merged[col] for col in BOOK_COLUMNS)),
        action="updated",
    )
