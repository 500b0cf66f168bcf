"""Tests for catalog record upserts."""

from __future__ import annotations

import pytest

from bookwatch.shared.errors import ValidationError
from bookwatch.store.client import LocalDatabaseClient
from bookwatch.store.models import BookInput, BookLink
from bookwatch.store.records import count_books, get_book, upsert_book

FIRST = "2024-01-01T00:00:00.000+00:00"
SECOND = "2024-02-01T00:00:00.000+00:00"


def make_book(**overrides: object) -> BookInput:
    values: dict[str, object] = {
        "isbn13": "978-4-87311-908-3",
        "title": "Original Title",
        "source": "google_books",
        "authors": ["Author A"],
        "publisher": "O'Reilly Japan",
        "description": "First description",
        "links": [BookLink(label="Google Books", url="https://example.com/a")],
    }
    values.update(overrides)
    return BookInput(**values)  # type: ignore[arg-type]


async def test_insert_stores_canonical_record(db: LocalDatabaseClient) -> None:
    result = await upsert_book(db, make_book(), now=FIRST)

    assert result.action == "inserted"
    record = result.record
    assert record.isbn13 == "9784873119083"
    assert record.first_seen_at == FIRST
    assert record.last_seen_at == FIRST
    assert record.last_delivered_at is None
    assert record.authors == ["Author A"]
    assert record.links == [BookLink(label="Google Books", url="https://example.com/a")]

    stored = await get_book(db, "9784873119083")
    assert stored == record
    assert await count_books(db) == 1


async def test_update_keeps_fields_missing_from_new_fetch(
    db: LocalDatabaseClient,
) -> None:
    await upsert_book(db, make_book(), now=FIRST)
    result = await upsert_book(
        db,
        make_book(
            title="New Title",
            description="",
            publisher=None,
            authors=[],
            links=[],
        ),
        now=SECOND,
    )

    assert result.action == "updated"
    record = result.record
    assert record.title == "New Title"
    assert record.description == "First description"
    assert record.publisher == "O'Reilly Japan"
    assert record.authors == ["Author A"]
    assert len(record.links) == 1
    assert record.first_seen_at == FIRST
    assert record.last_seen_at == SECOND
    assert await get_book(db, "9784873119083") == record
    assert await count_books(db) == 1


async def test_update_overwrites_with_non_empty_values(db: LocalDatabaseClient) -> None:
    await upsert_book(db, make_book(), now=FIRST)
    result = await upsert_book(
        db,
        make_book(description="Better description", authors=["A", "B"]),
        now=SECOND,
    )
    assert result.record.description == "Better description"
    assert result.record.authors == ["A", "B"]


async def test_isbn10_and_isbn13_share_one_record(db: LocalDatabaseClient) -> None:
    first = await upsert_book(db, make_book(isbn13="0306406152"), now=FIRST)
    second = await upsert_book(db, make_book(isbn13="9780306406157"), now=SECOND)

    assert first.action == "inserted"
    assert second.action == "updated"
    assert (await get_book(db, "0-306-40615-2")) is not None
    assert await count_books(db) == 1


async def test_invalid_identifier_is_rejected(db: LocalDatabaseClient) -> None:
    with pytest.raises(ValidationError):
        await upsert_book(db, make_book(isbn13="12345"))
    assert await count_books(db) == 0


async def test_get_book_with_garbage_returns_none(db: LocalDatabaseClient) -> None:
    assert await get_book(db, "not an isbn") is None
    assert await get_book(db, "9784873119083") is None
