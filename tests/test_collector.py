"""Tests for the paginated collector."""

from __future__ import annotations

import httpx
import pytest

from bookwatch.catalog.client import GoogleBooksClient, SearchOptions
from bookwatch.collect.collector import Collector
from bookwatch.collect.query_hash import compute_query_set_hash
from bookwatch.collect.quota import QuotaGate
from bookwatch.shared.constants import API_KEY_ENV
from bookwatch.shared.errors import ConfigurationError
from bookwatch.store.client import LocalDatabaseClient
from bookwatch.store.cursors import get_cursor, save_cursor
from bookwatch.store.records import count_books, get_book
from tests.fakes import FakeCatalog, isbn_for, make_volume

QUERIES = ["python", "機械学習"]


def build_collector(
    db: LocalDatabaseClient,
    client: GoogleBooksClient,
    daily_limit: int = 95,
) -> Collector:
    quota = QuotaGate(db, daily_limit=daily_limit, timezone="UTC")
    return Collector(db, client, quota, page_cap=10)


async def used_calls(db: LocalDatabaseClient) -> int:
    row = await db.fetchone("SELECT COALESCE(SUM(count), 0) FROM api_usage")
    assert row is not None
    return int(row[0])


async def test_pagination_resumes_until_exhausted(db: LocalDatabaseClient) -> None:
    catalog = FakeCatalog(total=25)
    collector = build_collector(db, catalog.client())

    first = await collector.collect("python", QUERIES, max_per_run=10)
    second = await collector.collect("python", QUERIES, max_per_run=10)
    third = await collector.collect("python", QUERIES, max_per_run=10)

    assert [first.stop_reason, second.stop_reason, third.stop_reason] == [
        "max_per_run",
        "max_per_run",
        "exhausted",
    ]
    assert [first.returned, second.returned, third.returned] == [10, 10, 5]
    assert third.start_index == 25
    assert third.is_exhausted is True

    cursor = await get_cursor(db, "python", compute_query_set_hash(QUERIES))
    assert cursor is not None
    assert cursor.start_index == 25
    assert cursor.is_exhausted is True
    assert await count_books(db) == 25

    requests_before = len(catalog.requests)
    fourth = await collector.collect("python", QUERIES, max_per_run=10)
    assert fourth.stop_reason == "exhausted"
    assert fourth.pages == 0
    assert len(catalog.requests) == requests_before
    assert await used_calls(db) == 3


async def test_single_run_pages_until_exhausted(db: LocalDatabaseClient) -> None:
    catalog = FakeCatalog(total=25)
    collector = build_collector(db, catalog.client())

    result = await collector.collect("python", QUERIES, max_per_run=100)

    assert result.stop_reason == "exhausted"
    assert result.pages == 3
    assert result.inserted == 25
    assert result.total_items == 25
    starts = [int(request.url.params["startIndex"]) for request in catalog.requests]
    assert starts == [0, 10, 20]


async def test_request_parameters(db: LocalDatabaseClient) -> None:
    catalog = FakeCatalog(total=3)
    collector = build_collector(db, catalog.client())

    await collector.collect(
        "python",
        QUERIES,
        max_per_run=7,
        options=SearchOptions(print_type="all", lang_restrict="en"),
    )

    params = catalog.requests[0].url.params
    assert params["q"] == "python OR 機械学習"
    assert params["key"] == "test-key"
    assert params["maxResults"] == "7"
    assert params["startIndex"] == "0"
    assert params["printType"] == "all"
    assert params["langRestrict"] == "en"


async def test_quota_stops_before_any_further_call(db: LocalDatabaseClient) -> None:
    catalog = FakeCatalog(total=100)
    collector = build_collector(db, catalog.client(), daily_limit=1)

    result = await collector.collect("python", QUERIES, max_per_run=50)

    assert result.stop_reason == "quota"
    assert result.pages == 1
    assert result.start_index == 10
    assert len(catalog.requests) == 1
    assert await used_calls(db) == 1

    again = await collector.collect("python", QUERIES, max_per_run=50)
    assert again.stop_reason == "quota"
    assert again.pages == 0
    assert len(catalog.requests) == 1
    cursor = await get_cursor(db, "python", compute_query_set_hash(QUERIES))
    assert cursor is not None
    assert cursor.start_index == 10


async def test_error_keeps_cursor_and_quota(db: LocalDatabaseClient) -> None:
    catalog = FakeCatalog(total=30, fail_from=10)
    collector = build_collector(db, catalog.client())

    result = await collector.collect("python", QUERIES, max_per_run=30)

    assert result.stop_reason == "error"
    assert result.error is not None and "500" in result.error
    assert result.is_exhausted is False
    assert result.start_index == 10
    assert result.inserted == 10
    assert await used_calls(db) == 1
    cursor = await get_cursor(db, "python", compute_query_set_hash(QUERIES))
    assert cursor is not None
    assert cursor.start_index == 10
    assert cursor.is_exhausted is False

    catalog.fail_from = None
    resumed = await collector.collect("python", QUERIES, max_per_run=30)
    assert resumed.stop_reason == "exhausted"
    assert resumed.inserted == 20
    assert resumed.start_index == 30


async def test_malformed_payload_is_an_error(db: LocalDatabaseClient) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"totalItems": "many", "items": "nope"})

    client = GoogleBooksClient(
        api_key="k", retries=0, transport=httpx.MockTransport(handler)
    )
    collector = build_collector(db, client)

    result = await collector.collect("python", QUERIES, max_per_run=10)

    assert result.stop_reason == "error"
    assert await used_calls(db) == 0
    assert await get_cursor(db, "python", compute_query_set_hash(QUERIES)) is None


async def test_items_without_isbn_are_skipped_but_advance_cursor(
    db: LocalDatabaseClient,
) -> None:
    catalog = FakeCatalog(
        total=6,
        volume_factory=lambda index: make_volume(index, with_isbn=index % 2 == 0),
    )
    collector = build_collector(db, catalog.client())

    result = await collector.collect("python", QUERIES, max_per_run=10)

    assert result.stop_reason == "exhausted"
    assert result.returned == 6
    assert result.skipped == 3
    assert result.inserted == 3
    assert result.start_index == 6
    assert await get_book(db, isbn_for(0)) is not None
    assert await get_book(db, isbn_for(1)) is None


async def test_empty_page_marks_exhausted_without_moving(
    db: LocalDatabaseClient,
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"kind": "books#volumes", "totalItems": 500})

    client = GoogleBooksClient(
        api_key="k", retries=0, transport=httpx.MockTransport(handler)
    )
    collector = build_collector(db, client)
    query_hash = compute_query_set_hash(QUERIES)
    await save_cursor(db, "python", query_hash, 40, False)

    result = await collector.collect("python", QUERIES, max_per_run=10)

    assert result.stop_reason == "exhausted"
    assert result.start_index == 40
    cursor = await get_cursor(db, "python", query_hash)
    assert cursor is not None
    assert cursor.is_exhausted is True
    assert cursor.start_index == 40


async def test_rediscovered_items_count_as_updates(db: LocalDatabaseClient) -> None:
    catalog = FakeCatalog(total=5)
    collector = build_collector(db, catalog.client())

    first = await collector.collect("python", QUERIES, max_per_run=10)
    other = await collector.collect("ml", QUERIES, max_per_run=10)

    assert (first.inserted, first.updated) == (5, 0)
    assert (other.inserted, other.updated) == (0, 5)
    assert await count_books(db) == 5


async def test_missing_api_key_fails_before_any_request(
    db: LocalDatabaseClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv(API_KEY_ENV, raising=False)
    catalog = FakeCatalog(total=5)
    collector = build_collector(db, catalog.client(api_key=None))

    with pytest.raises(ConfigurationError):
        await collector.collect("python", QUERIES, max_per_run=10)

    assert catalog.requests == []
    assert await used_calls(db) == 0


async def test_zero_budget_makes_no_request(db: LocalDatabaseClient) -> None:
    catalog = FakeCatalog(total=5)
    collector = build_collector(db, catalog.client())

    result = await collector.collect("python", QUERIES, max_per_run=0)

    assert result.stop_reason == "max_per_run"
    assert result.pages == 0
    assert catalog.requests == []


async def test_query_order_shares_a_cursor(db: LocalDatabaseClient) -> None:
    catalog = FakeCatalog(total=25)
    collector = build_collector(db, catalog.client())

    await collector.collect("python", ["a", "b"], max_per_run=10)
    result = await collector.collect("python", ["b", "a"], max_per_run=10)

    assert result.start_index == 20


def single_page_handler(items: list[object], total: int) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        start = int(request.url.params["startIndex"])
        page = items if start == 0 else []
        return httpx.Response(200, json={"totalItems": total, "items": page})

    return httpx.MockTransport(handler)


async def test_hit_with_incomplete_identifier_is_skipped(
    db: LocalDatabaseClient,
) -> None:
    bad = {
        "id": "broken",
        "volumeInfo": {"title": "No id", "industryIdentifiers": [{"type": "OTHER"}]},
    }
    items = [make_volume(0), bad, make_volume(2)]
    client = GoogleBooksClient(
        api_key="k", retries=0, transport=single_page_handler(items, total=10)
    )
    collector = build_collector(db, client)

    result = await collector.collect("python", QUERIES, max_per_run=2)

    assert result.stop_reason == "max_per_run"
    assert result.inserted == 2
    assert result.skipped == 1
    assert result.start_index == 3
    assert await used_calls(db) == 1
    cursor = await get_cursor(db, "python", compute_query_set_hash(QUERIES))
    assert cursor is not None
    assert cursor.start_index == 3


async def test_malformed_hits_do_not_reject_the_page(
    db: LocalDatabaseClient,
) -> None:
    items = [make_volume(0), "junk", {"volumeInfo": {"title": "no id"}}]
    client = GoogleBooksClient(
        api_key="k", retries=0, transport=single_page_handler(items, total=3)
    )
    collector = build_collector(db, client)

    result = await collector.collect("python", QUERIES, max_per_run=10)

    assert result.stop_reason == "exhausted"
    assert result.returned == 3
    assert result.inserted == 1
    assert result.skipped == 2
    assert result.start_index == 3


async def test_retried_request_counts_one_call(db: LocalDatabaseClient) -> None:
    attempts: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(1)
        if len(attempts) == 1:
            return httpx.Response(503, text="busy")
        return httpx.Response(200, json={"totalItems": 1, "items": [make_volume(0)]})

    client = GoogleBooksClient(
        api_key="k",
        retries=1,
        retry_delay=0,
        transport=httpx.MockTransport(handler),
    )
    collector = build_collector(db, client)

    result = await collector.collect("python", QUERIES, max_per_run=10)

    assert result.stop_reason == "exhausted"
    assert result.pages == 1
    assert len(attempts) == 2
    assert await used_calls(db) == 1
