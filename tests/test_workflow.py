"""Tests for the delivery workflow."""

from __future__ import annotations

from collections.abc import Sequence

import pytest

from bookwatch.notify.workflow import deliver_channel
from bookwatch.store.client import LocalDatabaseClient
from bookwatch.store.ledger import delivery_stats, list_batches
from bookwatch.store.models import BookInput, CatalogRecord
from bookwatch.store.records import upsert_book


class RecordingNotifier:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[tuple[str, list[str]]] = []

    async def send(self, channel: str, records: Sequence[CatalogRecord]) -> None:
        self.calls.append((channel, [record.isbn13 for record in records]))
        if self.fail:
            raise RuntimeError("smtp down")


async def seed(db: LocalDatabaseClient, count: int) -> None:
    for index in range(count):
        await upsert_book(
            db,
            BookInput(
                isbn13=f"978400000{index:04d}",
                title=f"Book {index}",
                source="google_books",
            ),
            now=f"2024-01-{index + 1:02d}T00:00:00.000+00:00",
        )
    await db.commit()


async def test_successful_send_is_recorded(db: LocalDatabaseClient) -> None:
    await seed(db, 3)
    notifier = RecordingNotifier()

    outcome = await deliver_channel(db, "combined", 2, notifier)

    assert outcome.sent is True
    assert outcome.recorded == 2
    assert notifier.calls == [("combined", ["9784000000002", "9784000000001"])]
    assert outcome.stats is not None
    assert outcome.stats.undelivered == 1

    follow_up = await deliver_channel(db, "combined", 2, notifier)
    assert [record.isbn13 for record in follow_up.selected] == ["9784000000000"]


async def test_failed_send_records_nothing(db: LocalDatabaseClient) -> None:
    await seed(db, 2)
    notifier = RecordingNotifier(fail=True)

    with pytest.raises(RuntimeError):
        await deliver_channel(db, "combined", 10, notifier)

    assert (await delivery_stats(db, "combined")).delivered == 0
    assert await list_batches(db) == []


async def test_nothing_to_deliver_skips_notifier(db: LocalDatabaseClient) -> None:
    notifier = RecordingNotifier()

    outcome = await deliver_channel(db, "combined", 10, notifier)

    assert outcome.selected == []
    assert outcome.sent is False
    assert notifier.calls == []


async def test_dry_run_selects_without_recording(db: LocalDatabaseClient) -> None:
    await seed(db, 2)
    notifier = RecordingNotifier()

    outcome = await deliver_channel(db, "combined", 10, notifier, dry_run=True)

    assert len(outcome.selected) == 2
    assert outcome.sent is False
    assert notifier.calls == []
    assert (await delivery_stats(db, "combined")).delivered == 0
