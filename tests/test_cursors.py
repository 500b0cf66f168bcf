"""Tests for persisted pagination cursors."""

from __future__ import annotations

import pytest

from bookwatch.store.client import LocalDatabaseClient
from bookwatch.store.cursors import (
    get_cursor,
    list_cursors,
    load_cursor,
    reset_cursors,
    save_cursor,
)


async def test_fresh_cursor_starts_at_zero(db: LocalDatabaseClient) -> None:
    assert await get_cursor(db, "python", "hash") is None
    cursor = await load_cursor(db, "python", "hash")
    assert cursor.start_index == 0
    assert cursor.is_exhausted is False


async def test_offset_never_moves_backwards(db: LocalDatabaseClient) -> None:
    await save_cursor(db, "python", "hash", 20, False)
    await save_cursor(db, "python", "hash", 10, False)

    cursor = await get_cursor(db, "python", "hash")
    assert cursor is not None
    assert cursor.start_index == 20


async def test_exhaustion_is_sticky(db: LocalDatabaseClient) -> None:
    await save_cursor(db, "python", "hash", 25, True)
    await save_cursor(db, "python", "hash", 25, False)

    cursor = await get_cursor(db, "python", "hash")
    assert cursor is not None
    assert cursor.is_exhausted is True


async def test_cursors_are_keyed_by_channel_and_hash(db: LocalDatabaseClient) -> None:
    await save_cursor(db, "python", "hash-a", 10, False)
    await save_cursor(db, "python", "hash-b", 30, False)
    await save_cursor(db, "rust", "hash-a", 40, True)

    assert (await load_cursor(db, "python", "hash-a")).start_index == 10
    assert (await load_cursor(db, "python", "hash-b")).start_index == 30
    assert (await load_cursor(db, "rust", "hash-a")).is_exhausted is True
    assert len(await list_cursors(db)) == 3
    assert len(await list_cursors(db, "python")) == 2


async def test_reset_removes_only_named_channel(db: LocalDatabaseClient) -> None:
    await save_cursor(db, "python", "hash-a", 25, True)
    await save_cursor(db, "python", "hash-b", 10, False)
    await save_cursor(db, "rust", "hash-a", 40, False)

    removed = await reset_cursors(db, "python")

    assert removed == 2
    assert (await load_cursor(db, "python", "hash-a")).start_index == 0
    assert (await load_cursor(db, "python", "hash-a")).is_exhausted is False
    assert (await load_cursor(db, "rust", "hash-a")).start_index == 40


async def test_negative_offset_is_rejected(db: LocalDatabaseClient) -> None:
    with pytest.raises(ValueError):
        await save_cursor(db, "python", "hash", -1, False)
