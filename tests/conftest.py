"""Shared pytest fixtures."""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
import pytest_asyncio

from bookwatch.shared.constants import API_KEY_ENV, DAILY_LIMIT_ENV, TIMEZONE_ENV
from bookwatch.store.client import LocalDatabaseClient
from bookwatch.store.database import open_database


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(API_KEY_ENV, "test-key")
    monkeypatch.delenv(DAILY_LIMIT_ENV, raising=False)
    monkeypatch.delenv(TIMEZONE_ENV, raising=False)


@pytest_asyncio.fixture
async def db() -> AsyncIterator[LocalDatabaseClient]:
    client = await open_database(":memory:")
    try:
        yield client
    finally:
        await client.close()
