"""Tests for scheduled channel runs."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import httpx
import pytest

from bookwatch.catalog.client import GoogleBooksClient
from bookwatch.collect.channels import ChannelConfig
from bookwatch.collect.quota import QuotaGate
from bookwatch.collect.runner import is_due, run_channels
from bookwatch.shared.constants import API_KEY_ENV
from bookwatch.store.client import LocalDatabaseClient
from bookwatch.store.job_state import get_job_state
from tests.fakes import FakeCatalog

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


def channel(name: str, *queries: str, enabled: bool = True) -> ChannelConfig:
    return ChannelConfig(
        name=name, queries=list(queries) or [name], enabled=enabled, max_per_run=5
    )


def gate(db: LocalDatabaseClient) -> QuotaGate:
    return QuotaGate(db, daily_limit=95, timezone="UTC")


def test_is_due() -> None:
    assert is_due(None, NOW) is True
    assert is_due((NOW - timedelta(hours=1)).isoformat(), NOW) is False
    assert is_due((NOW - timedelta(hours=3)).isoformat(), NOW) is True


async def test_runs_enabled_channels_and_records_job_state(
    db: LocalDatabaseClient,
) -> None:
    catalog = FakeCatalog(total=3)
    channels = [channel("python"), channel("off", enabled=False)]

    report = await run_channels(db, catalog.client(), gate(db), channels, now=NOW)

    statuses = [(item.channel, item.status) for item in report.outcomes]
    assert statuses == [("python", "collected"), ("off", "disabled")]
    assert report.inserted == 3
    assert report.ok is True
    state = await get_job_state(db, "python")
    assert state is not None
    assert state.last_success_at == NOW.isoformat(timespec="milliseconds")
    assert await get_job_state(db, "off") is None


async def test_due_interval_and_force(db: LocalDatabaseClient) -> None:
    catalog = FakeCatalog(total=20)
    channels = [channel("python")]
    client = catalog.client()

    await run_channels(db, client, gate(db), channels, now=NOW)
    later = NOW + timedelta(hours=1)
    skipped = await run_channels(db, client, gate(db), channels, now=later)
    forced = await run_channels(db, client, gate(db), channels, force=True, now=later)

    assert skipped.outcomes[0].status == "not_due"
    assert forced.outcomes[0].status == "collected"
    assert len(catalog.requests) == 2


async def test_upstream_failure_is_isolated(db: LocalDatabaseClient) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if "broken" in request.url.params["q"]:
            return httpx.Response(503, text="unavailable")
        return httpx.Response(
            200,
            json={
                "totalItems": 1,
                "items": [
                    {
                        "id": "v1",
                        "volumeInfo": {
                            "title": "Only",
                            "industryIdentifiers": [
                                {"type": "ISBN_13", "identifier": "9784000000001"}
                            ],
                        },
                    }
                ],
            },
        )

    client = GoogleBooksClient(
        api_key="k", retries=0, transport=httpx.MockTransport(handler)
    )
    channels = [channel("bad", "broken"), channel("good", "fine")]

    report = await run_channels(db, client, gate(db), channels, now=NOW)

    bad, good = report.outcomes
    assert bad.status == "failed"
    assert bad.result is not None and bad.result.stop_reason == "error"
    assert good.status == "collected"
    assert report.ok is False
    bad_state = await get_job_state(db, "bad")
    assert bad_state is not None
    assert bad_state.last_run_at is not None
    assert bad_state.last_success_at is None


async def test_configuration_error_aborts_remaining_channels(
    db: LocalDatabaseClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv(API_KEY_ENV, raising=False)
    catalog = FakeCatalog(total=3)
    channels = [channel("first"), channel("second")]

    report = await run_channels(
        db, catalog.client(api_key=None), gate(db), channels, now=NOW
    )

    assert report.fatal_error is not None
    assert [item.status for item in report.outcomes] == ["failed", "aborted"]
    assert catalog.requests == []
