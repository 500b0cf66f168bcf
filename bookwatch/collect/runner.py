"""Scheduled collection across configured channels."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Literal

from tqdm import tqdm

from bookwatch.catalog.client import GoogleBooksClient
from bookwatch.collect.channels import ChannelConfig
from bookwatch.collect.collector import CollectResult, Collector
from bookwatch.collect.quota import QuotaGate
from bookwatch.shared.constants import DUE_INTERVAL_SECONDS, GOOGLE_BOOKS_PAGE_CAP
from bookwatch.shared.errors import ConfigurationError
from bookwatch.shared.timeutil import parse_iso
from bookwatch.store.client import DatabaseClient
from bookwatch.store.job_state import (
    get_job_state,
    mark_run_started,
    mark_run_succeeded,
)

logger = logging.getLogger(__name__)

ChannelStatus = Literal["collected", "not_due", "disabled", "failed", "aborted"]


@dataclass(frozen=True)
class ChannelOutcome:
    """
    Outcome for one channel in a run.

    Args:
        channel: Channel name.
        status: What happened to the channel.
        result: Collection summary when collection ran.
        message: Failure description.
    """

    channel: str
    status: ChannelStatus
    result: CollectResult | None = None
    message: str | None = None


@dataclass
class RunReport:
    """
    Summary of a scheduled run.

    Args:
        outcomes: One entry per configured channel, in order.
        fatal_error: Configuration problem that aborted the run.
    """

    outcomes: list[ChannelOutcome] = field(default_factory=list)
    fatal_error: str | None = None

    @property
    def inserted(self) -> int:
        return sum(item.result.inserted for item in self.outcomes if item.result)

    @property
    def updated(self) -> int:
        return sum(item.result.updated for item in self.outcomes if item.result)

    @property
    def skipped(self) -> int:
        return sum(item.result.skipped for item in self.outcomes if item.result)

    @property
    def ok(self) -> bool:
        return self.fatal_error is None and all(
            item.status != "failed" for item in self.outcomes
        )


def is_due(
    last_success_at: str | None,
    now: datetime,
    interval_seconds: int = DUE_INTERVAL_SECONDS,
) -> bool:
    """
    Decide whether a channel should run.

    Args:
        last_success_at: Timestamp of the last successful run.
        now: Reference instant.
        interval_seconds: Minimum time between successful runs.

    Returns:
        True when the channel never succeeded or the interval has elapsed.
    """
    last_success = parse_iso(last_success_at)
    if last_success is None:
        return True
    return (now - last_success).total_seconds() >= interval_seconds


async def run_channels(
    db: DatabaseClient,
    client: GoogleBooksClient,
    quota: QuotaGate,
    channels: Sequence[ChannelConfig],
    force: bool = False,
    now: datetime | None = None,
    interval_seconds: int = DUE_INTERVAL_SECONDS,
    page_cap: int = GOOGLE_BOOKS_PAGE_CAP,
    show_progress: bool = False,
) -> RunReport:
    """
    Collect every enabled, due channel in order.

    An upstream failure stops only the affected channel. A configuration
    problem aborts the rest of the run, since no channel could succeed.

    Args:
        db: Database client.
        client: Catalog search client.
        quota: Daily quota gate shared by all channels.
        channels: Configured channels.
        force: Run channels regardless of the due interval.
        now: Reference instant for due checks.
        interval_seconds: Minimum time between successful runs.
        page_cap: Largest page size to request.
        show_progress: Whether to display channel progress with tqdm.

    Returns:
        Run report.
    """
    reference = now or datetime.now(UTC)
    collector = Collector(db, client, quota, page_cap=page_cap)
    report = RunReport()

    progress = None
    if show_progress:
        progress = tqdm(total=len(channels), desc="Channels", unit="channel")

    try:
        for channel in channels:
            if progress:
                progress.set_postfix_str(channel.name)
            if report.fatal_error is not None:
                report.outcomes.append(
                    ChannelOutcome(channel.name, "aborted", message=report.fatal_error)
                )
            elif not channel.enabled:
                report.outcomes.append(ChannelOutcome(channel.name, "disabled"))
            else:
                report.outcomes.append(
                    await _run_channel(
                        db,
                        collector,
                        channel,
                        report,
                        reference,
                        force,
                        interval_seconds,
                    )
                )
            if progress:
                progress.update(1)
    finally:
        if progress:
            progress.close()
    return report


async def _run_channel(
    db: DatabaseClient,
    collector: Collector,
    channel: ChannelConfig,
    report: RunReport,
    now: datetime,
    force: bool,
    interval_seconds: int,
) -> ChannelOutcome:
    state = await get_job_state(db, channel.name)
    last_success_at = state.last_success_at if state else None
    if not force and not is_due(last_success_at, now, interval_seconds):
        logger.info(
            "[Due] channel=%s last_success_at=%s due=false",
            channel.name,
            last_success_at,
        )
        return ChannelOutcome(channel.name, "not_due")

    logger.info(
        "Processing channel %s (max_per_run=%d)", channel.name, channel.max_per_run
    )
    await mark_run_started(db, channel.name, now.isoformat(timespec="milliseconds"))
    try:
        result = await collector.collect(
            channel.name, channel.queries, channel.max_per_run, channel.options
        )
    except ConfigurationError as exc:
        logger.error("Configuration error on %s: %s", channel.name, exc)
        report.fatal_error = str(exc)
        return ChannelOutcome(channel.name, "failed", message=str(exc))

    if result.stop_reason == "error":
        return ChannelOutcome(
            channel.name, "failed", result=result, message=result.error
        )

    await mark_run_succeeded(db, channel.name, now.isoformat(timespec="milliseconds"))
    logger.info(
        "Channel %s: inserted=%d updated=%d skipped=%d stop=%s",
        channel.name,
        result.inserted,
        result.updated,
        result.skipped,
        result.stop_reason,
    )
    return ChannelOutcome(channel.name, "collected", result=result)
