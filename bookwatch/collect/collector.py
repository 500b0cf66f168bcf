"""Quota-aware, resumable pagination over the catalog search."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

from bookwatch.catalog.client import GoogleBooksClient, SearchOptions
from bookwatch.catalog.transforms import volume_to_book
from bookwatch.collect.query_hash import (
    combine_queries,
    compute_query_set_hash,
    short_hash,
)
from bookwatch.collect.quota import QuotaGate
from bookwatch.shared.constants import GOOGLE_BOOKS_PAGE_CAP
from bookwatch.shared.errors import UpstreamError, ValidationError
from bookwatch.store.client import DatabaseClient
from bookwatch.store.cursors import load_cursor, save_cursor
from bookwatch.store.records import upsert_book

logger = logging.getLogger(__name__)

StopReason = Literal["quota", "max_per_run", "exhausted", "error"]


@dataclass(frozen=True)
class CollectResult:
    """
    Summary of one collection run for a channel.

    Args:
        channel: Channel name.
        query_hash: Cursor key derived from the query set.
        stop_reason: Why the run stopped.
        start_index: Cursor offset after the run.
        is_exhausted: Whether the query set is fully consumed.
        pages: Successful upstream calls made.
        inserted: New records stored.
        updated: Existing records refreshed.
        skipped: Hits without a usable ISBN or with a malformed payload.
        returned: Hits returned upstream across all pages.
        total_items: Latest upstream total estimate.
        error: Failure message when stop_reason is "error".
    """

    channel: str
    query_hash: str
    stop_reason: StopReason
    start_index: int
    is_exhausted: bool
    pages: int = 0
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    returned: int = 0
    total_items: int = 0
    error: str | None = None

    @property
    def collected(self) -> int:
        return self.inserted + self.updated


class Collector:
    """
    Drive paginated searches for a channel until a stop condition holds.

    Stop conditions, checked in order on every iteration: the cursor is
    exhausted, the daily quota is spent, an upstream call failed, or the
    run stored ``max_per_run`` records. The cursor is persisted after every
    successful page and only advances by the number of hits actually
    returned.

    Args:
        db: Database client.
        client: Catalog search client.
        quota: Daily quota gate for the client's provider.
        page_cap: Largest page size to request.
    """

    def __init__(
        self,
        db: DatabaseClient,
        client: GoogleBooksClient,
        quota: QuotaGate,
        page_cap: int = GOOGLE_BOOKS_PAGE_CAP,
    ) -> None:
        self.db = db
        self.client = client
        self.quota = quota
        self.page_cap = page_cap

    async def collect(
        self,
        channel: str,
        queries: Sequence[str],
        max_per_run: int,
        options: SearchOptions | None = None,
    ) -> CollectResult:
        """
        Collect up to ``max_per_run`` records for a channel.

        Args:
            channel: Channel name.
            queries: Search terms; combined with OR into one upstream query.
            max_per_run: Record budget for this run.
            options: Upstream search filters.

        Returns:
            Run summary.

        Raises:
            ConfigurationError: The client is not configured.
            ValueError: No usable query was given.
        """
        query = combine_queries(queries)
        if not query:
            raise ValueError(f"Channel {channel} has no queries")
        query_hash = compute_query_set_hash(queries)
        tag = f"{channel}:{short_hash(query_hash)}"
        cursor = await load_cursor(self.db, channel, query_hash)
        start_index = cursor.start_index

        if cursor.is_exhausted:
            logger.warning("[%s] Already exhausted, skipping collection", tag)
            return CollectResult(
                channel=channel,
                query_hash=query_hash,
                stop_reason="exhausted",
                start_index=start_index,
                is_exhausted=True,
            )

        stop_reason: StopReason = "max_per_run"
        is_exhausted = False
        pages = inserted = updated = skipped = returned = total_items = 0
        error: str | None = None

        while inserted + updated < max_per_run:
            quota = await self.quota.check()
            if not quota.allowed:
                logger.info(
                    "[%s] Stopped: quota limit reached (%d/%d), next startIndex=%d",
                    tag,
                    quota.current,
                    quota.limit,
                    start_index,
                )
                stop_reason = "quota"
                break

            page_size = min(self.page_cap, max_per_run - (inserted + updated))
            try:
                page = await self.client.search(query, start_index, page_size, options)
            except UpstreamError as exc:
                logger.error(
                    "[%s] Stopped: API error, preserving startIndex=%d: %s",
                    tag,
                    start_index,
                    exc,
                )
                stop_reason = "error"
                error = str(exc)
                break

            consumed = await self.quota.consume()
            if not consumed.success:
                logger.warning(
                    "[%s] Call succeeded but quota could not be counted (%d/%d)",
                    tag,
                    consumed.current,
                    consumed.limit,
                )
            pages += 1
            returned += page.returned
            total_items = page.total_items
            skipped += page.invalid
            logger.info(
                "[%s] Page %d: startIndex=%d, returned=%d, totalItems=%d",
                tag,
                pages,
                start_index,
                page.returned,
                page.total_items,
            )

            for volume in page.volumes:
                book = volume_to_book(volume)
                if book is None:
                    skipped += 1
                    logger.debug("[%s] Skipping volume %s without ISBN", tag, volume.id)
                    continue
                try:
                    result = await upsert_book(self.db, book)
                except ValidationError as exc:
                    skipped += 1
                    logger.debug("[%s] Skipping volume %s: %s", tag, volume.id, exc)
                    continue
                if result.action == "inserted":
                    inserted += 1
                else:
                    updated += 1

            if page.returned == 0 or start_index + page.returned >= page.total_items:
                start_index += page.returned
                is_exhausted = True
                stop_reason = "exhausted"
                await save_cursor(self.db, channel, query_hash, start_index, True)
                await self.db.commit()
                logger.warning(
                    "[%s] Exhausted: startIndex=%d >= totalItems=%d",
                    tag,
                    start_index,
                    page.total_items,
                )
                break

            start_index += page.returned
            await save_cursor(self.db, channel, query_hash, start_index, False)
            await self.db.commit()

        if stop_reason == "max_per_run":
            logger.info(
                "[%s] Stopped: max_per_run reached (%d/%d), next startIndex=%d",
                tag,
                inserted + updated,
                max_per_run,
                start_index,
            )
        if not is_exhausted and pages and returned < total_items:
            logger.info(
                "[%s] Bottleneck: API returned (%d) << totalItems (%d) "
                "-> pagination in progress",
                tag,
                returned,
                total_items,
            )

        return CollectResult(
            channel=channel,
            query_hash=query_hash,
            stop_reason=stop_reason,
            start_index=start_index,
            is_exhausted=is_exhausted,
            pages=pages,
            inserted=inserted,
            updated=updated,
            skipped=skipped,
            returned=returned,
            total_items=total_items,
            error=error,
        )
