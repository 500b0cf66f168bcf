"""Store record types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

UpsertAction = Literal["inserted", "updated"]


@dataclass(frozen=True)
class BookLink:
    """
    Related link shown next to a catalog record.

    Args:
        label: Display label.
        url: Target URL.
    """

    label: str
    url: str


@dataclass(frozen=True)
class BookInput:
    """
    Freshly fetched catalog item before it is merged into the store.

    Args:
        isbn13: Raw identifier; normalized on upsert.
        title: Item title.
        source: Provenance source name.
        authors: Ordered author names.
        publisher: Publisher name.
        published_date: Publication date as reported upstream.
        description: Item description.
        cover_url: Cover image reference.
        links: Related links.
    """

    isbn13: str
    title: str
    source: str
    authors: list[str] = field(default_factory=list)
    publisher: str | None = None
    published_date: str | None = None
    description: str | None = None
    cover_url: str | None = None
    links: list[BookLink] = field(default_factory=list)


@dataclass(frozen=True)
class CatalogRecord:
    """
    Stored catalog item keyed by canonical ISBN-13.

    Args:
        isbn13: Canonical 13-digit identifier.
        title: Latest known title.
        authors: Ordered author names.
        publisher: Publisher name.
        published_date: Publication date.
        description: Description text.
        cover_url: Cover image reference.
        links: Related links.
        source: Provenance source name.
        first_seen_at: First discovery timestamp (UTC ISO-8601).
        last_seen_at: Latest discovery timestamp (UTC ISO-8601).
        last_delivered_at: Legacy single-channel delivery timestamp.
    """

    isbn13: str
    title: str
    authors: list[str]
    publisher: str | None
    published_date: str | None
    description: str | None
    cover_url: str | None
    links: list[BookLink]
    source: str
    first_seen_at: str
    last_seen_at: str
    last_delivered_at: str | None


@dataclass(frozen=True)
class UpsertResult:
    """
    Outcome of a record upsert.

    Args:
        record: Stored record after the merge.
        action: Whether the record was inserted or updated.
    """

    record: CatalogRecord
    action: UpsertAction


@dataclass(frozen=True)
class DeliveryBatch:
    """
    Immutable audit row for one delivery hand-off.

    Args:
        batch_id: Audit row id.
        channel: Channel name.
        delivered_at: Delivery timestamp.
        isbn13s: Every identifier included in the hand-off.
    """

    batch_id: int
    channel: str
    delivered_at: str
    isbn13s: list[str]


@dataclass(frozen=True)
class DeliveryStats:
    """
    Delivery counts for one channel.

    Args:
        total: Total catalog records.
        delivered: Distinct ledger identifiers for the channel that exist as records.
        undelivered: Difference of the two.
    """

    total: int
    delivered: int
    undelivered: int


@dataclass(frozen=True)
class CollectionCursor:
    """
    Persisted pagination position for one channel and query set.

    Args:
        channel: Channel name.
        query_hash: Hash of the normalized, sorted query set.
        start_index: Next upstream offset.
        is_exhausted: Whether the query set has been fully consumed.
        updated_at: Last update timestamp.
    """

    channel: str
    query_hash: str
    start_index: int
    is_exhausted: bool
    updated_at: str | None


@dataclass(frozen=True)
class JobState:
    """
    Last run bookkeeping for one channel.

    Args:
        channel: Channel name.
        last_run_at: Start of the latest run.
        last_success_at: End of the latest run that did not fail.
    """

    channel: str
    last_run_at: str | None
    last_success_at: str | None
