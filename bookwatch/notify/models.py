"""Delivery models and the notifier interface."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

from bookwatch.store.models import CatalogRecord, DeliveryStats


class Notifier(Protocol):
    """
    Downstream hand-off for selected records.

    ``send`` must raise when the hand-off fails; returning normally means the
    records reached the channel and will be recorded as delivered.
    """

    async def send(self, channel: str, records: Sequence[CatalogRecord]) -> None:
        """
        Deliver records to a channel.

        Args:
            channel: Channel name.
            records: Records to deliver.

        Returns:
            None.
        """


@dataclass(frozen=True)
class DeliveryOutcome:
    """
    Result of one delivery attempt.

    Args:
        channel: Channel name.
        selected: Records picked for the hand-off.
        recorded: Ledger entries created.
        sent: Whether the notifier was called and succeeded.
        stats: Channel counts after the attempt.
    """

    channel: str
    selected: list[CatalogRecord] = field(default_factory=list)
    recorded: int = 0
    sent: bool = False
    stats: DeliveryStats | None = None


class ConsoleNotifier:
    """Print selected records to stdout."""

    async def send(self, channel: str, records: Sequence[CatalogRecord]) -> None:
        print(f"[{channel}] {len(records)} book(s)")
        for record in records:
            authors = ", ".join(record.authors)
            suffix = f" / {authors}" if authors else ""
            print(f"  {record.isbn13}  {record.title}{suffix}")
