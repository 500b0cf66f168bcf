"""Delivery workflow: select, hand off, then record."""

from __future__ import annotations

import logging

from bookwatch.notify.models import DeliveryOutcome, Notifier
from bookwatch.notify.selection import select_undelivered
from bookwatch.store.client import DatabaseClient
from bookwatch.store.ledger import delivery_stats, record_delivery

logger = logging.getLogger(__name__)


async def deliver_channel(
    db: DatabaseClient,
    channel: str,
    limit: int,
    notifier: Notifier,
    dry_run: bool = False,
) -> DeliveryOutcome:
    """
    Deliver the newest undelivered records of a channel.

    The ledger is written only after the notifier returns; a notifier
    exception propagates and leaves the ledger untouched so the same
    records are offered again next time.

    Args:
        db: Database client.
        channel: Channel name.
        limit: Maximum records per delivery.
        notifier: Downstream hand-off.
        dry_run: Select without sending or recording.

    Returns:
        Delivery outcome.
    """
    selected = await select_undelivered(db, channel, limit)
    logger.info("[Selector] channel=%s selected=%d", channel, len(selected))
    if not selected:
        stats = await delivery_stats(db, channel)
        logger.info(
            "[Selector] channel=%s has no undelivered books (total=%d delivered=%d)",
            channel,
            stats.total,
            stats.delivered,
        )
        return DeliveryOutcome(channel=channel, stats=stats)

    if dry_run:
        return DeliveryOutcome(
            channel=channel,
            selected=selected,
            stats=await delivery_stats(db, channel),
        )

    await notifier.send(channel, selected)
    recorded = await record_delivery(db, channel, [item.isbn13 for item in selected])
    return DeliveryOutcome(
        channel=channel,
        selected=selected,
        recorded=recorded,
        sent=True,
        stats=await delivery_stats(db, channel),
    )
