"""Daily upstream call quota."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from bookwatch.shared.constants import (
    DAILY_LIMIT_ENV,
    DEFAULT_DAILY_LIMIT,
    DEFAULT_TIMEZONE,
    GOOGLE_BOOKS_SOURCE,
    TIMEZONE_ENV,
)
from bookwatch.shared.converters import to_int
from bookwatch.shared.errors import ConfigurationError
from bookwatch.shared.timeutil import local_date
from bookwatch.store.client import DatabaseClient
from bookwatch.store.usage import get_api_usage, increment_api_usage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuotaCheck:
    """
    Read-only quota snapshot.

    Args:
        allowed: Whether another call fits under the limit.
        current: Calls recorded today.
        limit: Daily limit.
        date: Quota day in the configured timezone.
    """

    allowed: bool
    current: int
    limit: int
    date: str


@dataclass(frozen=True)
class QuotaConsume:
    """
    Result of recording one call.

    Args:
        success: Whether the call was counted.
        current: Calls recorded today after the attempt.
        limit: Daily limit.
    """

    success: bool
    current: int
    limit: int


def daily_limit_from_env() -> int:
    """
    Read the daily limit override.

    Returns:
        Positive limit from the environment, else the default.
    """
    parsed = to_int(os.environ.get(DAILY_LIMIT_ENV, "").strip() or None)
    if parsed is not None and parsed > 0:
        return parsed
    return DEFAULT_DAILY_LIMIT


def timezone_from_env() -> str:
    return os.environ.get(TIMEZONE_ENV, "").strip() or DEFAULT_TIMEZONE


class QuotaGate:
    """
    Per-provider daily call counter backed by the api_usage table.

    The day boundary follows the configured timezone, not UTC.

    Args:
        db: Database client.
        provider: Provider name used as the counter key.
        daily_limit: Maximum calls per day.
        timezone: IANA timezone name that defines the day.
        clock: Optional callable returning the current instant.
    """

    def __init__(
        self,
        db: DatabaseClient,
        provider: str = GOOGLE_BOOKS_SOURCE,
        daily_limit: int = DEFAULT_DAILY_LIMIT,
        timezone: str = DEFAULT_TIMEZONE,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        try:
            ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ConfigurationError(f"Unknown timezone: {timezone}") from exc
        self.db = db
        self.provider = provider
        self.daily_limit = daily_limit
        self.timezone = timezone
        self._clock = clock

    @classmethod
    def from_env(
        cls, db: DatabaseClient, provider: str = GOOGLE_BOOKS_SOURCE
    ) -> QuotaGate:
        """
        Build a gate from DAILY_QUERY_LIMIT and APP_TZ.

        Args:
            db: Database client.
            provider: Provider name.

        Returns:
            Configured gate.
        """
        return cls(
            db,
            provider=provider,
            daily_limit=daily_limit_from_env(),
            timezone=timezone_from_env(),
        )

    def today(self) -> str:
        now = self._clock() if self._clock else None
        return local_date(self.timezone, now)

    async def check(self) -> QuotaCheck:
        """
        Report whether another call is allowed today. Does not write.

        Returns:
            Quota snapshot.
        """
        date = self.today()
        current = await get_api_usage(self.db, date, self.provider)
        return QuotaCheck(
            allowed=current < self.daily_limit,
            current=current,
            limit=self.daily_limit,
            date=date,
        )

    async def consume(self) -> QuotaConsume:
        """
        Count one successful call.

        Usage is re-validated before incrementing; the increment itself is a
        single conditional statement so the counter never passes the limit.

        Returns:
            Consume result.
        """
        date = self.today()
        before = await get_api_usage(self.db, date, self.provider)
        if before >= self.daily_limit:
            logger.warning(
                "Quota already exhausted for %s on %s (%d/%d)",
                self.provider,
                date,
                before,
                self.daily_limit,
            )
            return QuotaConsume(success=False, current=before, limit=self.daily_limit)
        counted = await increment_api_usage(
            self.db, date, self.provider, self.daily_limit
        )
        current = await get_api_usage(self.db, date, self.provider)
        return QuotaConsume(success=counted, current=current, limit=self.daily_limit)

    async def status_line(self) -> str:
        """
        Format a one-line quota summary.

        Returns:
            Summary such as ``Quota: 3/95 used (92 remaining) [2024-05-01]``.
        """
        quota = await self.check()
        remaining = max(0, quota.limit - quota.current)
        return (
            f"Quota: {quota.current}/{quota.limit} used "
            f"({remaining} remaining) [{quota.date}]"
        )
