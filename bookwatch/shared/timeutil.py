"""Timestamp helpers."""

from __future__ import annotations

import re
from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo


def utc_now_iso() -> str:
    """
    Build current UTC ISO-8601 timestamp.

    Returns:
        Timestamp string.
    """
    return datetime.now(UTC).isoformat(timespec="milliseconds")


def utc_iso_days_ago(days: int) -> str:
    """
    Build the UTC ISO-8601 timestamp for a point in the past.

    Args:
        days: Number of days before now.

    Returns:
        Timestamp string comparable with stored timestamps.
    """
    moment = datetime.now(UTC) - timedelta(days=days)
    return moment.isoformat(timespec="milliseconds")


def parse_iso(value: str | None) -> datetime | None:
    """
    Parse a stored ISO-8601 timestamp.

    Args:
        value: Timestamp text.

    Returns:
        Aware datetime, or None when missing or malformed.
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def local_date(timezone: str, now: datetime | None = None) -> str:
    """
    Format the calendar date in a named timezone.

    Args:
        timezone: IANA timezone name.
        now: Optional reference instant; defaults to the current time.

    Returns:
        Date string in YYYY-MM-DD form.
    """
    moment = now or datetime.now(UTC)
    return moment.astimezone(ZoneInfo(timezone)).strftime("%Y-%m-%d")


_DURATION_PATTERN = re.compile(r"^(\d+)([dwm])$", re.IGNORECASE)
_DURATION_DAYS = {"d": 1, "w": 7, "m": 30}


def parse_duration_days(value: str) -> int:
    """
    Convert a short duration such as ``7d``, ``2w`` or ``1m`` to days.

    A month counts as 30 days.

    Args:
        value: Duration text.

    Returns:
        Number of days.

    Raises:
        ValueError: The value is not a supported duration.
    """
    match = _DURATION_PATTERN.match(value.strip())
    if not match:
        raise ValueError(
            f"Invalid duration format: {value} (use formats like 7d, 30d, 1w, 1m)"
        )
    return int(match.group(1)) * _DURATION_DAYS[match.group(2).lower()]
