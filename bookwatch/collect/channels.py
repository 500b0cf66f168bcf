"""Channel configuration parsing."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from bookwatch.catalog.client import SearchOptions
from bookwatch.shared.constants import (
    DEFAULT_LANG_RESTRICT,
    DEFAULT_MAIL_LIMIT,
    DEFAULT_MAX_PER_RUN,
    DEFAULT_PRINT_TYPE,
)
from bookwatch.shared.converters import to_int, to_string_list, to_text

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChannelDefaults:
    """
    Values applied to channels that do not override them.

    Args:
        mail_limit: Records handed to the notifier per delivery.
        max_per_run: Records collected per run.
        print_type: Upstream printType filter.
        lang_restrict: Upstream langRestrict filter.
    """

    mail_limit: int = DEFAULT_MAIL_LIMIT
    max_per_run: int = DEFAULT_MAX_PER_RUN
    print_type: str = DEFAULT_PRINT_TYPE
    lang_restrict: str = DEFAULT_LANG_RESTRICT


@dataclass(frozen=True)
class ChannelConfig:
    """
    One collection channel.

    Args:
        name: Channel name; keys cursors, job state, and the ledger.
        queries: Search terms.
        enabled: Whether scheduled runs include the channel.
        max_per_run: Records collected per run.
        mail_limit: Records handed to the notifier per delivery.
        options: Upstream search filters.
    """

    name: str
    queries: list[str]
    enabled: bool = True
    max_per_run: int = DEFAULT_MAX_PER_RUN
    mail_limit: int = DEFAULT_MAIL_LIMIT
    options: SearchOptions = field(default_factory=SearchOptions)


def positive_or(value: Any, fallback: int, label: str) -> int:
    """
    Parse a positive integer setting.

    Args:
        value: Raw value; None selects the fallback.
        fallback: Value used when the setting is absent.
        label: Setting name for error messages.

    Returns:
        Parsed value.
    """
    if value is None:
        return fallback
    parsed = to_int(value)
    if parsed is None or parsed < 1:
        raise ValueError(f"{label} must be a positive integer")
    return parsed


def parse_defaults(item: Any) -> ChannelDefaults:
    """
    Parse the defaults section.

    Args:
        item: Defaults object; missing sections use built-in defaults.

    Returns:
        Parsed defaults.
    """
    if not isinstance(item, dict):
        item = {}
    mail_limit = item.get("mail_limit", item.get("limit"))
    return ChannelDefaults(
        mail_limit=positive_or(mail_limit, DEFAULT_MAIL_LIMIT, "defaults.mail_limit"),
        max_per_run=positive_or(
            item.get("max_per_run"), DEFAULT_MAX_PER_RUN, "defaults.max_per_run"
        ),
        print_type=to_text(item.get("print_type")) or DEFAULT_PRINT_TYPE,
        lang_restrict=to_text(item.get("lang_restrict")) or DEFAULT_LANG_RESTRICT,
    )


def parse_channel(
    item: dict[str, Any], index: int, defaults: ChannelDefaults
) -> ChannelConfig:
    """
    Parse one channel entry.

    ``queries`` takes a list; a single ``query`` string is accepted for older
    files.

    Args:
        item: Channel object.
        index: Position in the channels array.
        defaults: Parsed defaults.

    Returns:
        Parsed channel.
    """
    name = to_text(item.get("name"))
    if not name:
        raise ValueError(f"channels[{index}].name is required")

    queries = to_string_list(item.get("queries"))
    if not queries:
        legacy = to_text(item.get("query"))
        queries = [legacy] if legacy else []
    if not queries:
        raise ValueError(f"Channel {name} requires a queries array or a query string")

    enabled = item.get("enabled", True)
    if not isinstance(enabled, bool):
        raise ValueError(f"Channel {name}: enabled must be a boolean")

    google_books = item.get("google_books")
    if not isinstance(google_books, dict):
        google_books = {}
    options = SearchOptions(
        print_type=to_text(google_books.get("printType")) or defaults.print_type,
        lang_restrict=to_text(google_books.get("langRestrict"))
        or defaults.lang_restrict,
    )

    return ChannelConfig(
        name=name,
        queries=queries,
        enabled=enabled,
        max_per_run=positive_or(
            item.get("max_per_run"), defaults.max_per_run, f"{name}.max_per_run"
        ),
        mail_limit=positive_or(
            item.get("mail_limit"), defaults.mail_limit, f"{name}.mail_limit"
        ),
        options=options,
    )


def parse_channels(payload: Any) -> tuple[ChannelDefaults, list[ChannelConfig]]:
    """
    Parse a decoded channel file.

    Args:
        payload: Decoded JSON document.

    Returns:
        Defaults and every channel, enabled or not.
    """
    if not isinstance(payload, dict):
        raise ValueError("Channel file must contain a JSON object")
    defaults = parse_defaults(payload.get("defaults"))

    raw_channels = payload.get("channels")
    if not isinstance(raw_channels, list):
        raise ValueError("Channel file requires a channels array")

    channels: list[ChannelConfig] = []
    seen: set[str] = set()
    for index, item in enumerate(raw_channels):
        if not isinstance(item, dict):
            raise ValueError(f"channels[{index}] must be an object")
        channel = parse_channel(item, index, defaults)
        if channel.name in seen:
            raise ValueError(f"Duplicate channel name: {channel.name}")
        seen.add(channel.name)
        channels.append(channel)
    return defaults, channels


def load_channels(path: Path) -> tuple[ChannelDefaults, list[ChannelConfig]]:
    """
    Load the channel file.

    Args:
        path: Channel JSON path.

    Returns:
        Defaults and every channel, enabled or not.
    """
    if not path.exists():
        raise FileNotFoundError(f"Channel file missing: {path}")
    with open(path, encoding="utf-8") as handle:
        payload = json.load(handle)
    defaults, channels = parse_channels(payload)
    logger.debug("Loaded %d channel(s) from %s", len(channels), path)
    return defaults, channels
