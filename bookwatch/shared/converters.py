"""Shared conversion helpers for bookwatch modules."""

from __future__ import annotations

import json
from typing import Any

from bookwatch.shared.constants import SQLITE_INT_MAX, SQLITE_INT_MIN


def to_int(value: Any) -> int | None:
    """
    Convert a value to an integer within SQLite integer bounds.

    Args:
        value: Input value.

    Returns:
        Parsed integer when valid, otherwise None.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return None
    if SQLITE_INT_MIN <= parsed <= SQLITE_INT_MAX:
        return parsed
    return None


def to_text(value: Any) -> str | None:
    """
    Convert a value to stripped text, mapping blank values to None.

    Args:
        value: Input value.

    Returns:
        Stripped string or None.
    """
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def to_string_list(value: Any) -> list[str]:
    """
    Normalize a list-like value into non-empty strings.

    Args:
        value: Input value.

    Returns:
        Normalized string list.
    """
    if not isinstance(value, list):
        return []
    normalized: list[str] = []
    for item in value:
        text = str(item).strip()
        if text:
            normalized.append(text)
    return normalized


def to_json_text(value: Any) -> str | None:
    """
    Serialize a list or mapping for a TEXT column.

    Args:
        value: Value to serialize.

    Returns:
        JSON text, or None for empty values.
    """
    if not value:
        return None
    return json.dumps(value, ensure_ascii=False)


def parse_json_list(value: str | None) -> list[Any]:
    """
    Parse a JSON array stored in a TEXT column.

    Args:
        value: Stored JSON text.

    Returns:
        Parsed list, or an empty list for missing or malformed values.
    """
    if not value:
        return []
    try:
        parsed = json.loads(value)
    except (TypeError, ValueError):
        return []
    return parsed if isinstance(parsed, list) else []


def is_blank(value: Any) -> bool:
    """
    Check whether a fetched field carries no usable content.

    Args:
        value: Field value.

    Returns:
        True for None, whitespace-only strings, and empty collections.
    """
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False
