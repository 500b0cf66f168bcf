"""ISBN normalization helpers."""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Any

from bookwatch.shared.constants import ISBN13_PREFIX

_SEPARATORS = re.compile(r"[\s\-]+")
_ISBN13_PATTERN = re.compile(r"^\d{13}$")
_ISBN10_PATTERN = re.compile(r"^\d{9}[\dXx]$")


def isbn13_check_digit(first_twelve: str) -> str:
    """
    Compute the ISBN-13 check digit.

    Args:
        first_twelve: The first 12 digits.

    Returns:
        Check digit as a single character.
    """
    total = sum(
        int(digit) * (1 if index % 2 == 0 else 3)
        for index, digit in enumerate(first_twelve)
    )
    return str((10 - total % 10) % 10)


def normalize_isbn13(raw: Any) -> str | None:
    """
    Normalize an ISBN-10 or ISBN-13 value to canonical ISBN-13.

    Hyphens and whitespace are stripped. A 13-digit value is returned as-is;
    a 10-character value (check character may be X) is converted by
    prefixing 978 to its first nine digits and recomputing the check digit.

    Args:
        raw: Raw identifier value.

    Returns:
        13-digit ISBN string, or None when the value is not an ISBN.
    """
    if raw is None or not isinstance(raw, str):
        return None
    cleaned = _SEPARATORS.sub("", raw)
    if _ISBN13_PATTERN.match(cleaned):
        return cleaned
    if _ISBN10_PATTERN.match(cleaned):
        body = ISBN13_PREFIX + cleaned[:9]
        return body + isbn13_check_digit(body)
    return None


def extract_isbn13(identifiers: Iterable[Any] | None) -> str | None:
    """
    Pick the canonical ISBN-13 from a list of industry identifiers.

    ISBN_13 entries win; ISBN_10 entries are converted as a fallback.
    Entries may be mappings with ``type``/``identifier`` keys or objects
    exposing the same attributes.

    Args:
        identifiers: Industry identifier entries.

    Returns:
        Canonical ISBN-13, or None when no usable entry exists.
    """
    if not identifiers:
        return None
    by_type: dict[str, list[Any]] = {}
    for entry in identifiers:
        if isinstance(entry, dict):
            kind = entry.get("type")
            value = entry.get("identifier")
        else:
            kind = getattr(entry, "type", None)
            value = getattr(entry, "identifier", None)
        if kind:
            by_type.setdefault(str(kind), []).append(value)
    for kind in ("ISBN_13", "ISBN_10"):
        for value in by_type.get(kind, []):
            isbn13 = normalize_isbn13(value)
            if isbn13 is not None:
                return isbn13
    return None
