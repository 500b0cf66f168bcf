"""Query-set normalization and hashing for cursor keys."""

from __future__ import annotations

import hashlib
import re
from collections.abc import Iterable

_WHITESPACE = re.compile(r"\s+")


def normalize_query(query: str) -> str:
    """
    Trim a query and collapse inner whitespace.

    Case is kept because upstream query semantics depend on it.

    Args:
        query: Raw query text.

    Returns:
        Normalized query.
    """
    return _WHITESPACE.sub(" ", query.strip())


def compute_query_set_hash(queries: Iterable[str]) -> str:
    """
    Hash a set of queries independently of their order.

    Args:
        queries: Raw queries.

    Returns:
        SHA-256 hex digest of the sorted, normalized, newline-joined queries;
        blank queries are left out, as in combine_queries.
    """
    normalized = sorted(
        text for text in (normalize_query(query) for query in queries) if text
    )
    return hashlib.sha256("\n".join(normalized).encode("utf-8")).hexdigest()


def short_hash(value: str) -> str:
    """Shorten a hash for log lines."""
    return value[:16]


def combine_queries(queries: Iterable[str]) -> str:
    """
    Join queries into one upstream search expression.

    Args:
        queries: Raw queries.

    Returns:
        Non-empty normalized queries joined with " OR ".
    """
    parts = [normalize_query(query) for query in queries]
    return " OR ".join(part for part in parts if part)
