"""Exception types shared across bookwatch modules."""

from __future__ import annotations


class BookwatchError(Exception):
    """Base class for bookwatch errors."""


class ConfigurationError(BookwatchError):
    """
    Fatal configuration problem detected before any upstream request.

    Raised for missing credentials or unusable settings; aborts the run
    for the affected provider.
    """


class UpstreamError(BookwatchError):
    """
    Upstream search call failed or returned an unusable payload.

    Args:
        message: Human readable failure description.
        source: Upstream provider name.
    """

    def __init__(self, message: str, source: str) -> None:
        super().__init__(message)
        self.source = source


class ValidationError(BookwatchError):
    """Identifier or record input that cannot be normalized."""
