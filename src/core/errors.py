"""Error types shared by the core and its adapters.

Most failures in the pipeline are absorbed where they happen (a missing icon
is a normal outcome, not an error). These types exist for the few places where
something must propagate or be reported with context.
"""

from __future__ import annotations


class FaviconError(Exception):
    """Base class for every error raised by favicon-d2."""


class JoinStateError(FaviconError):
    """An illegal mutation of a resolution job's join state.

    Raised for programming errors only: growing the expectation after the HTML
    branch resolved, shrinking it, or reporting into a completed job.
    """


class ConversionError(FaviconError):
    """The external converter could not produce any output for a payload."""

    def __init__(self, source: str, detail: str) -> None:
        super().__init__(f"Cannot convert {source}: {detail}")
        self.source = source
        self.detail = detail
