"""Shared exceptions for the runledger package."""

from __future__ import annotations


class ReportFormatError(Exception):
    """Archive matches no supported report shape, or a required document is invalid.

    This is the only error that aborts an ingestion. ``path`` points at the
    offending entry or field when one is known.
    """

    def __init__(self, message: str, path: str | None = None) -> None:
        self.path = path
        if path:
            message = f"{message} (at {path})"
        super().__init__(message)


class DuplicateLookupFailure(Exception):
    """The duplicate-check query itself failed."""
