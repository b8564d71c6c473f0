"""Exception hierarchy for fetching, parsing, verifying and storing mirror data.

Callers normally only need :class:`MirrorError`; the subclasses exist so the
sync engine can tell a recoverable transport hiccup on a single namespace page
apart from everything that must abort the run.
"""

from __future__ import annotations

from typing import Optional

__all__ = [
    "MirrorError",
    "FetchError",
    "TransportFailure",
    "ParseError",
    "InvalidIntegrityFormat",
    "IntegrityMismatch",
    "ChecksumMismatch",
    "MetadataMissing",
    "BlobNotFound",
    "StoreIOError",
    "GemNotStoredError",
]


class MirrorError(RuntimeError):
    """Base exception for every mirror failure."""


class FetchError(MirrorError):
    """Raised when a registry request fails or answers with a non-success status."""

    def __init__(self, message: str, *, url: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class TransportFailure(FetchError):
    """Raised when no response was received at all (DNS, connect, read errors)."""


class ParseError(MirrorError):
    """Raised when compact-index text is malformed."""


class InvalidIntegrityFormat(MirrorError, ValueError):
    """Raised when an integrity string or hex digest cannot be decoded."""


class IntegrityMismatch(MirrorError):
    """Raised when bytes do not hash to the identifier they were claimed under."""

    def __init__(self, message: str, *, expected: object = None, actual: object = None) -> None:
        super().__init__(message)
        self.expected = expected
        self.actual = actual


ChecksumMismatch = IntegrityMismatch


class MetadataMissing(MirrorError):
    """Raised when a .gem archive has no readable ``metadata.gz`` member."""


class BlobNotFound(MirrorError):
    """Raised when a blob is requested that the store does not hold."""


class StoreIOError(MirrorError):
    """Raised when the store cannot read or write its files."""


class GemNotStoredError(MirrorError):
    """Raised when listing encounters a gem whose blobs were never stored."""
