"""depa_finder exception taxonomy.

Every custom exception inherits from :class:`DepaFinderError`.  Exceptions are
organised by architectural layer so callers can catch at the right granularity:

    Layer hierarchy
    ---------------
    DepaFinderError
    ├── ConfigError
    ├── StorageError
    ├── SourceError
    │   ├── FetchError
    │   └── SourceParseError
    └── CredentialError

None of these are fatal.  :class:`FetchError` is recovered by a user-triggered
retry, :class:`CredentialError` by re-login, and :class:`StorageError` is
swallowed by the session layer and treated as "no session".

Usage:

    from depa_finder.core.exceptions import FetchError

    raise FetchError("http://localhost:8000", "Connection refused") from exc
"""

from __future__ import annotations

import logging

__all__ = [
    "DepaFinderError",
    "ConfigError",
    "StorageError",
    "SourceError",
    "FetchError",
    "SourceParseError",
    "CredentialError",
]

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------


class DepaFinderError(Exception):
    """Root exception for all depa_finder errors."""


# ---------------------------------------------------------------------------
# Config layer
# ---------------------------------------------------------------------------


class ConfigError(DepaFinderError):
    """Raised when the application configuration is invalid or incomplete."""


# ---------------------------------------------------------------------------
# Storage layer
# ---------------------------------------------------------------------------


class StorageError(DepaFinderError):
    """Raised when the durable key-value store cannot be read or written.

    Examples:
        - The SQLite file cannot be opened.
        - A persisted identity record is not valid JSON or has the wrong shape.
    """


# ---------------------------------------------------------------------------
# Listing source layer
# ---------------------------------------------------------------------------


class SourceError(DepaFinderError):
    """Base class for listing-source errors.

    Args:
        source: Label of the remote source (usually its base URL).
        message: Human-readable error description.
    """

    def __init__(self, source: str, message: str) -> None:
        self.source = source
        self.detail = message
        super().__init__(f"[{source}] {message}")


class FetchError(SourceError):
    """Raised when the catalog fetch fails.

    Covers non-success HTTP status codes, timeouts and network errors.

    Args:
        source: Label of the remote source.
        message: Human-readable error description.
        status_code: HTTP status code, if a response was received.
    """

    def __init__(self, source: str, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(source, message)


class SourceParseError(SourceError):
    """Raised when the catalog response body is not the expected JSON shape."""


# ---------------------------------------------------------------------------
# Login layer
# ---------------------------------------------------------------------------


class CredentialError(DepaFinderError):
    """Raised when a login credential is missing, rejected or undecodable.

    The message is user-facing and shown inline next to the login prompt.
    """
