"""Core domain models, settings, logging configuration, and shared utilities."""

from depa_finder.core.exceptions import (
    ConfigError,
    CredentialError,
    DepaFinderError,
    FetchError,
    SourceError,
    SourceParseError,
    StorageError,
)
from depa_finder.core.logging_config import JsonFormatter, configure_logging
from depa_finder.core.models import Identity, Listing, SwipeDirection, SwipeFeedback
from depa_finder.core.settings import Settings

__all__ = [
    # Logging
    "configure_logging",
    "JsonFormatter",
    # Domain models
    "Listing",
    "Identity",
    "SwipeDirection",
    "SwipeFeedback",
    # Settings
    "Settings",
    # Exceptions
    "DepaFinderError",
    "ConfigError",
    "StorageError",
    "SourceError",
    "FetchError",
    "SourceParseError",
    "CredentialError",
]
