"""depa_finder application settings loaded from environment and ``.env`` files.

Uses :mod:`pydantic_settings` to parse environment variables (and optionally
an ``.env`` file) into a validated settings object.  The field name is the
**lowercase** version of the env-var name (e.g. ``API_BASE_URL`` →
``api_base_url``).

Typical usage::

    from depa_finder.core.settings import Settings

    settings = Settings()
    print(settings.listings_url)      # http://localhost:8000/api/listings
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = ["Settings", "LISTINGS_PATH"]

logger = logging.getLogger(__name__)

#: Path of the catalog endpoint, relative to ``api_base_url``.
LISTINGS_PATH: str = "/api/listings"


class Settings(BaseSettings):
    """Central application configuration.

    Values are loaded in priority order:

    1. Actual environment variables (highest priority).
    2. ``.env`` file in the working directory.
    3. Field defaults (lowest priority).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Listing backend
    # ------------------------------------------------------------------
    api_base_url: str = Field(
        default="http://localhost:8000",
        description="Base URL of the listing backend.",
    )
    http_max_attempts: int = Field(
        default=3,
        ge=1,
        description="Catalog fetch attempts, including the first one.",
    )
    http_timeout: float = Field(
        default=20.0,
        gt=0.0,
        description="Read timeout for the catalog request, in seconds.",
    )

    # ------------------------------------------------------------------
    # Deck
    # ------------------------------------------------------------------
    batch_size: int = Field(
        default=5,
        ge=1,
        description="Maximum number of listings in the displayed window.",
    )
    swipe_threshold: float = Field(
        default=140.0,
        gt=0.0,
        description="Drag distance that commits a swipe.",
    )
    feedback_clear_delay: float = Field(
        default=3.0,
        gt=0.0,
        description="Seconds before the swipe feedback banner clears itself.",
    )

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------
    database_path: str = Field(
        default="data/depa_finder.db",
        description="Path to the SQLite key-value store.",
    )
    google_client_id: str = Field(
        default="your-google-oauth-client-id.apps.googleusercontent.com",
        description="OAuth client id the login widget is registered with.",
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = Field(default="INFO", description="Logging level.")
    log_format: str = Field(default="text", description="Log format: 'text' or 'json'.")

    # ------------------------------------------------------------------
    # Field validators
    # ------------------------------------------------------------------

    @field_validator("api_base_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("api_base_url must not be blank")
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR"}
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"log_level must be one of {allowed}, got {v!r}")
        return v_upper

    @field_validator("log_format")
    @classmethod
    def _validate_log_format(cls, v: str) -> str:
        allowed = {"text", "json"}
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"log_format must be one of {allowed}, got {v!r}")
        return v_lower

    # ------------------------------------------------------------------
    # Derived helpers
    # ------------------------------------------------------------------

    @property
    def listings_url(self) -> str:
        """Absolute URL of the catalog endpoint."""
        return f"{self.api_base_url}{LISTINGS_PATH}"

    @property
    def database_path_resolved(self) -> Path:
        """Return the database path as a resolved :class:`~pathlib.Path`."""
        return Path(self.database_path).resolve()
