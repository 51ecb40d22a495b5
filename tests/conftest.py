"""Shared pytest fixtures and configuration for the depa_finder test suite.

This file is loaded automatically by pytest before any test module.
It provides project-wide fixtures used across unit and integration tests.
"""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncGenerator

import aiosqlite
import pytest
from pydantic_settings import SettingsConfigDict

from depa_finder.core import configure_logging
from depa_finder.core.settings import Settings
from depa_finder.storage.database import open_db


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _configure_test_logging() -> None:
    """Force DEBUG logging in text format for every test.

    ``force=True`` replaces whatever handler an earlier test (or pytest's own
    ``log_cli`` handler) left on the root logger.
    """
    configure_logging(level="DEBUG", fmt="text", force=True)


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove all depa_finder env vars for the duration of a test.

    Also disables pydantic-settings `.env` file loading so that values from a
    local `.env` file do not leak into Settings isolation tests.
    """
    prefixes = (
        "API_",
        "BATCH_",
        "SWIPE_",
        "FEEDBACK_",
        "HTTP_",
        "DATABASE_",
        "GOOGLE_",
        "LOG_LEVEL",
        "LOG_FORMAT",
    )
    for key in list(os.environ):
        if any(key.startswith(prefix) for prefix in prefixes):
            monkeypatch.delenv(key, raising=False)

    # pydantic-settings reads the .env file directly, not via os.environ.
    monkeypatch.setattr(
        Settings,
        "model_config",
        SettingsConfigDict(
            env_file=None,
            env_file_encoding="utf-8",
            extra="ignore",
        ),
    )


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------


@pytest.fixture()
async def memory_db() -> AsyncGenerator[aiosqlite.Connection, None]:
    """Open an in-memory SQLite database with the schema applied."""
    conn = await open_db(":memory:")
    try:
        yield conn
    finally:
        await conn.close()


# ---------------------------------------------------------------------------
# Misc helpers
# ---------------------------------------------------------------------------


@pytest.fixture()
def logger() -> logging.Logger:
    """Return a ``logging.Logger`` scoped to the running test."""
    return logging.getLogger("tests")
