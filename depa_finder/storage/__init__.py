"""SQLite-backed key-value storage for the persisted session identity."""

from depa_finder.storage.database import DEFAULT_DB_PATH, create_schema, open_db
from depa_finder.storage.repository import KeyValueStore

__all__ = [
    "DEFAULT_DB_PATH",
    "open_db",
    "create_schema",
    "KeyValueStore",
]
