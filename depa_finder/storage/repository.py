"""Key-value repository over the ``kv_store`` table.

:class:`KeyValueStore` is the durable storage behind the session layer: one
string key per record, the value stored verbatim.  SQLite failures are
re-raised as :class:`~depa_finder.core.exceptions.StorageError` so callers
deal with a single error type.

Typical usage::

    conn = await open_db()
    store = KeyValueStore(conn)

    await store.set("depa_finder:user", '{"name": "Ana"}')
    raw = await store.get("depa_finder:user")
    await store.delete("depa_finder:user")
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

import aiosqlite

from depa_finder.core.exceptions import StorageError

__all__ = ["KeyValueStore"]

logger = logging.getLogger(__name__)


class KeyValueStore:
    """Data-access object for the ``kv_store`` table.

    Owns no connection lifecycle; the caller supplies an open
    :class:`aiosqlite.Connection` (see
    :func:`~depa_finder.storage.database.open_db`) and closes it.
    """

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def get(self, key: str) -> str | None:
        """Return the value stored under *key*, or ``None`` if absent.

        Raises:
            StorageError: If the database cannot be read.
        """
        try:
            cursor = await self._conn.execute(
                "SELECT value FROM kv_store WHERE key = ? LIMIT 1",
                (key,),
            )
            row = await cursor.fetchone()
        except (aiosqlite.Error, ValueError) as exc:
            raise StorageError(f"Could not read key {key!r}: {exc}") from exc
        return None if row is None else row[0]

    async def set(self, key: str, value: str) -> None:  # noqa: A003
        """Insert or replace the value stored under *key*.

        Raises:
            StorageError: If the database cannot be written.
        """
        now_utc = datetime.now(UTC).isoformat()
        try:
            await self._conn.execute(
                """
                INSERT INTO kv_store (key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                (key, value, now_utc),
            )
            await self._conn.commit()
        except (aiosqlite.Error, ValueError) as exc:
            raise StorageError(f"Could not write key {key!r}: {exc}") from exc
        logger.debug("Stored key %s (%d chars)", key, len(value))

    async def delete(self, key: str) -> None:
        """Remove *key*; a missing key is not an error.

        Raises:
            StorageError: If the database cannot be written.
        """
        try:
            await self._conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            await self._conn.commit()
        except (aiosqlite.Error, ValueError) as exc:
            raise StorageError(f"Could not delete key {key!r}: {exc}") from exc
        logger.debug("Deleted key %s", key)
