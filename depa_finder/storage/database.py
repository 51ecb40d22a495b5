"""SQLite database initialisation for depa_finder.

This module is responsible for:

* Opening (or creating) the SQLite file.
* Configuring PRAGMA settings (WAL journal mode).
* Bootstrapping the schema via ``CREATE TABLE IF NOT EXISTS``, safe to
  call on every startup because the statement is idempotent.

Typical usage::

    from depa_finder.storage.database import open_db

    async def main() -> None:
        conn = await open_db(Path("data/depa_finder.db"))
        # ... pass conn to KeyValueStore ...
        await conn.close()
"""

from __future__ import annotations

import logging
from pathlib import Path

import aiosqlite

__all__ = [
    "DEFAULT_DB_PATH",
    "open_db",
    "create_schema",
]

logger = logging.getLogger(__name__)

#: Fallback database path when no explicit path is passed to :func:`open_db`.
DEFAULT_DB_PATH: Path = Path("depa_finder.db")

#: ``kv_store`` holds small JSON documents under string keys.
#:
#: key         Namespaced key, e.g. ``depa_finder:user``.
#: value       JSON text; the store never interprets it.
#: updated_at  ISO-8601 UTC timestamp of the last write.
_DDL_KV_STORE = """\
CREATE TABLE IF NOT EXISTS kv_store (
    key         TEXT  NOT NULL,
    value       TEXT  NOT NULL,
    updated_at  TEXT  NOT NULL,
    PRIMARY KEY (key)
)"""


async def open_db(path: Path | str | None = None) -> aiosqlite.Connection:
    """Open (or create) the SQLite database and bootstrap the schema.

    Args:
        path: Filesystem path for the SQLite file, or ``":memory:"``.
            Defaults to :data:`DEFAULT_DB_PATH`.

    Returns:
        An open :class:`aiosqlite.Connection`.  The caller closes it.

    Raises:
        aiosqlite.OperationalError: If the file cannot be opened or created.
    """
    if str(path) == ":memory:":
        target: Path | str = ":memory:"
    else:
        target = Path(path or DEFAULT_DB_PATH)
        target.parent.mkdir(parents=True, exist_ok=True)

    logger.debug("Opening SQLite database at %s", target)

    conn: aiosqlite.Connection = await aiosqlite.connect(target)
    conn.row_factory = aiosqlite.Row

    await _configure_pragmas(conn)
    await create_schema(conn)

    logger.info("SQLite key-value store ready at %s", target)
    return conn


async def create_schema(conn: aiosqlite.Connection) -> None:
    """Create all required tables if they do not already exist."""
    await conn.execute(_DDL_KV_STORE)
    await conn.commit()
    logger.debug("Schema bootstrap complete (kv_store table verified)")


async def _configure_pragmas(conn: aiosqlite.Connection) -> None:
    result = await conn.execute("PRAGMA journal_mode=WAL")
    row = await result.fetchone()
    mode = row[0] if row else "unknown"
    if mode != "wal":
        logger.debug("SQLite journal_mode is %r (expected for in-memory databases)", mode)
