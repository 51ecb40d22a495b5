"""Process-wide logging setup for depa_finder.

:func:`configure_logging` is called once by ``__main__`` before anything else
runs; library modules only ever do::

    import logging
    logger = logging.getLogger(__name__)

Two renderings are available: a human-readable text line tagged with the deck
session id, and one JSON object per line (:class:`JsonFormatter`) for log
shippers.  When no explicit value is passed, ``$LOG_LEVEL`` (DEBUG, INFO,
WARNING, ERROR) and ``$LOG_FORMAT`` (text, json) are consulted, falling back
to INFO and text.
"""

from __future__ import annotations

import json
import logging
import os
import sys
import traceback
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

__all__ = ["configure_logging", "JsonFormatter", "SESSION_ID_CTX", "SessionContextFilter"]

logger = logging.getLogger(__name__)

#: Identifier of the running deck session, set by
#: :meth:`depa_finder.app.DeckApp.start`.  Tasks spawned by the session (the
#: buffer's background fetches) inherit it.  ``"-"`` outside a session.
SESSION_ID_CTX: ContextVar[str] = ContextVar("session_id", default="-")

_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})
_FORMATS = frozenset({"text", "json"})

#: Loggers that are only interesting while debugging.
_CHATTY_LOGGERS = ("httpx", "httpcore", "asyncio", "aiosqlite")

_TEXT_LINE = "%(asctime)s %(levelname)-8s [%(session_id)s] %(name)s: %(message)s"
_TEXT_DATEFMT = "%Y-%m-%d %H:%M:%S"


class SessionContextFilter(logging.Filter):
    """Copy :data:`SESSION_ID_CTX` onto each record as ``session_id``."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        record.session_id = SESSION_ID_CTX.get()
        return True


def _pick(value: str | None, env_var: str, default: str, allowed: frozenset[str]) -> str:
    chosen = value or os.environ.get(env_var, default)
    chosen = chosen.lower() if env_var == "LOG_FORMAT" else chosen.upper()
    if chosen not in allowed:
        raise ValueError(
            f"Unknown {env_var} {chosen!r}. Must be one of: {', '.join(sorted(allowed))}"
        )
    return chosen


def configure_logging(
    level: str | None = None,
    fmt: str | None = None,
    *,
    force: bool = False,
) -> None:
    """Install the depa_finder handler on the root logger.

    Args:
        level: Level name; ``$LOG_LEVEL`` or ``INFO`` when omitted.
        fmt: ``"text"`` or ``"json"``; ``$LOG_FORMAT`` or ``text`` when omitted.
        force: Replace existing root handlers.  Without it, a second call only
            adjusts the level.

    Raises:
        ValueError: On an unknown level or format name.
    """
    level_name = _pick(level, "LOG_LEVEL", "INFO", _LEVELS)
    fmt_name = _pick(fmt, "LOG_FORMAT", "text", _FORMATS)

    root = logging.getLogger()
    root.setLevel(level_name)
    if root.handlers and not force:
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level_name)
    handler.addFilter(SessionContextFilter())
    handler.setFormatter(
        JsonFormatter()
        if fmt_name == "json"
        else logging.Formatter(fmt=_TEXT_LINE, datefmt=_TEXT_DATEFMT)
    )
    root.handlers.clear()
    root.addHandler(handler)

    if level_name != "DEBUG":
        for name in _CHATTY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def _utc_timestamp(record: logging.LogRecord) -> str:
    stamp = datetime.fromtimestamp(record.created, tz=UTC)
    return f"{stamp:%Y-%m-%dT%H:%M:%S}.{int(record.msecs):03d}Z"


class JsonFormatter(logging.Formatter):
    """Render a record as a single-line JSON document.

    Example line::

        {"ts": "2026-10-18T12:34:56.789Z", "level": "INFO",
         "logger": "depa_finder.deck.buffer",
         "message": "Catalog fetched: 5 displayed, 3 in pool",
         "extra": {"event": "FETCH_OK", "session_id": "a3f2b1c0"}}

    Anything passed through ``extra=`` (plus ``session_id``) lands under
    ``"extra"``.  ``"exc_info"`` / ``"stack_info"`` appear only when set.
    """

    #: Standard LogRecord attributes, kept out of ``"extra"``.
    _STANDARD_ATTRS: frozenset[str] = frozenset(
        vars(logging.LogRecord("", 0, "", 0, "", (), None))
    ) | {"message", "asctime"}

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003
        record.message = record.getMessage()
        ts = _utc_timestamp(record)

        document: dict[str, Any] = {
            "ts": ts,
            "level": record.levelname,
            "logger": record.name,
            "message": record.message,
            "extra": {
                key: value
                for key, value in vars(record).items()
                if key not in self._STANDARD_ATTRS
            },
        }
        if record.exc_info:
            document["exc_info"] = self.formatException(record.exc_info)
        elif record.exc_text:
            document["exc_info"] = record.exc_text
        if record.stack_info:
            document["stack_info"] = self.formatStack(record.stack_info)

        try:
            return json.dumps(document, default=str)
        except Exception:  # pragma: no cover
            return json.dumps(
                {
                    "ts": ts,
                    "level": "ERROR",
                    "logger": __name__,
                    "message": f"Could not serialise log record from {record.name}",
                    "exc_info": traceback.format_exc(),
                    "extra": {},
                }
            )
