"""Structured log event name constants for the deck pipeline.

Every key transition emits a log record with an ``event`` field (passed via
``extra={"event": events.X}``).  In ``LOG_FORMAT=json`` mode the value
surfaces under the ``extra`` key of each JSON line; in text mode the message
text is self-describing and the event is not interpolated.

Usage example::

    import logging
    from depa_finder.core import events

    logger = logging.getLogger(__name__)

    logger.info("Catalog fetched", extra={"event": events.FETCH_OK})
"""

from __future__ import annotations

__all__ = [
    # Buffer lifecycle
    "FETCH_START",
    "FETCH_OK",
    "FETCH_ERROR",
    "FETCH_STALE",
    "BUFFER_REFILL",
    # Deck decisions
    "LISTING_CONSUMED",
    "LISTING_LIKED",
    "SWIPE_COMMITTED",
    "SWIPE_REJECTED",
    # Session
    "SESSION_RESTORED",
    "SESSION_SAVED",
    "SESSION_CLEARED",
    "LOGIN_FAILED",
]

# ---------------------------------------------------------------------------
# Buffer lifecycle
# ---------------------------------------------------------------------------

#: A catalog fetch was issued (carries the in-flight token).
FETCH_START: str = "FETCH_START"

#: A catalog fetch resolved and its result was applied to the buffer.
FETCH_OK: str = "FETCH_OK"

#: A catalog fetch failed; ``error`` was set and prior listings kept.
FETCH_ERROR: str = "FETCH_ERROR"

#: A catalog fetch resolved after a newer fetch was issued (or after
#: teardown) and its result was discarded.
FETCH_STALE: str = "FETCH_STALE"

#: The displayed window was refilled from the reserve pool.
BUFFER_REFILL: str = "BUFFER_REFILL"

# ---------------------------------------------------------------------------
# Deck decisions
# ---------------------------------------------------------------------------

#: A listing was removed from the displayed window.
LISTING_CONSUMED: str = "LISTING_CONSUMED"

#: A listing was appended to the likes collection.
LISTING_LIKED: str = "LISTING_LIKED"

#: A drag gesture committed to ``left`` or ``right``.
SWIPE_COMMITTED: str = "SWIPE_COMMITTED"

#: A drag gesture crossed the threshold vertically and was rejected.
SWIPE_REJECTED: str = "SWIPE_REJECTED"

# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

#: A persisted identity was read back at startup.
SESSION_RESTORED: str = "SESSION_RESTORED"

#: An identity was written to durable storage.
SESSION_SAVED: str = "SESSION_SAVED"

#: The persisted identity was removed (logout).
SESSION_CLEARED: str = "SESSION_CLEARED"

#: A login attempt failed (missing, rejected or undecodable credential).
LOGIN_FAILED: str = "LOGIN_FAILED"
