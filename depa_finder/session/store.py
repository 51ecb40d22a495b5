"""Persisted session identity.

:class:`SessionStore` keeps the logged-in :class:`~depa_finder.core.models.Identity`
in memory and mirrors it to a :class:`~depa_finder.storage.repository.KeyValueStore`
under a single key, as a JSON object ``{"name", "email", "avatar"}``.

Storage problems never reach the user: a missing, malformed or unreadable
record loads as "no session", and a failed write is logged while the
in-memory identity still changes.
"""

from __future__ import annotations

import json
import logging

from pydantic import ValidationError

from depa_finder.core import events
from depa_finder.core.exceptions import StorageError
from depa_finder.core.models import Identity
from depa_finder.storage.repository import KeyValueStore

__all__ = ["USER_STORAGE_KEY", "SessionStore"]

logger = logging.getLogger(__name__)

#: Key of the persisted identity record.
USER_STORAGE_KEY: str = "depa_finder:user"


class SessionStore:
    """In-memory identity mirrored to durable storage.

    Args:
        store: Durable key-value storage.
        key: Storage key of the identity record.
    """

    def __init__(self, store: KeyValueStore, key: str = USER_STORAGE_KEY) -> None:
        self._store = store
        self._key = key
        self._identity: Identity | None = None

    @property
    def identity(self) -> Identity | None:
        return self._identity

    @property
    def is_authenticated(self) -> bool:
        return self._identity is not None

    async def load(self) -> Identity | None:
        """Restore the persisted identity, if any.

        Returns:
            The restored identity, or ``None`` when nothing usable is stored.
        """
        try:
            raw = await self._store.get(self._key)
        except StorageError as exc:
            logger.warning("Session storage unreadable, starting logged out: %s", exc)
            self._identity = None
            return None

        if raw is None:
            self._identity = None
            return None

        try:
            self._identity = Identity.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as exc:
            logger.debug("Ignoring malformed session record under %s: %s", self._key, exc)
            self._identity = None
            return None

        logger.info(
            "Session restored for %s",
            self._identity.email or self._identity.name or "(anonymous)",
            extra={"event": events.SESSION_RESTORED},
        )
        return self._identity

    async def set_identity(self, identity: Identity | None) -> None:
        """Replace the current identity and mirror it to storage.

        ``None`` logs out and deletes the persisted record.
        """
        self._identity = identity
        try:
            if identity is not None:
                await self._store.set(self._key, identity.model_dump_json())
                logger.debug(
                    "Session saved under %s",
                    self._key,
                    extra={"event": events.SESSION_SAVED},
                )
            else:
                await self._store.delete(self._key)
                logger.info("Session cleared", extra={"event": events.SESSION_CLEARED})
        except StorageError as exc:
            logger.warning("Could not persist session change: %s", exc)

    async def logout(self) -> None:
        await self.set_identity(None)
