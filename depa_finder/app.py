"""Application wiring: session gate, deck and likes panel.

:class:`DeckApp` composes the components::

    CatalogSource ──▶ BufferManager ──▶ SwipeRecognizer ──▶ ConsumptionCoordinator
                          ▲                                        │
                          └──────────── consume(id) ───────────────┤
                                                                   ▼
                                                            LikesCollection

and gates the deck behind :class:`~depa_finder.session.store.SessionStore`.
The catalog is fetched as soon as the app starts, whether or not a session
exists; the gate only decides what :meth:`DeckApp.view` shows.  Callers that
only touch the session (logout, login checks) open the app with
``fetch_catalog=False``.

Typical usage::

    from depa_finder.app import open_app
    from depa_finder.core.settings import Settings

    async with open_app(Settings()) as app:
        view = app.view()
        if view.status is DeckStatus.READY:
            app.swipe_top(SwipeDirection.RIGHT)
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import StrEnum

from depa_finder.core.logging_config import SESSION_ID_CTX
from depa_finder.core.models import Identity, Listing, SwipeDirection, SwipeFeedback
from depa_finder.core.settings import Settings
from depa_finder.deck.buffer import BufferManager
from depa_finder.deck.coordinator import ConsumptionCoordinator, LikesCollection
from depa_finder.deck.swipe import SwipeRecognizer
from depa_finder.session.credentials import LoginGate
from depa_finder.session.store import SessionStore
from depa_finder.source.base import ListingSource
from depa_finder.source.catalog import CatalogSource
from depa_finder.storage.database import open_db
from depa_finder.storage.repository import KeyValueStore

__all__ = ["DeckStatus", "DeckView", "DeckApp", "open_app"]

logger = logging.getLogger(__name__)


class DeckStatus(StrEnum):
    """What the main panel shows, in precedence order."""

    LOGGED_OUT = "logged_out"
    LOADING = "loading"
    ERROR = "error"
    EMPTY = "empty"
    READY = "ready"


@dataclass(frozen=True)
class DeckView:
    """Render-ready snapshot of the app.

    Attributes:
        status: Which panel to show.
        stack: Cards topmost first (empty unless ``READY``).
        error: Fetch error (``ERROR``) or login error (``LOGGED_OUT``).
        feedback: Transient swipe banner, if any.
        identity: Logged-in user, if any.
    """

    status: DeckStatus
    stack: tuple[Listing, ...] = ()
    error: str | None = None
    feedback: SwipeFeedback | None = None
    identity: Identity | None = None


class DeckApp:
    """The swipe deck behind a login gate.

    Args:
        settings: Application settings.
        source: Catalog source for the buffer.
        store: Durable storage for the session identity.
    """

    def __init__(self, settings: Settings, source: ListingSource, store: KeyValueStore) -> None:
        self.settings = settings
        self.session = SessionStore(store)
        self.login = LoginGate(self.session)
        self.buffer = BufferManager(source, batch_size=settings.batch_size)
        self.likes = LikesCollection()
        self.coordinator = ConsumptionCoordinator(self.buffer, self.likes)
        self.recognizer = SwipeRecognizer(
            lambda: self.buffer.displayed,
            self.coordinator.on_swipe,
            threshold=settings.swipe_threshold,
            feedback_delay=settings.feedback_clear_delay,
        )

    async def start(self) -> None:
        """Restore the session and issue the initial catalog fetch."""
        await self.restore_session()
        await self.start_deck()

    async def restore_session(self) -> Identity | None:
        SESSION_ID_CTX.set(uuid.uuid4().hex[:8])
        return await self.session.load()

    async def start_deck(self) -> None:
        """Issue the initial catalog fetch."""
        await self.buffer.start()

    def view(self) -> DeckView:
        identity = self.session.identity
        if identity is None:
            return DeckView(DeckStatus.LOGGED_OUT, error=self.login.error)

        feedback = self.recognizer.feedback
        if self.buffer.loading:
            return DeckView(DeckStatus.LOADING, feedback=feedback, identity=identity)
        if self.buffer.error:
            return DeckView(
                DeckStatus.ERROR, error=self.buffer.error, feedback=feedback, identity=identity
            )
        stack = tuple(self.recognizer.stack)
        if not stack:
            return DeckView(DeckStatus.EMPTY, feedback=feedback, identity=identity)
        return DeckView(DeckStatus.READY, stack=stack, feedback=feedback, identity=identity)

    def swipe_top(self, direction: SwipeDirection) -> SwipeDirection | None:
        """Swipe the topmost card; returns the committed direction, if any."""
        top = self.recognizer.top
        if top is None:
            return None
        return self.recognizer.swipe(top, direction)

    async def reload(self) -> None:
        """Retry / refresh action: fetch a fresh catalog page."""
        await self.buffer.fetch()

    async def logout(self) -> None:
        await self.session.logout()

    async def aclose(self) -> None:
        self.recognizer.close()
        await self.buffer.aclose()


@asynccontextmanager
async def open_app(
    settings: Settings,
    source: ListingSource | None = None,
    *,
    fetch_catalog: bool = True,
) -> AsyncIterator[DeckApp]:
    """Open storage and the catalog source, start a :class:`DeckApp`, and
    close everything on exit.

    Args:
        settings: Application settings.
        source: Catalog source override; defaults to :class:`CatalogSource`.
        fetch_catalog: Issue the initial catalog fetch on entry.  When
            ``False`` only the session is restored and the caller runs
            :meth:`DeckApp.start_deck` itself.
    """
    conn = await open_db(settings.database_path)
    catalog = source if source is not None else CatalogSource(settings)
    app = DeckApp(settings, catalog, KeyValueStore(conn))
    try:
        if fetch_catalog:
            await app.start()
        else:
            await app.restore_session()
        yield app
    finally:
        await app.aclose()
        if source is None:
            await catalog.close()
        await conn.close()
