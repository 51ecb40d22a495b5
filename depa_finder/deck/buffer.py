"""Displayed-window / reserve-pool buffer for the swipe deck.

The buffer owns two ordered sequences of listings:

* ``displayed``: the bounded window the user is currently swiping through
  (at most ``batch_size`` items).
* ``pool``: listings from the last catalog page that have not been shown yet.

State machine
~~~~~~~~~~~~~
All mutation goes through :func:`transition`, a pure function
``BufferState × BufferEvent → (BufferState', BufferEffect)``.  The manager
applies the returned state in one assignment (so ``displayed``, ``pool``,
``initialized``, ``error`` and ``loading`` are never observable half-updated)
and then acts on the effect::

    event            guard                              effect
    ---------------  ---------------------------------  -----------
    FETCH_STARTED    -                                  NONE
    FETCH_SUCCEEDED  token == in_flight                 NONE
    FETCH_SUCCEEDED  token != in_flight                 DISCARD
    FETCH_FAILED     token == in_flight, window empty,  REFILL
                     pool non-empty, initialized
    FETCH_FAILED     token == in_flight, otherwise      NONE
    FETCH_FAILED     token != in_flight                 DISCARD
    CONSUMED         id absent                          NONE
    CONSUMED         window emptied, initialized,       REFILL
                     not loading
    CONSUMED         otherwise                          NONE
    REFILL           pool non-empty                     NONE
    REFILL           pool empty                         FETCH

``REFILL`` is produced by the consumption that empties an idle window, or by
the failure of the fetch that was pending when the window emptied, so
replenishment fires exactly once per depletion.  A failed fetch never starts
another fetch: with an empty pool the error stays until the user reloads.
A catalog page that comes back empty is not a depletion; the deck then shows
its empty state and the user can reload.

Overlapping fetches
~~~~~~~~~~~~~~~~~~~
Every fetch takes a fresh token from a monotonically increasing counter and
records it in ``in_flight``.  A continuation whose token no longer matches is
discarded, so the most recently *issued* fetch wins regardless of the order
in which responses arrive.  After :meth:`BufferManager.aclose` every
continuation is discarded.

Typical usage::

    from depa_finder.deck.buffer import BufferManager

    buffer = BufferManager(source, batch_size=5)
    await buffer.start()
    buffer.consume(buffer.displayed[-1].id)
    await buffer.wait_idle()
    await buffer.aclose()
"""

from __future__ import annotations

import asyncio
import dataclasses
import itertools
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import StrEnum

from depa_finder.core import events
from depa_finder.core.exceptions import SourceError
from depa_finder.core.models import Listing
from depa_finder.source.base import ListingSource

__all__ = [
    "DEFAULT_BATCH_SIZE",
    "DEFAULT_FETCH_ERROR",
    "BufferEventKind",
    "BufferEffect",
    "BufferEvent",
    "BufferState",
    "BufferManager",
    "transition",
]

logger = logging.getLogger(__name__)

#: Window capacity used when none is configured.
DEFAULT_BATCH_SIZE: int = 5

#: User-facing message stored when a fetch error carries no detail.
DEFAULT_FETCH_ERROR: str = "No pudimos obtener los listados."

# ---------------------------------------------------------------------------
# Events, effects, state
# ---------------------------------------------------------------------------


class BufferEventKind(StrEnum):
    FETCH_STARTED = "fetch_started"
    FETCH_SUCCEEDED = "fetch_succeeded"
    FETCH_FAILED = "fetch_failed"
    CONSUMED = "consumed"
    REFILL = "refill"


class BufferEffect(StrEnum):
    """Follow-up action the manager must take after a transition."""

    NONE = "none"
    REFILL = "refill"
    FETCH = "fetch"
    DISCARD = "discard"


@dataclass(frozen=True)
class BufferEvent:
    """Input to :func:`transition`.

    Attributes:
        kind: What happened.
        token: Fetch token, for the three ``FETCH_*`` kinds.
        listings: Catalog page, for ``FETCH_SUCCEEDED``.
        listing_id: Consumed listing id, for ``CONSUMED``.
        message: User-facing error message, for ``FETCH_FAILED``.
    """

    kind: BufferEventKind
    token: int | None = None
    listings: tuple[Listing, ...] = ()
    listing_id: str | None = None
    message: str | None = None

    @classmethod
    def fetch_started(cls, token: int) -> BufferEvent:
        return cls(BufferEventKind.FETCH_STARTED, token=token)

    @classmethod
    def fetch_succeeded(cls, token: int, listings: Iterable[Listing]) -> BufferEvent:
        return cls(BufferEventKind.FETCH_SUCCEEDED, token=token, listings=tuple(listings))

    @classmethod
    def fetch_failed(cls, token: int, message: str) -> BufferEvent:
        return cls(BufferEventKind.FETCH_FAILED, token=token, message=message)

    @classmethod
    def consumed(cls, listing_id: str | None) -> BufferEvent:
        return cls(BufferEventKind.CONSUMED, listing_id=listing_id)

    @classmethod
    def refill(cls) -> BufferEvent:
        return cls(BufferEventKind.REFILL)


@dataclass(frozen=True)
class BufferState:
    """Immutable snapshot of the buffer.

    Attributes:
        displayed: Visible window, oldest first (the card stack shows it
            reversed).
        pool: Reserve listings not yet shown.
        loading: ``True`` while a fetch is in flight.
        error: User-facing message from the last failed fetch, cleared by the
            next successful one.
        initialized: ``True`` once any fetch has succeeded.
        in_flight: Token of the fetch whose result will be accepted, or
            ``None`` when no fetch is pending.
    """

    displayed: tuple[Listing, ...] = ()
    pool: tuple[Listing, ...] = ()
    loading: bool = False
    error: str | None = None
    initialized: bool = False
    in_flight: int | None = None

    @property
    def displayed_ids(self) -> list[str]:
        return [listing.id for listing in self.displayed]

    @property
    def pool_ids(self) -> list[str]:
        return [listing.id for listing in self.pool]


# ---------------------------------------------------------------------------
# Transition table
# ---------------------------------------------------------------------------


def _unique_by_id(listings: Iterable[Listing]) -> tuple[Listing, ...]:
    """Drop repeated ids inside one catalog page; first occurrence wins."""
    seen: set[str] = set()
    unique: list[Listing] = []
    for listing in listings:
        if listing.id in seen:
            continue
        seen.add(listing.id)
        unique.append(listing)
    return tuple(unique)


def transition(
    state: BufferState,
    event: BufferEvent,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> tuple[BufferState, BufferEffect]:
    """Apply *event* to *state*.

    Pure function: never mutates *state* and performs no I/O.  When the event
    changes nothing the very same *state* object is returned.

    Args:
        state: Current buffer snapshot.
        event: The event to apply.
        batch_size: Window capacity (≥ 1).

    Returns:
        The next state and the effect the caller must carry out.
    """
    kind = event.kind

    if kind is BufferEventKind.FETCH_STARTED:
        return dataclasses.replace(state, loading=True, in_flight=event.token), BufferEffect.NONE

    if kind is BufferEventKind.FETCH_SUCCEEDED:
        if event.token != state.in_flight:
            return state, BufferEffect.DISCARD
        page = _unique_by_id(event.listings)
        return (
            dataclasses.replace(
                state,
                displayed=page[:batch_size],
                pool=page[batch_size:],
                loading=False,
                error=None,
                initialized=True,
                in_flight=None,
            ),
            BufferEffect.NONE,
        )

    if kind is BufferEventKind.FETCH_FAILED:
        if event.token != state.in_flight:
            return state, BufferEffect.DISCARD
        new_state = dataclasses.replace(
            state,
            loading=False,
            error=event.message or DEFAULT_FETCH_ERROR,
            in_flight=None,
        )
        # A window emptied while this fetch was pending still owes a refill.
        if not state.displayed and state.pool and state.initialized:
            return new_state, BufferEffect.REFILL
        return new_state, BufferEffect.NONE

    if kind is BufferEventKind.CONSUMED:
        if not event.listing_id or event.listing_id not in state.displayed_ids:
            return state, BufferEffect.NONE
        remaining = tuple(item for item in state.displayed if item.id != event.listing_id)
        new_state = dataclasses.replace(state, displayed=remaining)
        if not remaining and state.initialized and not state.loading:
            return new_state, BufferEffect.REFILL
        return new_state, BufferEffect.NONE

    if kind is BufferEventKind.REFILL:
        if not state.pool:
            return state, BufferEffect.FETCH
        free = max(batch_size - len(state.displayed), 0)
        return (
            dataclasses.replace(
                state,
                displayed=state.displayed + state.pool[:free],
                pool=state.pool[free:],
            ),
            BufferEffect.NONE,
        )

    raise ValueError(f"Unknown buffer event kind: {kind!r}")


# ---------------------------------------------------------------------------
# Manager
# ---------------------------------------------------------------------------

BufferListener = Callable[[BufferState], None]


class BufferManager:
    """Owns the buffer state and drives it against a :class:`ListingSource`.

    All methods must be called from the event-loop thread.  :meth:`consume`
    is synchronous; when it triggers a catalog fetch the fetch runs as a
    background task (see :meth:`wait_idle`).

    Args:
        source: Where catalog pages come from.
        batch_size: Window capacity.

    Raises:
        ValueError: If *batch_size* is less than 1.
    """

    def __init__(self, source: ListingSource, batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be ≥ 1, got {batch_size!r}.")
        self._source = source
        self._batch_size = batch_size
        self._state = BufferState()
        self._tokens = itertools.count(1)
        self._background: set[asyncio.Task[None]] = set()
        self._listeners: list[BufferListener] = []
        self._closed = False

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> BufferState:
        return self._state

    @property
    def batch_size(self) -> int:
        return self._batch_size

    @property
    def displayed(self) -> tuple[Listing, ...]:
        return self._state.displayed

    @property
    def pool(self) -> tuple[Listing, ...]:
        return self._state.pool

    @property
    def loading(self) -> bool:
        return self._state.loading

    @property
    def error(self) -> str | None:
        return self._state.error

    @property
    def initialized(self) -> bool:
        return self._state.initialized

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, listener: BufferListener) -> Callable[[], None]:
        """Call *listener* with the new state after every applied change.

        Returns:
            A callable that removes the listener.
        """
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def start(self) -> BufferState:
        """Issue the initial catalog fetch."""
        return await self.fetch()

    async def fetch(self) -> BufferState:
        """Fetch the next catalog page and replace the window and pool.

        On failure the error message is stored in :attr:`error` and the
        previous window and pool are kept; a window emptied meanwhile is
        refilled from the pool.  Cancellation by the caller resolves the fetch
        as failed before re-raising.  A result that arrives after a newer fetch
        was issued, or after :meth:`aclose`, is discarded.

        Returns:
            The buffer state after this fetch resolved.
        """
        if self._closed:
            logger.debug("fetch() called on a closed buffer, ignored.")
            return self._state

        token = next(self._tokens)
        self._dispatch(BufferEvent.fetch_started(token))
        logger.debug("Catalog fetch #%d issued", token, extra={"event": events.FETCH_START})

        try:
            page = await self._source.fetch_page()
        except SourceError as exc:
            self._resolve(BufferEvent.fetch_failed(token, exc.detail or DEFAULT_FETCH_ERROR))
            return self._state
        except asyncio.CancelledError:
            if not self._closed:
                self._resolve(BufferEvent.fetch_failed(token, DEFAULT_FETCH_ERROR))
            raise
        except Exception:
            self._resolve(BufferEvent.fetch_failed(token, DEFAULT_FETCH_ERROR))
            raise

        self._resolve(BufferEvent.fetch_succeeded(token, page))
        return self._state

    async def refill(self) -> BufferState:
        """Move pool listings into the window, or fetch when the pool is empty."""
        effect = self._apply_refill()
        if effect is BufferEffect.FETCH:
            await self.fetch()
        return self._state

    def consume(self, listing_id: str | None) -> None:
        """Remove *listing_id* from the displayed window.

        No-op when the id is ``None``/empty or not displayed.  When this
        empties the window of an initialized, idle buffer the window is
        refilled from the pool, or a background fetch is started.
        """
        before = self._state
        effect = self._dispatch(BufferEvent.consumed(listing_id))
        if self._state is before:
            return

        logger.debug(
            "Consumed listing %s (%d left in window)",
            listing_id,
            len(self._state.displayed),
            extra={"event": events.LISTING_CONSUMED},
        )
        if effect is BufferEffect.REFILL and self._apply_refill() is BufferEffect.FETCH:
            self._spawn_fetch()

    async def wait_idle(self) -> None:
        """Wait until every background fetch has finished."""
        while True:
            pending = [task for task in self._background if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def aclose(self) -> None:
        """Tear the buffer down.

        Cancels background fetches; any fetch still resolving afterwards is
        discarded instead of mutating state.  Idempotent.
        """
        if self._closed:
            return
        self._closed = True
        tasks = list(self._background)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._listeners.clear()
        logger.debug("Buffer closed (%d background fetch(es) cancelled)", len(tasks))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _dispatch(self, event: BufferEvent) -> BufferEffect:
        new_state, effect = transition(self._state, event, self._batch_size)
        if new_state is not self._state:
            self._state = new_state
            for listener in list(self._listeners):
                listener(new_state)
        return effect

    def _resolve(self, event: BufferEvent) -> None:
        """Apply a fetch continuation unless it is stale."""
        if self._closed:
            logger.info(
                "Catalog fetch #%s resolved after teardown, discarded",
                event.token,
                extra={"event": events.FETCH_STALE},
            )
            return

        effect = self._dispatch(event)
        if effect is BufferEffect.DISCARD:
            logger.info(
                "Catalog fetch #%s superseded by #%s, result discarded",
                event.token,
                self._state.in_flight,
                extra={"event": events.FETCH_STALE},
            )
        elif event.kind is BufferEventKind.FETCH_FAILED:
            logger.warning(
                "Catalog fetch #%s failed: %s",
                event.token,
                self._state.error,
                extra={"event": events.FETCH_ERROR},
            )
            if effect is BufferEffect.REFILL:
                self._apply_refill()
        else:
            logger.info(
                "Catalog fetched: %d displayed, %d in pool",
                len(self._state.displayed),
                len(self._state.pool),
                extra={"event": events.FETCH_OK},
            )

    def _apply_refill(self) -> BufferEffect:
        moved_from = len(self._state.pool)
        effect = self._dispatch(BufferEvent.refill())
        if effect is BufferEffect.NONE:
            logger.info(
                "Window refilled from pool: %d moved, %d left in pool",
                moved_from - len(self._state.pool),
                len(self._state.pool),
                extra={"event": events.BUFFER_REFILL},
            )
        else:
            logger.debug("Pool empty, refill delegates to a catalog fetch")
        return effect

    def _spawn_fetch(self) -> None:
        task = asyncio.get_running_loop().create_task(self._background_fetch())
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _background_fetch(self) -> None:
        try:
            await self.fetch()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Background catalog fetch crashed")
