"""Reconcile swipe decisions into the buffer and the likes collection.

:class:`ConsumptionCoordinator` is the listener the swipe recognizer calls
for every committed swipe.  Every swiped listing leaves the displayed window;
right-swiped listings are also appended to :class:`LikesCollection` unless a
listing with the same id is already there.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from depa_finder.core import events
from depa_finder.core.models import Listing, SwipeDirection
from depa_finder.deck.buffer import BufferManager

__all__ = ["LikesCollection", "ConsumptionCoordinator"]

logger = logging.getLogger(__name__)


class LikesCollection:
    """Insertion-ordered listings with unique ids.

    The id set is maintained alongside the sequence, so membership checks
    never rebuild it.
    """

    def __init__(self) -> None:
        self._items: list[Listing] = []
        self._ids: set[str] = set()

    def add(self, listing: Listing) -> bool:
        """Append *listing* unless its id is already present.

        Returns:
            ``True`` if the listing was appended.
        """
        if listing.id in self._ids:
            return False
        self._items.append(listing)
        self._ids.add(listing.id)
        return True

    def __contains__(self, listing_id: object) -> bool:
        return listing_id in self._ids

    def __iter__(self) -> Iterator[Listing]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    @property
    def items(self) -> tuple[Listing, ...]:
        return tuple(self._items)

    @property
    def ids(self) -> frozenset[str]:
        return frozenset(self._ids)


class ConsumptionCoordinator:
    """Apply committed swipes to the buffer and the likes collection.

    Args:
        buffer: The deck buffer whose window the listing is removed from.
        likes: Collection receiving right-swiped listings.  A fresh one is
            created when omitted.
    """

    def __init__(self, buffer: BufferManager, likes: LikesCollection | None = None) -> None:
        self._buffer = buffer
        self._likes = likes if likes is not None else LikesCollection()

    @property
    def likes(self) -> LikesCollection:
        return self._likes

    def on_swipe(self, direction: SwipeDirection, listing: Listing | None) -> None:
        """Handle one committed swipe.

        A ``None`` listing is ignored.  Otherwise the listing is always
        consumed from the window, and appended to the likes on ``right``.
        """
        if listing is None:
            return

        self._buffer.consume(listing.id)

        if direction is SwipeDirection.RIGHT and self._likes.add(listing):
            logger.info(
                "Liked %s (%d liked so far)",
                listing.id,
                len(self._likes),
                extra={"event": events.LISTING_LIKED},
            )
