"""Listing-source interface contract.

The buffer talks to the remote catalog only through :class:`ListingSource`,
so tests can substitute an in-memory implementation and the HTTP details stay
in :mod:`depa_finder.source.catalog`.

Typical usage::

    from depa_finder.source.base import ListingSource

    class StaticSource(ListingSource):
        async def fetch_page(self) -> list[Listing]:
            return [...]

    async with StaticSource() as source:
        listings = await source.fetch_page()
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from types import TracebackType

from depa_finder.core.models import Listing

__all__ = ["ListingSource"]

logger = logging.getLogger(__name__)


class ListingSource(ABC):
    """Abstract base for catalog sources.

    The async context manager protocol is provided for free; override
    :meth:`close` to release resources.
    """

    async def close(self) -> None:  # noqa: B027
        """Release any resources held by this source.  No-op by default."""

    async def __aenter__(self) -> ListingSource:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    @abstractmethod
    async def fetch_page(self) -> list[Listing]:
        """Fetch the next catalog page.

        Implementations return the page in backend order and perform **no**
        windowing or cross-page deduplication; that is the buffer's job.

        Returns:
            A (possibly empty) list of :class:`~depa_finder.core.models.Listing`.

        Raises:
            :class:`~depa_finder.core.exceptions.SourceError`: when the page
            cannot be fetched or parsed.
        """
