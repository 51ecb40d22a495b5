"""HTTP catalog source for the listing backend.

Requests ``GET {API_BASE_URL}/api/listings`` and maps the ``data[]`` array of
the JSON body to :class:`~depa_finder.core.models.Listing` objects.

* A body without a ``data`` key (or with ``data: null``) is an empty page.
* A body that is not a JSON object raises
  :class:`~depa_finder.core.exceptions.SourceParseError`.
* Individual records that fail validation are skipped and logged; the rest of
  the page is still returned.

Typical usage::

    from depa_finder.core.settings import Settings
    from depa_finder.source.catalog import CatalogSource

    async with CatalogSource(Settings()) as source:
        listings = await source.fetch_page()
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from depa_finder.core.exceptions import SourceParseError
from depa_finder.core.models import Listing
from depa_finder.core.settings import LISTINGS_PATH, Settings
from depa_finder.source.base import ListingSource
from depa_finder.source.http_client import CatalogHttpClient

__all__ = ["CatalogSource", "parse_catalog"]

logger = logging.getLogger(__name__)


def parse_catalog(payload: Any, source_label: str = "catalog") -> list[Listing]:
    """Map a decoded catalog body to listings.

    Args:
        payload: The decoded JSON body.
        source_label: Label used in errors and log lines.

    Returns:
        Valid listings in backend order.

    Raises:
        SourceParseError: If *payload* is not a JSON object or ``data`` is
            not a list.
    """
    if not isinstance(payload, dict):
        raise SourceParseError(
            source_label, f"expected a JSON object, got {type(payload).__name__}"
        )

    records = payload.get("data") or []
    if not isinstance(records, list):
        raise SourceParseError(
            source_label, f"expected 'data' to be a list, got {type(records).__name__}"
        )

    listings: list[Listing] = []
    for index, record in enumerate(records):
        try:
            listings.append(Listing.model_validate(record))
        except ValidationError as exc:
            logger.warning(
                "Skipping invalid listing at index %d from %s: %s",
                index,
                source_label,
                exc.errors()[0]["msg"] if exc.errors() else exc,
            )

    if len(listings) < len(records):
        logger.info(
            "Catalog page from %s: %d records, %d valid",
            source_label,
            len(records),
            len(listings),
        )
    return listings


class CatalogSource(ListingSource):
    """Catalog source backed by the listing backend's HTTP API.

    Args:
        settings: Application settings (base URL, timeout, attempts).
        client: Optional pre-built :class:`CatalogHttpClient`; when omitted
            one is created from *settings* and owned by this source.
    """

    def __init__(self, settings: Settings, client: CatalogHttpClient | None = None) -> None:
        self._settings = settings
        self._owns_client = client is None
        self._client = client or CatalogHttpClient(
            base_url=settings.api_base_url,
            read_timeout=settings.http_timeout,
            max_attempts=settings.http_max_attempts,
        )

    async def close(self) -> None:
        if self._owns_client:
            await self._client.close()

    async def fetch_page(self) -> list[Listing]:
        response = await self._client.get(LISTINGS_PATH)
        try:
            payload = response.json()
        except ValueError as exc:
            raise SourceParseError(
                self._settings.api_base_url, f"response body is not JSON: {exc}"
            ) from exc

        listings = parse_catalog(payload, self._settings.api_base_url)
        logger.debug("Fetched %d listings from %s", len(listings), self._settings.listings_url)
        return listings
