"""Remote listing source: HTTP client and catalog mapping."""

from depa_finder.source.base import ListingSource
from depa_finder.source.catalog import CatalogSource, parse_catalog
from depa_finder.source.http_client import CatalogHttpClient

__all__ = ["ListingSource", "CatalogSource", "CatalogHttpClient", "parse_catalog"]
