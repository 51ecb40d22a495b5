"""Unit tests for the listing source layer.

Covers:
- :func:`~depa_finder.source.catalog.parse_catalog` payload mapping.
- :class:`~depa_finder.source.http_client.CatalogHttpClient` retry and error
  mapping, driven through :class:`httpx.MockTransport`.
- :class:`~depa_finder.source.catalog.CatalogSource` end to end.

Retry tests pass ``wait=tenacity.wait_none()`` so no real back-off happens.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import httpx
import pytest
from tenacity import wait_none

from depa_finder.core.exceptions import FetchError, SourceParseError
from depa_finder.core.settings import Settings
from depa_finder.source.catalog import CatalogSource, parse_catalog
from depa_finder.source.http_client import CatalogHttpClient, _parse_retry_after

logger = logging.getLogger(__name__)

_BASE_URL = "http://catalog.test"


# ---------------------------------------------------------------------------
# Factories / helpers
# ---------------------------------------------------------------------------


def _record(id: str, **overrides: Any) -> dict[str, Any]:
    record: dict[str, Any] = {
        "id": id,
        "title": f"Departamento {id}",
        "comuna": "Providencia",
        "price_clp": 450000,
        "url": f"https://example.cl/{id}",
    }
    record.update(overrides)
    return record


def _scripted_transport(
    responses: list[httpx.Response | Exception],
) -> tuple[httpx.MockTransport, list[httpx.Request]]:
    """Return a transport replaying *responses* in order, plus the request log."""
    seen: list[httpx.Request] = []
    script = list(responses)

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        item = script.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    return httpx.MockTransport(handler), seen


def _client(transport: httpx.MockTransport, max_attempts: int = 3) -> CatalogHttpClient:
    return CatalogHttpClient(
        base_url=_BASE_URL,
        max_attempts=max_attempts,
        transport=transport,
        wait=wait_none(),
    )


def _source(handler: Callable[[httpx.Request], httpx.Response]) -> CatalogSource:
    settings = Settings(api_base_url=_BASE_URL, http_max_attempts=2)
    client = _client(httpx.MockTransport(handler), max_attempts=2)
    return CatalogSource(settings, client=client)


# ===========================================================================
# parse_catalog
# ===========================================================================


class TestParseCatalog:
    def test_maps_data_records_in_order(self) -> None:
        listings = parse_catalog({"data": [_record("a"), _record("b"), _record("c")]})
        assert [listing.id for listing in listings] == ["a", "b", "c"]

    def test_missing_data_key_is_empty_page(self) -> None:
        assert parse_catalog({"meta": {"total": 0}}) == []

    def test_null_data_is_empty_page(self) -> None:
        assert parse_catalog({"data": None}) == []

    def test_non_object_body_raises(self) -> None:
        with pytest.raises(SourceParseError, match="expected a JSON object"):
            parse_catalog([_record("a")])

    def test_non_list_data_raises(self) -> None:
        with pytest.raises(SourceParseError, match="'data' to be a list"):
            parse_catalog({"data": "nope"})

    def test_invalid_records_are_skipped(self) -> None:
        payload = {"data": [_record("a"), {"id": "b"}, _record("c", url="")]}
        listings = parse_catalog(payload)
        assert [listing.id for listing in listings] == ["a"]

    def test_duplicate_ids_are_passed_through(self) -> None:
        listings = parse_catalog({"data": [_record("a"), _record("a")]})
        assert len(listings) == 2


# ===========================================================================
# CatalogHttpClient
# ===========================================================================


class TestCatalogHttpClient:
    def test_max_attempts_below_one_raises(self) -> None:
        with pytest.raises(ValueError, match="max_attempts"):
            CatalogHttpClient(max_attempts=0)

    async def test_success_returns_response(self) -> None:
        transport, seen = _scripted_transport([httpx.Response(200, json={"data": []})])
        async with _client(transport) as client:
            response = await client.get("/api/listings")

        assert response.status_code == 200
        assert len(seen) == 1
        assert seen[0].url == httpx.URL(f"{_BASE_URL}/api/listings")
        assert seen[0].headers["accept"] == "application/json"

    async def test_server_error_is_retried_then_succeeds(self) -> None:
        transport, seen = _scripted_transport(
            [httpx.Response(503), httpx.Response(200, json={"data": []})]
        )
        async with _client(transport) as client:
            response = await client.get("/api/listings")

        assert response.status_code == 200
        assert len(seen) == 2

    async def test_server_error_exhausts_retries(self) -> None:
        transport, seen = _scripted_transport([httpx.Response(500)] * 3)
        async with _client(transport) as client:
            with pytest.raises(FetchError) as exc_info:
                await client.get("/api/listings")

        assert len(seen) == 3
        assert exc_info.value.status_code == 500
        assert exc_info.value.detail == "API error: 500"
        assert type(exc_info.value) is FetchError

    async def test_rate_limit_is_retried(self) -> None:
        transport, seen = _scripted_transport(
            [
                httpx.Response(429, headers={"Retry-After": "2"}),
                httpx.Response(200, json={"data": []}),
            ]
        )
        async with _client(transport) as client:
            await client.get("/api/listings")

        assert len(seen) == 2

    async def test_client_error_fails_immediately(self) -> None:
        transport, seen = _scripted_transport([httpx.Response(404)])
        async with _client(transport) as client:
            with pytest.raises(FetchError) as exc_info:
                await client.get("/api/listings")

        assert len(seen) == 1
        assert exc_info.value.status_code == 404
        assert exc_info.value.detail == "API error: 404"

    async def test_transport_error_is_retried_then_mapped(self) -> None:
        transport, seen = _scripted_transport(
            [httpx.ConnectError("Connection refused")] * 2
        )
        async with _client(transport, max_attempts=2) as client:
            with pytest.raises(FetchError) as exc_info:
                await client.get("/api/listings")

        assert len(seen) == 2
        assert exc_info.value.status_code is None
        assert "ConnectError" in exc_info.value.detail
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    async def test_transport_error_then_success(self) -> None:
        transport, seen = _scripted_transport(
            [httpx.ReadTimeout("timed out"), httpx.Response(200, json={"data": []})]
        )
        async with _client(transport) as client:
            response = await client.get("/api/listings")

        assert response.is_success
        assert len(seen) == 2

    async def test_close_is_idempotent(self) -> None:
        transport, _ = _scripted_transport([])
        client = _client(transport)
        await client.close()
        await client.close()


class TestParseRetryAfter:
    @pytest.mark.parametrize(
        ("header", "expected"),
        [("30", 30.0), ("0", 1.0), ("", None), ("Wed, 21 Oct 2026 07:28:00 GMT", None)],
    )
    def test_values(self, header: str, expected: float | None) -> None:
        headers = {"Retry-After": header} if header else {}
        response = httpx.Response(429, headers=headers)
        assert _parse_retry_after(response) == expected


# ===========================================================================
# CatalogSource
# ===========================================================================


class TestCatalogSource:
    async def test_fetch_page_returns_listings(self) -> None:
        source = _source(lambda _: httpx.Response(200, json={"data": [_record("1")]}))
        async with source:
            listings = await source.fetch_page()

        assert [listing.id for listing in listings] == ["1"]

    async def test_fetch_page_requests_listings_path(self) -> None:
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.path)
            return httpx.Response(200, json={"data": []})

        async with _source(handler) as source:
            assert await source.fetch_page() == []

        assert seen == ["/api/listings"]

    async def test_non_json_body_raises_parse_error(self) -> None:
        source = _source(lambda _: httpx.Response(200, text="<html>oops</html>"))
        async with source:
            with pytest.raises(SourceParseError, match="not JSON"):
                await source.fetch_page()

    async def test_http_error_surfaces_as_fetch_error(self) -> None:
        source = _source(lambda _: httpx.Response(500))
        async with source:
            with pytest.raises(FetchError, match="API error: 500"):
                await source.fetch_page()
