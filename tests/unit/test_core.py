"""Unit tests for the core layer.

Covers:
- :class:`~depa_finder.core.models.Listing` field validation and coercions.
- :class:`~depa_finder.core.models.SwipeDirection` helpers.
- :class:`~depa_finder.core.settings.Settings` loading, validation, and helpers.
- :class:`~depa_finder.storage.repository.KeyValueStore` CRUD operations.
"""

from __future__ import annotations

import logging
from pathlib import Path

import aiosqlite
import pytest
from pydantic import ValidationError

from depa_finder.core.exceptions import StorageError
from depa_finder.core.models import Identity, Listing, SwipeDirection
from depa_finder.core.settings import Settings
from depa_finder.storage.database import open_db
from depa_finder.storage.repository import KeyValueStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Factories / helpers
# ---------------------------------------------------------------------------


def _listing_payload(**overrides: object) -> dict[str, object]:
    """Return a valid raw catalog record with overridable fields."""
    payload: dict[str, object] = {
        "id": "pi-48213",
        "title": "Departamento 2D2B en Ñuñoa",
        "address": "Av. Irarrázaval 3400",
        "comuna": "Ñuñoa",
        "price_clp": 520000,
        "currency": "CLP",
        "bedrooms": 2,
        "area_m2": 58.5,
        "source": "portalinmobiliario",
        "url": "https://www.portalinmobiliario.com/MLC-48213",
        "image_url": "https://img.example.com/48213.jpg",
    }
    payload.update(overrides)
    return payload


# ===========================================================================
# Listing
# ===========================================================================


class TestListing:
    def test_full_record_maps_all_fields(self) -> None:
        listing = Listing.model_validate(_listing_payload())

        assert listing.id == "pi-48213"
        assert listing.comuna == "Ñuñoa"
        assert listing.price_clp == 520000
        assert listing.bedrooms == 2
        assert listing.area_m2 == 58.5
        assert listing.source == "portalinmobiliario"

    def test_integer_id_is_coerced_to_string(self) -> None:
        listing = Listing.model_validate(_listing_payload(id=42))
        assert listing.id == "42"

    def test_blank_id_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Listing.model_validate(_listing_payload(id="   "))

    def test_missing_title_is_rejected(self) -> None:
        payload = _listing_payload()
        del payload["title"]
        with pytest.raises(ValidationError):
            Listing.model_validate(payload)

    def test_blank_url_is_rejected(self) -> None:
        with pytest.raises(ValidationError, match="url must not be blank"):
            Listing.model_validate(_listing_payload(url="  "))

    def test_negative_price_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Listing.model_validate(_listing_payload(price_clp=-1))

    def test_blank_optional_strings_become_none(self) -> None:
        listing = Listing.model_validate(_listing_payload(address="", comuna=" ", image_url=""))

        assert listing.address is None
        assert listing.comuna is None
        assert listing.image_url is None

    def test_missing_currency_defaults_to_clp(self) -> None:
        assert Listing.model_validate(_listing_payload(currency=None)).currency == "CLP"
        assert Listing.model_validate(_listing_payload(currency="")).currency == "CLP"

    def test_unknown_fields_are_ignored(self) -> None:
        listing = Listing.model_validate(_listing_payload(scraped_at="2026-10-01"))
        assert not hasattr(listing, "scraped_at")

    def test_location_prefers_address(self) -> None:
        assert Listing.model_validate(_listing_payload()).location == "Av. Irarrázaval 3400"
        no_address = Listing.model_validate(_listing_payload(address=None))
        assert no_address.location == "Ñuñoa"

    def test_listing_is_frozen(self) -> None:
        listing = Listing.model_validate(_listing_payload())
        with pytest.raises(ValidationError):
            listing.title = "Otro"  # type: ignore[misc]


class TestSwipeDirection:
    @pytest.mark.parametrize(
        ("direction", "expected"),
        [
            (SwipeDirection.LEFT, True),
            (SwipeDirection.RIGHT, True),
            (SwipeDirection.UP, False),
            (SwipeDirection.DOWN, False),
        ],
    )
    def test_is_decision(self, direction: SwipeDirection, expected: bool) -> None:
        assert direction.is_decision is expected

    def test_values_are_lowercase_names(self) -> None:
        assert SwipeDirection("left") is SwipeDirection.LEFT
        assert str(SwipeDirection.RIGHT) == "right"


class TestIdentity:
    def test_all_fields_optional(self) -> None:
        identity = Identity()
        assert identity.name is None
        assert identity.email is None
        assert identity.avatar is None

    def test_json_round_trip(self) -> None:
        identity = Identity(name="Ana", email="ana@example.com", avatar=None)
        assert Identity.model_validate_json(identity.model_dump_json()) == identity


# ===========================================================================
# Settings
# ===========================================================================


class TestSettings:
    def test_defaults_load_without_env(self, clean_env: None) -> None:
        settings = Settings()

        assert settings.api_base_url == "http://localhost:8000"
        assert settings.batch_size == 5
        assert settings.swipe_threshold == 140.0
        assert settings.feedback_clear_delay == 3.0
        assert settings.http_max_attempts == 3
        assert settings.log_level == "INFO"
        assert settings.log_format == "text"

    def test_listings_url_strips_trailing_slash(
        self, monkeypatch: pytest.MonkeyPatch, clean_env: None
    ) -> None:
        monkeypatch.setenv("API_BASE_URL", "https://api.depa.cl/")
        settings = Settings()

        assert settings.api_base_url == "https://api.depa.cl"
        assert settings.listings_url == "https://api.depa.cl/api/listings"

    def test_blank_base_url_is_rejected(
        self, monkeypatch: pytest.MonkeyPatch, clean_env: None
    ) -> None:
        monkeypatch.setenv("API_BASE_URL", "  ")
        with pytest.raises(ValidationError):
            Settings()

    def test_batch_size_below_one_is_rejected(
        self, monkeypatch: pytest.MonkeyPatch, clean_env: None
    ) -> None:
        monkeypatch.setenv("BATCH_SIZE", "0")
        with pytest.raises(ValidationError):
            Settings()

    def test_batch_size_from_env(self, monkeypatch: pytest.MonkeyPatch, clean_env: None) -> None:
        monkeypatch.setenv("BATCH_SIZE", "8")
        assert Settings().batch_size == 8

    def test_log_level_is_normalised(
        self, monkeypatch: pytest.MonkeyPatch, clean_env: None
    ) -> None:
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("LOG_FORMAT", "JSON")
        settings = Settings()

        assert settings.log_level == "DEBUG"
        assert settings.log_format == "json"

    def test_unknown_log_format_is_rejected(
        self, monkeypatch: pytest.MonkeyPatch, clean_env: None
    ) -> None:
        monkeypatch.setenv("LOG_FORMAT", "yaml")
        with pytest.raises(ValidationError):
            Settings()

    def test_database_path_resolved_is_absolute(self, clean_env: None) -> None:
        assert Settings().database_path_resolved.is_absolute()


# ===========================================================================
# KeyValueStore
# ===========================================================================


class TestKeyValueStore:
    async def test_get_missing_key_returns_none(self, memory_db: aiosqlite.Connection) -> None:
        store = KeyValueStore(memory_db)
        assert await store.get("depa_finder:user") is None

    async def test_set_then_get(self, memory_db: aiosqlite.Connection) -> None:
        store = KeyValueStore(memory_db)
        await store.set("depa_finder:user", '{"name": "Ana"}')

        assert await store.get("depa_finder:user") == '{"name": "Ana"}'

    async def test_set_overwrites_existing_value(self, memory_db: aiosqlite.Connection) -> None:
        store = KeyValueStore(memory_db)
        await store.set("k", "first")
        await store.set("k", "second")

        assert await store.get("k") == "second"
        cursor = await memory_db.execute("SELECT COUNT(*) FROM kv_store")
        row = await cursor.fetchone()
        assert row[0] == 1

    async def test_delete_removes_key(self, memory_db: aiosqlite.Connection) -> None:
        store = KeyValueStore(memory_db)
        await store.set("k", "v")
        await store.delete("k")

        assert await store.get("k") is None

    async def test_delete_missing_key_is_not_an_error(
        self, memory_db: aiosqlite.Connection
    ) -> None:
        await KeyValueStore(memory_db).delete("never-written")

    async def test_closed_connection_raises_storage_error(self) -> None:
        conn = await open_db(":memory:")
        await conn.close()
        store = KeyValueStore(conn)

        with pytest.raises(StorageError):
            await store.get("k")

    async def test_open_db_creates_file_and_schema(self, tmp_path: Path) -> None:
        db_path = tmp_path / "subdir" / "test.db"
        conn = await open_db(db_path)
        try:
            assert db_path.exists()
            cursor = await conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name='kv_store'"
            )
            assert await cursor.fetchone() is not None
        finally:
            await conn.close()
