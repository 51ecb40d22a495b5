"""depa_finder core domain models.

This module defines the canonical :class:`Listing` data model, the
:class:`Identity` held by the session layer, and the small value types shared
by the deck components.

The remote catalog serialises listings with the field names used here
(``comuna``, ``price_clp``, ``area_m2`` …), so a raw ``data[]`` entry can be
passed straight to :meth:`Listing.model_validate`.

Typical usage::

    from depa_finder.core.models import Listing

    listing = Listing(
        id="pi-48213",
        title="Departamento 2D2B en Ñuñoa",
        comuna="Ñuñoa",
        price_clp=520000,
        url="https://www.portalinmobiliario.com/MLC-48213",
    )
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

__all__ = [
    "SwipeDirection",
    "Listing",
    "Identity",
    "SwipeFeedback",
]

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class SwipeDirection(StrEnum):
    """Discrete classification of a drag gesture on a card."""

    LEFT = "left"
    RIGHT = "right"
    UP = "up"
    DOWN = "down"

    @property
    def is_decision(self) -> bool:
        """``True`` for the two directions that carry a user decision."""
        return self in (SwipeDirection.LEFT, SwipeDirection.RIGHT)


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


class Listing(BaseModel):
    """A single rental record as served by the listing backend.

    The model is **frozen** so instances can be shared between the buffer,
    the card stack and the likes collection without accidental mutation.
    Equality of two listings is never used for membership; the deck always
    compares by :attr:`id`.

    Attributes:
        id: Stable, unique listing identifier.  Integer ids on the wire are
            coerced to strings.
        title: Listing headline.
        address: Street address; ``None`` if not stated.
        comuna: Area / district name; ``None`` if not stated.
        price_clp: Monthly rent in :attr:`currency` units.
        currency: ISO-ish currency label, ``"CLP"`` unless stated.
        bedrooms: Bedroom count; ``None`` if unknown.
        area_m2: Floor area in square metres; ``None`` if unknown.
        source: Label of the portal the listing was scraped from.
        url: External link to the original publication.
        image_url: Primary image URL; ``None`` if absent.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(..., min_length=1, description="Stable listing identifier.")
    title: str = Field(..., min_length=1, description="Listing headline.")
    address: str | None = Field(None, description="Street address.")
    comuna: str | None = Field(None, description="Area / district name.")
    price_clp: float | None = Field(None, ge=0, description="Monthly rent.")
    currency: str = Field(default="CLP", description="Currency label.")
    bedrooms: int | None = Field(None, ge=0, description="Bedroom count.")
    area_m2: float | None = Field(None, ge=0, description="Floor area in m².")
    source: str = Field(default="", description="Source portal label.")
    url: str = Field(..., min_length=1, description="Original publication URL.")
    image_url: str | None = Field(None, description="Primary image URL.")

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v: object) -> object:
        """Accept integer ids from the backend and strip string ids."""
        if isinstance(v, bool):
            return v
        if isinstance(v, int):
            return str(v)
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("url", mode="before")
    @classmethod
    def _url_non_empty(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            raise ValueError("url must not be blank")
        return v

    @field_validator("address", "comuna", "image_url", mode="before")
    @classmethod
    def _strip_blank_strings(cls, v: object) -> object:
        """Coerce blank optional strings to None."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("currency", mode="before")
    @classmethod
    def _default_currency(cls, v: object) -> object:
        if v is None or (isinstance(v, str) and not v.strip()):
            return "CLP"
        return v

    @property
    def location(self) -> str | None:
        """Address when known, otherwise the area name."""
        return self.address or self.comuna


# ---------------------------------------------------------------------------
# Session identity
# ---------------------------------------------------------------------------


class Identity(BaseModel):
    """Profile extracted from a login credential.

    This is unverified presentation data: it is decoded locally from the
    provider's token and never checked against the issuer.

    Attributes:
        name: Display name.
        email: Account e-mail address.
        avatar: Profile picture URL; ``None`` if the provider sent none.
    """

    model_config = ConfigDict(frozen=True)

    name: str | None = None
    email: str | None = None
    avatar: str | None = None


# ---------------------------------------------------------------------------
# Swipe feedback
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SwipeFeedback:
    """Transient banner shown after a committed swipe.

    Attributes:
        direction: The committed direction.
        message: Localised banner text.
        listing: The listing that was swiped.
    """

    direction: SwipeDirection
    message: str
    listing: Listing
