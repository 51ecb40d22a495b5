"""Plain-text rendering of listing cards for the terminal front end.

Public API
----------
:func:`format_price`: Price string: ``$520.000`` for CLP (Chilean
    thousands separators, no decimals), ``"<CUR> <amount>"`` otherwise.

:func:`format_card`: Multi-line card with source, title, location, price,
    comuna, bedrooms, area and the original publication link.

:func:`format_likes`: The "Me gustaron" panel.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from depa_finder.core.models import Listing

__all__ = ["format_price", "format_card", "format_likes"]

logger = logging.getLogger(__name__)

_UNKNOWN = "?"
_NO_INFO = "Sin información"


def _number(value: float | None) -> str:
    if value is None:
        return _UNKNOWN
    return str(int(value)) if float(value).is_integer() else str(value)


def format_price(listing: Listing) -> str:
    """Format the listing's rent.

    Examples:
        >>> format_price(Listing(id="1", title="x", url="u", price_clp=520000))
        '$520.000'
    """
    if listing.currency.upper() == "CLP":
        amount = round(listing.price_clp or 0)
        return "$" + f"{amount:,}".replace(",", ".")
    return f"{listing.currency} {_number(listing.price_clp)}"


def format_card(listing: Listing) -> str:
    """Render *listing* as a text card."""
    area = f"{_number(listing.area_m2)} m²" if listing.area_m2 else _UNKNOWN
    bedrooms = _UNKNOWN if listing.bedrooms is None else str(listing.bedrooms)
    lines = [
        listing.source.upper() if listing.source else "",
        listing.title,
        listing.location or "",
        "",
        f"  Precio       {format_price(listing)}",
        f"  Comuna       {listing.comuna or _NO_INFO}",
        f"  Dormitorios  {bedrooms}",
        f"  Área         {area}",
        "",
        f"Ver publicación original: {listing.url}",
    ]
    return "\n".join(lines)


def format_likes(likes: Iterable[Listing]) -> str:
    """Render the likes panel."""
    items = list(likes)
    if not items:
        return "Me gustaron\n  Haz swipe a la derecha para guardar."
    rows = [f"  - {listing.title} ({listing.comuna or _NO_INFO})" for listing in items]
    return "Me gustaron\n" + "\n".join(rows)
