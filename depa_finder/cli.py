"""Interactive terminal deck.

Renders :class:`~depa_finder.app.DeckView` snapshots as text and maps
single-letter commands onto the deck:

    l / r   swipe the top card left / right
    u / d   vertical swipe (rejected, the card stays)
    o       open the top card's publication in a new browser tab
    k       show the likes panel
    f       reload the catalog (also the retry action after an error)
    x       log out and quit
    q       quit
"""

from __future__ import annotations

import asyncio
import logging
import webbrowser
from collections.abc import Awaitable, Callable

from depa_finder.app import DeckApp, DeckStatus, DeckView
from depa_finder.core.models import Listing, SwipeDirection
from depa_finder.formatter import format_card, format_likes

__all__ = ["LOGIN_PROMPT", "render_view", "open_listing", "run_deck"]

logger = logging.getLogger(__name__)

LOGIN_PROMPT: str = (
    "Bienvenido al buscador\n"
    "Ingresa con Google para comenzar a descubrir departamentos "
    "(python -m depa_finder --credential <token>)."
)

HELP: str = "Comandos: l/r swipe, u/d, o abrir, k favoritos, f actualizar, x salir de la cuenta, q salir"

_SWIPE_COMMANDS: dict[str, SwipeDirection] = {
    "l": SwipeDirection.LEFT,
    "r": SwipeDirection.RIGHT,
    "u": SwipeDirection.UP,
    "d": SwipeDirection.DOWN,
}

LineReader = Callable[[str], Awaitable[str]]
Writer = Callable[[str], None]


def render_view(view: DeckView) -> str:
    """Render one deck snapshot as text."""
    if view.status is DeckStatus.LOGGED_OUT:
        return LOGIN_PROMPT + (f"\n{view.error}" if view.error else "")

    header = f"[{view.identity.name or view.identity.email}]" if view.identity else ""
    banner = ""
    if view.feedback is not None:
        banner = f"\n{view.feedback.message}: {view.feedback.listing.title}"

    if view.status is DeckStatus.LOADING:
        body = "Cargando departamentos..."
    elif view.status is DeckStatus.ERROR:
        body = f"{view.error}\n(f) Reintentar"
    elif view.status is DeckStatus.EMPTY:
        body = "No hay más departamentos por ahora.\n(f) Actualizar listados"
    else:
        body = f"{format_card(view.stack[0])}\n({len(view.stack)} en la pila)"

    return f"{header}\n{body}{banner}"


def open_listing(listing: Listing) -> bool:
    """Open the listing's publication in a new browser tab."""
    return webbrowser.open_new_tab(listing.url)


async def _read_stdin(prompt: str) -> str:
    return await asyncio.to_thread(input, prompt)


async def run_deck(
    app: DeckApp,
    *,
    read_line: LineReader = _read_stdin,
    write: Writer = print,
) -> int:
    """Drive *app* from line commands until the user quits.

    Returns:
        Process exit status (always ``0``; end of input quits cleanly).
    """
    while True:
        write(render_view(app.view()))
        try:
            command = (await read_line("> ")).strip().lower()
        except EOFError:
            return 0

        if command in ("q", "quit"):
            return 0

        if command in _SWIPE_COMMANDS:
            app.swipe_top(_SWIPE_COMMANDS[command])
            await app.buffer.wait_idle()
        elif command == "o":
            top = app.recognizer.top
            if top is not None and not open_listing(top):
                write(top.url)
        elif command == "k":
            write(format_likes(app.likes))
        elif command == "f":
            await app.reload()
        elif command == "x":
            await app.logout()
            write("Sesión cerrada.")
            return 0
        else:
            write(HELP)
