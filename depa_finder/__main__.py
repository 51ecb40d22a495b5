"""depa_finder process entry-point.

Usage:
    python -m depa_finder [--credential TOKEN] [--logout]
                          [--log-level LEVEL] [--log-format FORMAT]

Restores the saved session (or logs in with ``--credential``) and runs the
interactive deck in :mod:`depa_finder.cli`.  Without a session and without a
credential it prints the login prompt and exits with status 2.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from pydantic import ValidationError

from depa_finder.core import configure_logging
from depa_finder.core.exceptions import ConfigError
from depa_finder.core.settings import Settings


async def _run(args: argparse.Namespace, settings: Settings) -> int:
    from depa_finder.app import open_app  # noqa: PLC0415
    from depa_finder.cli import LOGIN_PROMPT, run_deck  # noqa: PLC0415

    async with open_app(settings, fetch_catalog=False) as app:
        if args.logout:
            await app.logout()
            print("Sesión cerrada.")  # noqa: T201
            return 0

        if args.credential is not None:
            if await app.login.handle_success(args.credential) is None:
                print(app.login.error, file=sys.stderr)  # noqa: T201
                return 1

        if app.session.identity is None:
            print(LOGIN_PROMPT)  # noqa: T201
            return 2

        await app.start_deck()
        return await run_deck(app)


def _load_settings() -> Settings:
    try:
        return Settings()
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc


def main() -> None:
    """CLI entry-point registered in ``pyproject.toml``."""
    parser = argparse.ArgumentParser(
        prog="depa-finder",
        description="Swipe through curated rental listings and keep the ones you like.",
    )
    parser.add_argument(
        "--credential",
        default=None,
        metavar="TOKEN",
        help="Credential (JWT) returned by the Google login widget.",
    )
    parser.add_argument(
        "--logout",
        action="store_true",
        help="Forget the saved session and exit.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        metavar="LEVEL",
        help="Override LOG_LEVEL env var (DEBUG|INFO|WARNING|ERROR).",
    )
    parser.add_argument(
        "--log-format",
        default=None,
        metavar="FORMAT",
        help="Override LOG_FORMAT env var (text|json).",
    )

    args = parser.parse_args()

    try:
        configure_logging(level=args.log_level, fmt=args.log_format)
    except ValueError as exc:
        print(f"depa-finder: configuration error: {exc}", file=sys.stderr)  # noqa: T201
        sys.exit(1)

    logger = logging.getLogger(__name__)

    try:
        settings = _load_settings()
        sys.exit(asyncio.run(_run(args, settings)))
    except ConfigError as exc:
        logger.critical("Configuration error: %s", exc)
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted, exiting.")
        sys.exit(0)


if __name__ == "__main__":
    main()
