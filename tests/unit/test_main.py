"""Tests for the ``python -m depa_finder`` entry-point.

The catalog source is replaced with an empty in-memory one so no network
request is made; the session database lives under ``tmp_path``.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
from jose import jwt

from depa_finder.__main__ import main
from depa_finder.cli import LOGIN_PROMPT
from depa_finder.core.models import Listing
from depa_finder.core.settings import Settings
from depa_finder.session.credentials import INVALID_CREDENTIAL_MESSAGE
from depa_finder.source.base import ListingSource


class _EmptySource(ListingSource):
    fetches = 0

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    async def fetch_page(self) -> list[Listing]:
        type(self).fetches += 1
        return []


@pytest.fixture()
def cli_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path, clean_env: None) -> Path:
    db_path = tmp_path / "main.db"
    monkeypatch.setenv("DATABASE_PATH", str(db_path))
    monkeypatch.setattr("depa_finder.app.CatalogSource", _EmptySource)
    monkeypatch.setattr(_EmptySource, "fetches", 0)
    return db_path


def _run_main(monkeypatch: pytest.MonkeyPatch, *args: str) -> int | str | None:
    monkeypatch.setattr(sys, "argv", ["depa-finder", *args])
    with pytest.raises(SystemExit) as exc_info:
        main()
    return exc_info.value.code


def test_logged_out_without_credential_prints_prompt(
    monkeypatch: pytest.MonkeyPatch, cli_env: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    assert _run_main(monkeypatch) == 2
    assert LOGIN_PROMPT in capsys.readouterr().out


def test_invalid_credential_exits_with_error(
    monkeypatch: pytest.MonkeyPatch, cli_env: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    assert _run_main(monkeypatch, "--credential", "garbage") == 1
    assert INVALID_CREDENTIAL_MESSAGE in capsys.readouterr().err


def test_credential_login_then_logout(
    monkeypatch: pytest.MonkeyPatch, cli_env: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    token = jwt.encode({"name": "Ana"}, "k", algorithm="HS256")
    monkeypatch.setattr("builtins.input", lambda prompt="": "q")

    assert _run_main(monkeypatch, "--credential", token) == 0
    assert _run_main(monkeypatch) == 0

    assert _run_main(monkeypatch, "--logout") == 0
    assert "Sesión cerrada." in capsys.readouterr().out
    assert _run_main(monkeypatch) == 2


def test_session_only_paths_skip_catalog_fetch(
    monkeypatch: pytest.MonkeyPatch, cli_env: Path
) -> None:
    assert _run_main(monkeypatch) == 2
    assert _run_main(monkeypatch, "--logout") == 0
    assert _run_main(monkeypatch, "--credential", "garbage") == 1

    assert _EmptySource.fetches == 0


def test_deck_run_fetches_catalog_once(monkeypatch: pytest.MonkeyPatch, cli_env: Path) -> None:
    token = jwt.encode({"name": "Ana"}, "k", algorithm="HS256")
    monkeypatch.setattr("builtins.input", lambda prompt="": "q")

    assert _run_main(monkeypatch, "--credential", token) == 0
    assert _EmptySource.fetches == 1


def test_invalid_settings_exit_with_config_error(
    monkeypatch: pytest.MonkeyPatch, cli_env: Path
) -> None:
    monkeypatch.setenv("BATCH_SIZE", "0")
    assert _run_main(monkeypatch) == 1


def test_invalid_log_level_flag_exits(monkeypatch: pytest.MonkeyPatch, cli_env: Path) -> None:
    assert _run_main(monkeypatch, "--log-level", "VERBOSE") == 1
