from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path

import pytest

from gosh_cli.config import ANSI_COLORS
from gosh_cli.prompt import PromptState, contract_home, current_state, render


@pytest.fixture
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    h = tmp_path / "home"
    h.mkdir()
    monkeypatch.setenv("HOME", str(h))
    return h


def _state(cwd: str) -> PromptState:
    return PromptState(
        cwd=cwd, time="12:34:56", date="2025-01-02",
        shell_name="GoSh", version="9.9",
    )


def test_all_placeholders_substituted(home: Path) -> None:
    out = render(
        "{shell} {version} {date} {time} {dir}$ ",
        _state("/srv/www"),
        "no-such-color",
    )
    assert out == "GoSh 9.9 2025-01-02 12:34:56 /srv/www$ "


def test_dir_contracts_home_prefix(home: Path) -> None:
    assert render("{dir}", _state(str(home)), "none") == "~"
    assert (
        render("{dir}", _state(str(home / "src" / "x")), "none")
        == "~/src/x"
    )


def test_home_lookalike_is_not_contracted(home: Path) -> None:
    sibling = str(home) + "2"
    assert render("{dir}", _state(sibling), "none") == sibling


def test_unknown_placeholders_left_verbatim(home: Path) -> None:
    out = render("{user}@{dir} {", _state("/tmp"), "none")
    assert out == "{user}@/tmp {"


def test_substituted_text_is_not_reexpanded(home: Path) -> None:
    out = render("{dir}", _state("/data/{time}"), "none")
    assert out == "/data/{time}"


def test_known_color_wraps_whole_prompt(home: Path) -> None:
    out = render("> ", _state("/tmp"), "green")
    assert out == f"{ANSI_COLORS['green']}> {ANSI_COLORS['reset']}"


@pytest.mark.parametrize("color", ["", "chartreuse", "reset"])
def test_unknown_color_renders_undecorated(home: Path, color: str) -> None:
    assert render("> ", _state("/tmp"), color) == "> "


def test_contract_home_explicit_home() -> None:
    assert contract_home("/u/me/x", home="/u/me") == "~/x"
    assert contract_home("/u/me/x", home="/u/me/") == "~/x"
    assert contract_home("/other", home="/u/me") == "/other"


def test_current_state_uses_live_values(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(tmp_path)
    now = datetime(2024, 2, 29, 8, 5, 1)

    state = current_state(now)

    assert state.cwd == os.getcwd()
    assert state.time == "08:05:01"
    assert state.date == "2024-02-29"
    assert state.shell_name == "GoSh"
