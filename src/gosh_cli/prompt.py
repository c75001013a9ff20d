# GoSh — Interactive Command Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Prompt template rendering.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime

from .config import ANSI_COLORS, SHELL_NAME, SHELL_VERSION

PLACEHOLDERS: dict[str, str] = {
    "{dir}": "current directory (home shown as ~)",
    "{time}": "current time, HH:MM:SS",
    "{date}": "current date, YYYY-MM-DD",
    "{shell}": "shell name",
    "{version}": "shell version",
}


@dataclass(frozen=True)
class PromptState:
    cwd: str
    time: str
    date: str
    shell_name: str = SHELL_NAME
    version: str = SHELL_VERSION


def contract_home(path: str, home: str | None = None) -> str:
    """Rewrite a leading home-directory prefix to ``~``."""
    home = home if home is not None else os.path.expanduser("~")
    home = home.rstrip(os.sep)
    if not home:
        return path
    if path == home:
        return "~"
    if path.startswith(home + os.sep):
        return "~" + path[len(home):]
    return path


def current_state(now: datetime | None = None) -> PromptState:
    """Snapshot the live values the prompt placeholders refer to."""
    now = now or datetime.now()
    try:
        cwd = os.getcwd()
    except OSError:
        # cwd was removed underneath us
        cwd = os.environ.get("PWD", "?")
    return PromptState(
        cwd=cwd,
        time=now.strftime("%H:%M:%S"),
        date=now.strftime("%Y-%m-%d"),
    )


def render(template: str, state: PromptState, color: str) -> str:
    """Render a prompt template.

    Placeholders are substituted literally; unknown ``{...}`` sequences
    are left verbatim. A known color wraps the whole result in its escape
    pair; an unknown one leaves it undecorated.
    """
    values = {
        "{dir}": contract_home(state.cwd),
        "{time}": state.time,
        "{date}": state.date,
        "{shell}": state.shell_name,
        "{version}": state.version,
    }

    # Single left-to-right pass; substituted text is never re-expanded.
    out: list[str] = []
    i = 0
    while i < len(template):
        if template[i] == "{":
            end = template.find("}", i)
            if end != -1:
                key = template[i:end + 1]
                if key in values:
                    out.append(values[key])
                    i = end + 1
                    continue
        out.append(template[i])
        i += 1
    rendered = "".join(out)

    start = ANSI_COLORS.get(color)
    if start is None or color == "reset":
        return rendered
    return f"{start}{rendered}{ANSI_COLORS['reset']}"
