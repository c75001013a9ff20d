# GoSh — Interactive Command Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Protocol definitions for dependency injection.

These interfaces keep the kernel independent of the filesystem, the
terminal and the process table, so each collaborator can be faked in
tests.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .config import ShellConfig  # pragma: no cover
    from .executor import ExitStatus  # pragma: no cover


class ConfigPersistence(Protocol):
    """Protocol for loading and saving the shell configuration."""

    def load(self) -> ShellConfig:
        """Return defaults merged with any persisted values."""
        ...

    def save(self, config: ShellConfig) -> None:
        """Persist the config. Raises PersistenceError on failure."""
        ...


class HistorySink(Protocol):
    """Protocol for the append-only input history."""

    def record(self, line: str) -> None:
        """Append one raw line. Raises PersistenceError on failure."""
        ...

    def tail(self, limit: int) -> list[str]:
        """Return up to ``limit`` newest entries, oldest first."""
        ...


class Executor(Protocol):
    """Protocol for external command execution."""

    interactive_commands: set[str]

    def is_interactive(self, tokens: list[str]) -> bool:
        """True if ``tokens`` must run behind a pseudo-terminal."""
        ...

    def run(self, tokens: list[str]) -> ExitStatus:
        """Launch and wait. Raises ExecError on failure."""
        ...


class LineReader(Protocol):
    """Protocol for the interactive line reader."""

    def read_line(self, prompt: str) -> tuple[str | None, bool]:
        """Return (trimmed line, ok).

        ok=False means end of input. A line of None was discarded at the
        prompt (Ctrl+C) and is neither recorded nor run.
        """
        ...

    def write(self, text: str) -> None:
        """Write text exactly as given."""
        ...
