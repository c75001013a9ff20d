# GoSh — Interactive Command Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
GoSh kernel.

Per-line session engine:
- history recording (before anything else, failures are warnings)
- tokenization + single-level alias expansion
- builtin dispatch through a name -> handler table
- everything else handed to the injected executor

Important boundary:
- Kernel does not read or write files itself. Config persistence,
  history and process launching are injected collaborators.
- Every ShellError raised while handling one line is reported and
  swallowed here; the session keeps running.
"""

from __future__ import annotations

import logging
import os
import sys
import traceback
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from . import config as cfg_module
from .aliases import describe, resolve
from .builtins import Builtin, default_builtins
from .config import SHELL_NAME, SHELL_VERSION, ShellConfig
from .errors import ExecError, PersistenceError, ShellError
from .interfaces import ConfigPersistence, Executor, HistorySink
from .prompt import current_state, render
from .tokenizer import tokenize

logger = logging.getLogger(__name__)

ERROR_PREFIX = SHELL_NAME.lower()


def write_crash_log(
    error: Exception,
    raw_line: str = "",
    tokens: list[str] | None = None,
    cwd: str = "",
) -> Path | None:
    """Write an entry to the crash log.

    Logs unhandled exceptions that escaped the kernel.
    Only creates the log directory when actually needed.
    Appends to crash.log (never overwrites).

    Returns:
        The crash log path, or None if it could not be written
    """
    try:
        logs_dir = cfg_module.logs_dir(cfg_module.get_data_root())
        logs_dir.mkdir(parents=True, exist_ok=True)
        crash_log_path = logs_dir / "crash.log"

        lines = [f"{datetime.now().isoformat()}"]
        if cwd:
            lines.append(f"cwd={cwd}")
        if raw_line:
            lines.append(f"raw={raw_line}")
        if tokens:
            lines.append(f"tokens={tokens!r}")
        lines.append(f"error={type(error).__name__}: {error}")
        lines.append("traceback:")
        lines.append(
            "".join(
                traceback.format_exception(
                    type(error), error, error.__traceback__
                )
            )
        )
        lines.append("----")

        with crash_log_path.open("a", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")
        return crash_log_path
    except OSError:
        # Already handling a crash; nowhere left to report this
        return None


@dataclass
class Kernel:
    """GoSh session engine."""

    config: ShellConfig
    executor: Executor
    config_store: ConfigPersistence | None = None
    history: HistorySink | None = None
    builtins: dict[str, Builtin] = field(default_factory=default_builtins)

    running: bool = False
    exit_code: int = 0
    last_status: int | None = None
    prev_cwd: str | None = None

    # Tokens of the line currently being dispatched (crash reports)
    current_tokens: list[str] = field(default_factory=list)

    # Error/warning sink (wired by the CLI); stderr when unset
    error_fn: Callable[[str], None] | None = None

    # -----------------------
    # Session
    # -----------------------

    def start(self) -> str:
        """Start a session and return the welcome banner."""
        self.running = True
        self.exit_code = 0
        return (
            f"{SHELL_NAME} {SHELL_VERSION}. "
            f"Type 'help' for builtin commands."
        )

    def prompt(self) -> str:
        """Return the rendered prompt string (with ANSI colors)."""
        return render(
            self.config.prompt_template, current_state(), self.config.color
        )

    # -----------------------
    # UI helper hooks
    # -----------------------

    def expand_alias(self, token: str) -> str | None:
        """Used by the UI toolbar to preview an alias expansion."""
        return describe(token, self.config.aliases)

    def command_names(self) -> list[str]:
        """Builtin and alias names, for first-token completion."""
        return sorted(set(self.builtins) | set(self.config.aliases))

    # -----------------------
    # Command handling
    # -----------------------

    def handle_line(self, line: str) -> str:
        """Handle one input line and return the text to print."""
        self._record(line)
        self.current_tokens = []

        try:
            tokens = tokenize(line)
            if not tokens:
                return ""

            resolved = resolve(tokens, self.config.aliases)
            if resolved is not tokens:
                logger.debug("Alias %s -> %s", tokens[0], resolved)
            self.current_tokens = resolved
            if not resolved:
                return ""

            return self.dispatch(resolved)
        except ExecError as e:
            self.last_status = None
            self._error(f"{ERROR_PREFIX}: {e}")
            return ""
        except ShellError as e:
            self._error(f"{ERROR_PREFIX}: {e}")
            return ""

    def dispatch(self, tokens: list[str]) -> str:
        """Run a resolved, non-empty token list."""
        handler = self.builtins.get(tokens[0])
        if handler is not None:
            logger.debug("Builtin %s %s", tokens[0], tokens[1:])
            return handler.execute(tokens[1:], self)

        status = self.executor.run(tokens)
        self.last_status = status.code
        return ""

    def persist_config(self) -> None:
        """Save the config; a failure only produces a warning."""
        if self.config_store is None:
            return
        try:
            self.config_store.save(self.config)
        except PersistenceError as e:
            logger.warning("Config not saved: %s", e)
            self._error(f"{ERROR_PREFIX}: warning: {e} (kept in memory)")

    # -----------------------
    # Internals
    # -----------------------

    def _record(self, line: str) -> None:
        if self.history is None:
            return
        try:
            self.history.record(line)
        except PersistenceError as e:
            logger.warning("History not recorded: %s", e)
            self._error(f"{ERROR_PREFIX}: warning: {e}")

    def _error(self, text: str) -> None:
        if self.error_fn is not None:
            self.error_fn(text + "\n")
        else:
            sys.stderr.write(text + "\n")
            sys.stderr.flush()

    def cwd(self) -> str:
        try:
            return os.getcwd()
        except OSError:
            return ""
