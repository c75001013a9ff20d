# GoSh — Interactive Command Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
GoSh CLI entry point and REPL loop.

Design:
- CLI owns process startup: logging, config load, history file.
- Kernel is the session engine (config + store + executor injected).
- UI is a prompt_toolkit PromptSession (plain input() with
  GOSH_LEGACY_UI=1).
"""

from __future__ import annotations

import logging
import os
import sys

from . import config
from .executor import ProcessExecutor
from .history import HistoryRecorder
from .interfaces import LineReader
from .kernel import ERROR_PREFIX, Kernel, write_crash_log
from .ui import PromptToolkitUI, StdIOReader

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    """Send log records to <data_root>/gosh/logs/gosh.log.

    Level comes from GOSH_LOG_LEVEL (default WARNING). If the log
    directory cannot be created, records are dropped.
    """
    level_name = os.environ.get("GOSH_LOG_LEVEL", "WARNING").upper()
    level = getattr(logging, level_name, logging.WARNING)

    root = logging.getLogger("gosh_cli")
    root.setLevel(level)
    root.propagate = False

    try:
        logs_dir = config.logs_dir(config.get_data_root())
        logs_dir.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(
            logs_dir / "gosh.log", encoding="utf-8"
        )
    except OSError:
        handler = logging.NullHandler()

    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    root.addHandler(handler)


def run_repl(kernel: Kernel, reader: LineReader) -> int:
    """Run the read -> resolve -> dispatch loop until exit or end of input.

    Returns:
        The process exit status for the shell itself
    """
    while kernel.running:
        line, ok = reader.read_line(kernel.prompt())
        if not ok:
            # End of input: finish the prompt line and leave cleanly
            reader.write("\n")
            break
        if line is None:
            continue

        try:
            response = kernel.handle_line(line)
        except Exception as e:
            # Unhandled exception - write crash log, keep the session
            crash_path = write_crash_log(
                e, raw_line=line, tokens=kernel.current_tokens,
                cwd=kernel.cwd(),
            )
            logger.exception("Unhandled exception for %r", line)
            msg = (
                f"{ERROR_PREFIX}: internal error: "
                f"{type(e).__name__}: {e}"
            )
            if crash_path is not None:
                msg += f" (details in {crash_path})"
            reader.write(msg + "\n")
            continue

        if response:
            reader.write(response if response.endswith("\n")
                         else response + "\n")

    return kernel.exit_code


def build_kernel() -> Kernel:
    """Wire config store, history and executor into a kernel."""
    store = config.ConfigStore()
    cfg = store.load()
    executor = ProcessExecutor(interactive_commands=cfg.interactive_commands)
    history = HistoryRecorder(config.history_path())
    return Kernel(
        config=cfg, executor=executor, config_store=store, history=history
    )


def main() -> None:
    """Main entry point for the gosh console script."""
    setup_logging()
    kernel = build_kernel()
    banner = kernel.start()

    reader: LineReader
    interactive = sys.stdin.isatty()
    if os.environ.get("GOSH_LEGACY_UI") == "1" or not interactive:
        reader = StdIOReader()
    else:
        entries = (
            kernel.history.tail(kernel.config.history_size)
            if kernel.history is not None
            else []
        )
        reader = PromptToolkitUI(kernel, history_entries=entries)
        kernel.error_fn = reader.write

    if interactive:
        reader.write(banner + "\n")

    sys.exit(run_repl(kernel, reader))
