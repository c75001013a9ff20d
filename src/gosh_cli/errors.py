# GoSh — Interactive Command Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Error taxonomy for GoSh.

Every error raised while resolving or dispatching a single input line
derives from ShellError, so the kernel can report it and keep the session
alive.
"""

from __future__ import annotations


class ShellError(Exception):
    """Base class for per-line, non-fatal shell errors."""


class ParseError(ShellError):
    """Malformed input line (unterminated quote, dangling escape)."""

    def __init__(self, reason: str, position: int | None = None):
        self.reason = reason
        self.position = position
        if position is None:
            super().__init__(f"parse error: {reason}")
        else:
            super().__init__(f"parse error: {reason} (column {position + 1})")


class ConfigError(ShellError):
    """Invalid setting key/value, alias collision, or missing alias."""


class NavigationError(ShellError):
    """Directory change target is missing or not a directory."""


class ExecError(ShellError):
    """External command could not be launched or did not exit cleanly."""


class PersistenceError(ShellError):
    """History or configuration could not be written to disk."""
