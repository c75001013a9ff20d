# GoSh — Interactive Command Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Builtin commands.

Each builtin is a small object with a ``name``, ``usage``, ``summary`` and
an ``execute(args, shell)`` method returning the text to print. The
dispatcher is a plain name -> handler table (``default_builtins()``).
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Protocol

from .config import (
    ANSI_COLORS,
    SETTABLE_KEYS,
    SHELL_NAME,
    SHELL_VERSION,
    color_names,
)
from .errors import ConfigError, NavigationError
from .prompt import PLACEHOLDERS
from .tokenizer import join_tokens

if TYPE_CHECKING:
    from .kernel import Kernel  # pragma: no cover


class Builtin(Protocol):
    """Capability shared by every builtin handler."""

    name: str
    usage: str
    summary: str

    def execute(self, args: list[str], shell: Kernel) -> str:
        ...


def expand_tilde(path: str) -> str:
    """Expand a leading ``~`` or ``~/`` to the home directory."""
    if path == "~":
        return os.path.expanduser("~")
    if path.startswith("~/"):
        return os.path.join(os.path.expanduser("~"), path[2:])
    return path


def format_alias_listing(aliases: dict[str, str]) -> str:
    reset = ANSI_COLORS["reset"]
    dim = ANSI_COLORS["dim"]
    green = ANSI_COLORS["green"]
    cyan = ANSI_COLORS["cyan"]
    pink = ANSI_COLORS["pink"]

    dash = f"{green}-{reset}"
    arrow = f"{cyan}-{reset}{pink}>{reset}"

    lines = ["aliases:"]
    if aliases:
        for name in sorted(aliases):
            lines.append(
                f"  {dash} {cyan}{name}{reset} {arrow} "
                f"{dim}{aliases[name]}{reset}"
            )
    else:
        lines.append("  (none)")
    return "\n".join(lines)


# -----------------------
# Navigation / session
# -----------------------


class CdCommand:
    name = "cd"
    usage = "cd [dir]"
    summary = "change directory (no dir: home, -: previous)"

    def execute(self, args: list[str], shell: Kernel) -> str:
        if not args or args[0] == "":
            target = os.path.expanduser("~")
        elif args[0] == "-":
            if shell.prev_cwd is None:
                raise NavigationError("cd: no previous directory")
            target = shell.prev_cwd
        else:
            target = expand_tilde(args[0])

        if not os.path.exists(target):
            raise NavigationError(f"cd: no such directory: {target}")
        if not os.path.isdir(target):
            raise NavigationError(f"cd: not a directory: {target}")

        try:
            previous = os.getcwd()
        except OSError:
            previous = None

        try:
            os.chdir(target)
        except OSError as e:
            raise NavigationError(
                f"cd: {target}: {e.strerror or e}"
            ) from e

        shell.prev_cwd = previous
        return ""


class ExitCommand:
    name = "exit"
    usage = "exit"
    summary = "leave the shell"

    def execute(self, args: list[str], shell: Kernel) -> str:
        shell.running = False
        shell.exit_code = 0
        return ""


class VersionCommand:
    name = "version"
    usage = "version"
    summary = "print the shell version"

    def execute(self, args: list[str], shell: Kernel) -> str:
        return f"{SHELL_NAME} version {SHELL_VERSION}"


class HelpCommand:
    name = "help"
    usage = "help"
    summary = "show this help"

    def execute(self, args: list[str], shell: Kernel) -> str:
        handlers = list(shell.builtins.values())
        width = max(len(h.usage) for h in handlers)

        lines = ["Builtin commands:"]
        for handler in handlers:
            lines.append(f"  {handler.usage.ljust(width)}  {handler.summary}")

        lines.append("")
        lines.append("Prompt placeholders (set prompt <template>):")
        for placeholder, desc in PLACEHOLDERS.items():
            lines.append(f"  {placeholder.ljust(10)}  {desc}")

        lines.append("")
        lines.append(f"Colors: {', '.join(color_names())}")
        return "\n".join(lines)


# -----------------------
# Settings + aliases
# -----------------------


class SetCommand:
    name = "set"
    usage = "set [key value]"
    summary = f"show or change settings ({', '.join(SETTABLE_KEYS)})"

    def execute(self, args: list[str], shell: Kernel) -> str:
        cfg = shell.config
        if not args:
            lines = ["Current settings:"]
            lines.append(f"  prompt: {cfg.prompt_template!r}")
            lines.append(f"  color: {cfg.color}")
            lines.append(f"  history_size: {cfg.history_size}")
            lines.append(f"  aliases: {len(cfg.aliases)}")
            return "\n".join(lines)

        if len(args) < 2:
            raise ConfigError("usage: set <key> <value>")

        key = args[0]
        cfg.set(key, " ".join(args[1:]))
        shell.persist_config()
        return f"{key} set to {cfg.get(key)!r}"


class AliasCommand:
    name = "alias"
    usage = "alias [name command...]"
    summary = "list aliases, or define one"

    def execute(self, args: list[str], shell: Kernel) -> str:
        if not args:
            return format_alias_listing(shell.config.aliases)

        if len(args) == 1 and "=" in args[0]:
            # alias ll='ls -la'
            name, command = args[0].split("=", 1)
        elif len(args) == 2:
            # alias ll "ls -la": the quoted body is kept as typed
            name, command = args
        else:
            name, command = args[0], join_tokens(args[1:])

        if name and any(ch.isspace() for ch in name):
            raise ConfigError(
                f"invalid alias name '{name}': contains whitespace"
            )

        shell.config.add_alias(name, command)
        shell.persist_config()
        return f"Added alias '{name}'."


class UnaliasCommand:
    name = "unalias"
    usage = "unalias name"
    summary = "remove an alias"

    def execute(self, args: list[str], shell: Kernel) -> str:
        if not args:
            raise ConfigError("usage: unalias <name>")

        name = args[0]
        shell.config.remove_alias(name)
        shell.persist_config()
        return f"Removed alias '{name}'."


class AliasesCommand:
    name = "aliases"
    usage = "aliases"
    summary = "list aliases"

    def execute(self, args: list[str], shell: Kernel) -> str:
        return format_alias_listing(shell.config.aliases)


def default_builtins() -> dict[str, Builtin]:
    """Fresh name -> handler table, in help display order."""
    handlers: list[Builtin] = [
        CdCommand(),
        AliasCommand(),
        AliasesCommand(),
        UnaliasCommand(),
        SetCommand(),
        HelpCommand(),
        VersionCommand(),
        ExitCommand(),
    ]
    return {h.name: h for h in handlers}
