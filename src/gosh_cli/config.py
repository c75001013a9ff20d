# GoSh — Interactive Command Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Configuration model and YAML persistence for GoSh.

Handles:
- Data root resolution (GOSH_DATA_HOME, ~/.local/share)
- Config/history/log path helpers
- Packaged YAML defaults loading (gosh_cli/defaults/config.yaml)
- ShellConfig: the single owned settings object
- ConfigStore: load (defaults + user file) / save
- Branding: shell name, version, ANSI color palette
"""

from __future__ import annotations

import copy
import logging
import os
import tempfile
from dataclasses import dataclass, field
from importlib import resources as importlib_resources
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError, PersistenceError

logger = logging.getLogger(__name__)


# -----------------------
# Branding constants
# -----------------------

SHELL_NAME = "GoSh"
SHELL_VERSION = "0.3.0"

ANSI_COLORS: dict[str, str] = {
    "cyan": "\033[38;5;69;1m",
    "pink": "\033[38;5;169;1m",
    "magenta": "\033[38;5;126;1m",
    "yellow": "\033[38;5;226;1m",
    "orange": "\033[38;2;255;165;1;1m",
    "purple": "\033[38;5;96;1m",
    "blue": "\033[34m",
    "white": "\033[37m",
    "green": "\033[32m",
    "red": "\033[31m",
    "dim": "\033[2m",
    "reset": "\033[0m",
}

# Names handled by the builtin dispatcher. Aliases can never shadow these.
RESERVED_NAMES: frozenset[str] = frozenset(
    {"cd", "exit", "version", "help", "set", "alias", "unalias", "aliases"}
)

# Keys accepted by the `set` builtin.
SETTABLE_KEYS: tuple[str, ...] = ("prompt", "color", "history_size")

DEFAULT_HISTORY_SIZE = 1000
DEFAULT_PROMPT = "{dir} {shell}> "
DEFAULT_COLOR = "cyan"


def color_names() -> list[str]:
    """Palette entries a user may select (everything but reset)."""
    return sorted(name for name in ANSI_COLORS if name != "reset")


# -----------------------
# Data root + path helpers
# -----------------------


def get_data_root() -> Path:
    """Get the data root directory for GoSh.

    Resolution order:
    1. GOSH_DATA_HOME environment variable (if set)
    2. ~/.local/share (default)
    """
    gosh_data_home = os.getenv("GOSH_DATA_HOME")
    if gosh_data_home:
        return Path(gosh_data_home)
    return Path.home() / ".local" / "share"


def config_path(data_root: Path) -> Path:
    """<data_root>/gosh/config.yaml"""
    return data_root / "gosh" / "config.yaml"


def logs_dir(data_root: Path) -> Path:
    """<data_root>/gosh/logs"""
    return data_root / "gosh" / "logs"


def history_path() -> Path:
    """History file: GOSH_HISTORY_FILE if set, else ~/.gosh_history."""
    override = os.getenv("GOSH_HISTORY_FILE")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".gosh_history"


# -----------------------
# Packaged defaults loading
# -----------------------


def _defaults_dir() -> Path:
    """Return the installed path to the packaged defaults directory."""
    return Path(
        importlib_resources.files("gosh_cli") / "defaults"
    )  # type: ignore[arg-type]


def load_defaults_yaml(filename: str = "config.yaml") -> dict[str, Any]:
    """Load a YAML file from gosh_cli/defaults/."""
    path = _defaults_dir() / filename
    if not path.exists():
        raise FileNotFoundError(
            f"Missing defaults YAML: {filename} "
            f"(looked in {path.parent})"
        )

    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(
            f"Defaults YAML {filename} must load to a mapping/dict."
        )
    return data


# -----------------------
# Config model
# -----------------------


def _coerce_history_size(value: Any, default: int) -> int:
    # bool is an int subclass; "true" is not a size
    if isinstance(value, bool):
        return default
    try:
        size = int(value)
    except (TypeError, ValueError):
        return default
    return size if size > 0 else default


@dataclass
class ShellConfig:
    """Current shell settings, mutated in place by builtins."""

    prompt_template: str = DEFAULT_PROMPT
    color: str = DEFAULT_COLOR
    history_size: int = DEFAULT_HISTORY_SIZE
    aliases: dict[str, str] = field(default_factory=dict)
    interactive_commands: set[str] = field(default_factory=set)

    @classmethod
    def from_dict(
        cls, data: dict[str, Any], fallback: ShellConfig | None = None
    ) -> ShellConfig:
        """Build a config from a raw mapping, coercing invalid values.

        Missing or invalid entries take their value from ``fallback``
        (or the class defaults).
        """
        base = fallback or cls()

        prompt = data.get("prompt", base.prompt_template)
        if not isinstance(prompt, str):
            logger.warning("Ignoring non-string prompt: %r", prompt)
            prompt = base.prompt_template

        color = data.get("color", base.color)
        if not isinstance(color, str):
            logger.warning("Ignoring non-string color: %r", color)
            color = base.color

        history_size = _coerce_history_size(
            data.get("history_size", base.history_size),
            base.history_size,
        )

        # A persisted alias table replaces the default one wholesale.
        aliases = dict(base.aliases)
        raw_aliases = data.get("aliases")
        if isinstance(raw_aliases, dict):
            aliases = {}
            for name, command in raw_aliases.items():
                if not isinstance(name, str) or not isinstance(command, str):
                    logger.warning("Ignoring malformed alias %r", name)
                    continue
                if name in RESERVED_NAMES:
                    logger.warning(
                        "Ignoring alias %r: reserved builtin name", name
                    )
                    continue
                if not command.strip():
                    logger.warning("Ignoring alias %r: empty command", name)
                    continue
                aliases[name] = command
        elif raw_aliases is not None:
            logger.warning("Ignoring aliases: expected a mapping")

        interactive = set(base.interactive_commands)
        raw_interactive = data.get("interactive_commands")
        if isinstance(raw_interactive, list):
            interactive = {str(x) for x in raw_interactive if x}
        elif raw_interactive is not None:
            logger.warning("Ignoring interactive_commands: expected a list")

        return cls(
            prompt_template=prompt,
            color=color,
            history_size=history_size,
            aliases=aliases,
            interactive_commands=interactive,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "prompt": self.prompt_template,
            "color": self.color,
            "history_size": self.history_size,
            "aliases": dict(sorted(self.aliases.items())),
            "interactive_commands": sorted(self.interactive_commands),
        }

    def get(self, key: str) -> Any:
        """Read a user-facing setting by its `set` key."""
        if key == "prompt":
            return self.prompt_template
        if key == "color":
            return self.color
        if key == "history_size":
            return self.history_size
        raise ConfigError(
            f"unknown setting '{key}' "
            f"(expected one of: {', '.join(SETTABLE_KEYS)})"
        )

    def set(self, key: str, value: str) -> None:
        """Validate and apply a setting from its string form."""
        if key == "prompt":
            self.prompt_template = value
        elif key == "color":
            if value not in ANSI_COLORS or value == "reset":
                raise ConfigError(
                    f"unknown color '{value}' "
                    f"(available: {', '.join(color_names())})"
                )
            self.color = value
        elif key == "history_size":
            try:
                size = int(value)
            except ValueError:
                raise ConfigError(
                    f"history_size must be a positive integer, got '{value}'"
                ) from None
            if size <= 0:
                raise ConfigError(
                    f"history_size must be a positive integer, got '{value}'"
                )
            self.history_size = size
        else:
            raise ConfigError(
                f"unknown setting '{key}' "
                f"(expected one of: {', '.join(SETTABLE_KEYS)})"
            )

    def add_alias(self, name: str, command: str) -> None:
        if not name:
            raise ConfigError("alias name must not be empty")
        if not command.strip():
            raise ConfigError(f"alias '{name}' needs a command")
        if name in RESERVED_NAMES:
            raise ConfigError(
                f"cannot create alias '{name}': reserved builtin name"
            )
        self.aliases[name] = command

    def remove_alias(self, name: str) -> None:
        if name not in self.aliases:
            raise ConfigError(f"no such alias: {name}")
        del self.aliases[name]


# -----------------------
# Persistence
# -----------------------


class ConfigStore:
    """YAML-file implementation of the ConfigPersistence protocol."""

    def __init__(
        self,
        path: Path | None = None,
        defaults: dict[str, Any] | None = None,
    ):
        """Initialize store.

        Args:
            path: Config file path (default: <data_root>/gosh/config.yaml)
            defaults: Raw defaults mapping (default: packaged config.yaml)
        """
        self.path = path if path is not None else config_path(get_data_root())
        self._defaults = (
            copy.deepcopy(defaults)
            if defaults is not None
            else load_defaults_yaml()
        )

    def defaults(self) -> ShellConfig:
        return ShellConfig.from_dict(self._defaults)

    def load(self) -> ShellConfig:
        """Return packaged defaults merged with any persisted values.

        A missing, unreadable or malformed user file yields the defaults.
        """
        base = self.defaults()
        if not self.path.exists():
            return base

        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Could not read config %s: %s", self.path, e)
            return base

        if not isinstance(data, dict):
            logger.warning(
                "Config %s must be a mapping; using defaults", self.path
            )
            return base

        return ShellConfig.from_dict(data, fallback=base)

    def save(self, config: ShellConfig) -> None:
        """Write the config back to disk (atomic replace).

        Raises:
            PersistenceError: If the file cannot be written
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=".config-", suffix=".yaml", dir=str(self.path.parent)
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    yaml.safe_dump(
                        config.to_dict(), f,
                        default_flow_style=False, sort_keys=False,
                    )
                os.replace(tmp_name, self.path)
            except BaseException:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass
                raise
        except OSError as e:
            raise PersistenceError(
                f"could not save config to {self.path}: {e}"
            ) from e
