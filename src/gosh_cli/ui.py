# GoSh — Interactive Command Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

from __future__ import annotations

import os
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.formatted_text import ANSI
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.patch_stdout import patch_stdout
from prompt_toolkit.shortcuts import print_formatted_text
from prompt_toolkit.styles import Style

if TYPE_CHECKING:
    from .kernel import Kernel  # pragma: no cover


# ----------------------------
# Theme / Style
# ----------------------------


def _default_style_dict() -> dict[str, str]:
    return {
        "completion-menu": "bg:#111111 #d0d0d0",
        "completion-menu.completion": "bg:#111111 #d0d0d0",
        "completion-menu.completion.current": "bg:#303030 #ffffff bold",
        "completion-menu.meta.completion": "bg:#111111 #808080",
        "completion-menu.meta.completion.current": "bg:#303030 #a0a0a0",
        "bottom-toolbar": "bg:#0b0b0b #d0d0d0",
        "gosh.aliasbar.label": "bg:#0b0b0b #a0a0a0",
        "gosh.aliasbar.value": "bg:#0b0b0b #d0d0d0",
    }


# ----------------------------
# Completion
# ----------------------------


class ExecutableCompleter(Completer):
    """Completes executable names available on PATH (first token)."""

    def __init__(self) -> None:
        self._cache: set[str] | None = None
        self._cache_path: str | None = None

    def load(self) -> set[str]:
        path_val = os.environ.get("PATH", "")
        if self._cache is not None and self._cache_path == path_val:
            return self._cache

        exes: set[str] = set()
        for p in path_val.split(os.pathsep):
            if not p:
                continue
            try:
                for name in os.listdir(p):
                    full = os.path.join(p, name)
                    if os.path.isfile(full) and os.access(full, os.X_OK):
                        exes.add(name)
            except OSError:
                continue

        self._cache = exes
        self._cache_path = path_val
        return exes

    def get_completions(
        self, document, complete_event
    ) -> Iterable[Completion]:
        token = document.text_before_cursor.lstrip()
        if not token or " " in token:
            return
        for exe in sorted(self.load()):
            if exe.startswith(token):
                yield Completion(
                    exe, start_position=-len(token), display_meta="exe"
                )


class PathCompleter(Completer):
    """Filesystem path completion for arguments (after the first token)."""

    def current_arg_token(self, text: str) -> str | None:
        """Return the argument fragment under the cursor, or None.

        None means the cursor is still on the command token.
        """
        stripped = text.lstrip()
        if " " not in stripped:
            return None
        if stripped.endswith(" "):
            return ""
        return stripped.split()[-1]

    def get_completions(
        self, document, complete_event
    ) -> Iterable[Completion]:
        token = self.current_arg_token(document.text_before_cursor or "")
        if token is None:
            return

        expanded = os.path.expanduser(token)
        if token == "":
            base_dir, prefix, insert_prefix = ".", "", ""
        elif expanded.endswith(os.sep):
            base_dir, prefix, insert_prefix = expanded, "", token
        else:
            base_dir = os.path.dirname(expanded) or "."
            prefix = os.path.basename(expanded)
            insert_prefix = os.path.dirname(token)
            if insert_prefix and not insert_prefix.endswith("/"):
                insert_prefix += "/"

        try:
            names = sorted(os.listdir(base_dir))
        except OSError:
            return

        for name in names:
            if not name.startswith(prefix):
                continue
            if name.startswith(".") and not prefix.startswith("."):
                continue
            is_dir = os.path.isdir(os.path.join(base_dir, name))
            yield Completion(
                f"{insert_prefix}{name}" + ("/" if is_dir else ""),
                start_position=-len(token),
                display_meta="dir" if is_dir else "file",
            )


class GoshCompleter(Completer):
    """Builtins + aliases + executables on the first token, paths after."""

    def __init__(self, kernel: Kernel | None) -> None:
        self.kernel = kernel
        self._exe = ExecutableCompleter()
        self._path = PathCompleter()

    def get_completions(
        self, document, complete_event
    ) -> Iterable[Completion]:
        before = (document.text_before_cursor or "").lstrip()

        if " " in before:
            yield from self._path.get_completions(document, complete_event)
            return

        if not before:
            return

        seen: set[str] = set()
        if self.kernel is not None:
            for name in self.kernel.command_names():
                if not name.startswith(before):
                    continue
                seen.add(name)
                expanded = self.kernel.expand_alias(name)
                yield Completion(
                    name,
                    start_position=-len(before),
                    display_meta=expanded if expanded else "builtin",
                )

        for exe in sorted(self._exe.load()):
            if exe.startswith(before) and exe not in seen:
                yield Completion(
                    exe, start_position=-len(before), display_meta="exe"
                )


# ----------------------------
# PromptSession line reader
# ----------------------------


class PromptToolkitUI:
    """
    Terminal-friendly line reader:
      - Keeps normal terminal scrollback.
      - Recall buffer seeded from the history file (history_size entries).
      - Completion of builtins, aliases, executables and paths.
      - Bottom toolbar previews the alias expansion of the first token.
    """

    def __init__(
        self,
        kernel: Kernel | None = None,
        history_entries: Iterable[str] = (),
    ) -> None:
        self.kernel = kernel
        self.session: PromptSession[str] | None = None
        self._style = Style.from_dict(_default_style_dict())
        self._history = InMemoryHistory()
        for entry in history_entries:
            self._history.append_string(entry)

        # Track whether we ended on a newline (to prevent prompt mangling)
        self._needs_newline_before_prompt = False

    # ---------- toolbar rendering ----------

    def _build_aliasbar_tokens(self) -> list[tuple[str, str]]:
        if self.session is None or self.kernel is None:
            return []

        s = (self.session.default_buffer.text or "").lstrip()
        if not s:
            return []

        first = s.split(maxsplit=1)[0]
        expanded = self.kernel.expand_alias(first)
        if not expanded:
            return []

        return [
            ("class:gosh.aliasbar.label", "  "),
            ("class:gosh.aliasbar.value", f"{first} → {expanded}"),
            ("class:gosh.aliasbar.label", "  "),
        ]

    def _bottom_toolbar(self):
        return self._build_aliasbar_tokens() or None

    # ---------- session ----------

    def _ensure_session(self) -> None:
        if self.session is not None:
            return

        self.session = PromptSession(
            history=self._history,
            key_bindings=self.build_key_bindings(),
            completer=GoshCompleter(self.kernel),
            complete_while_typing=False,
            style=self._style,
            bottom_toolbar=self._bottom_toolbar,
        )

    # ---------- public API ----------

    def read(self, prompt: str) -> str:
        self._ensure_session()
        assert self.session is not None

        if self._needs_newline_before_prompt:
            print_formatted_text(ANSI("\n"), style=self._style, end="")
            self._needs_newline_before_prompt = False

        with patch_stdout():
            # prompt carries ANSI color from the renderer
            return self.session.prompt(ANSI(prompt))

    def read_line(self, prompt: str) -> tuple[str | None, bool]:
        """Return (trimmed line, ok). Ctrl+C discards the line (None)."""
        try:
            return (self.read(prompt) or "").strip(), True
        except KeyboardInterrupt:
            return None, True
        except EOFError:
            return "", False

    def write(self, text: str) -> None:
        """Write EXACTLY what we receive (no extra newline)."""
        if not text:
            return
        print_formatted_text(ANSI(text), style=self._style, end="")
        self._needs_newline_before_prompt = not text.endswith("\n")

    # ---------- keybindings ----------

    def build_key_bindings(self) -> KeyBindings:
        kb = KeyBindings()

        @kb.add("c-l")
        def _(event):
            event.app.renderer.clear()
            event.app.invalidate()

        return kb


class StdIOReader:
    """Plain input()/print line reader (GOSH_LEGACY_UI=1)."""

    def __init__(
        self,
        input_fn: Callable[[str], str] | None = None,
        output_fn: Callable[[str], None] | None = None,
    ) -> None:
        self.input_fn = input_fn
        self.output_fn = output_fn

    def read_line(self, prompt: str) -> tuple[str | None, bool]:
        read = self.input_fn or input
        try:
            return (read(prompt) or "").strip(), True
        except KeyboardInterrupt:
            self.write("\n")
            return None, True
        except EOFError:
            return "", False

    def write(self, text: str) -> None:
        if not text:
            return
        if self.output_fn is not None:
            self.output_fn(text)
        else:
            print(text, end="", flush=True)
