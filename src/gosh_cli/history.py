# GoSh — Interactive Command Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Append-only input history file.

One raw input line per record, newline-terminated, UTF-8. Lines are
recorded before they are parsed, so malformed and empty input is kept too.
"""

from __future__ import annotations

from collections import deque
from pathlib import Path

from .errors import PersistenceError


class HistoryRecorder:
    """File implementation of the HistorySink protocol."""

    def __init__(self, path: Path):
        self.path = path

    def record(self, line: str) -> None:
        """Append ``line`` to the history file.

        Raises:
            PersistenceError: If the file cannot be opened or written
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError as e:
            raise PersistenceError(
                f"can't write to history {self.path}: {e}"
            ) from e

    def tail(self, limit: int) -> list[str]:
        """Return the newest ``limit`` non-blank entries, oldest first.

        A missing or unreadable file yields an empty list.
        """
        if limit <= 0 or not self.path.exists():
            return []

        entries: deque[str] = deque(maxlen=limit)
        try:
            with self.path.open(
                "r", encoding="utf-8", errors="replace"
            ) as f:
                for raw in f:
                    line = raw.rstrip("\n")
                    if line.strip():
                        entries.append(line)
        except OSError:
            return []
        return list(entries)
