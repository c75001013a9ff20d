# GoSh — Interactive Command Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Quote-aware tokenizer for GoSh input lines.

Follows the usual shell lexing rules:
- whitespace separates tokens outside of quotes
- '...' is fully literal (a backslash inside is kept as-is)
- "..." allows backslash escapes of " \\ $ ` and newline
- a backslash outside quotes escapes the next character
- adjacent quoted/unquoted pieces join into one token
"""

from __future__ import annotations

import shlex
from enum import Enum, auto

from .errors import ParseError

# Characters a backslash may escape inside double quotes.
_DQUOTE_ESCAPABLE = frozenset('"\\$`\n')


class LexerState(Enum):
    """States for the quote-aware lexer."""
    NORMAL = auto()
    SINGLE_QUOTE = auto()
    DOUBLE_QUOTE = auto()
    ESCAPE = auto()


def tokenize(line: str) -> list[str]:
    """Split a raw input line into argument strings.

    Args:
        line: Raw line as typed by the user

    Returns:
        List of tokens. Empty for an empty or whitespace-only line.

    Raises:
        ParseError: On an unterminated quote or a trailing backslash
    """
    tokens: list[str] = []
    current: list[str] = []
    # A token exists once any quote or character was seen, so that
    # "" still yields an (empty) argument.
    in_token = False
    state = LexerState.NORMAL
    quote_start = 0

    i = 0
    while i < len(line):
        ch = line[i]

        if state == LexerState.ESCAPE:
            # Escaped newline is a line continuation, not a character
            if ch != "\n":
                current.append(ch)
                in_token = True
            state = LexerState.NORMAL
            i += 1
            continue

        if state == LexerState.NORMAL:
            if ch.isspace():
                if in_token:
                    tokens.append("".join(current))
                    current = []
                    in_token = False
            elif ch == "\\":
                state = LexerState.ESCAPE
            elif ch == "'":
                state = LexerState.SINGLE_QUOTE
                quote_start = i
                in_token = True
            elif ch == '"':
                state = LexerState.DOUBLE_QUOTE
                quote_start = i
                in_token = True
            else:
                current.append(ch)
                in_token = True
            i += 1

        elif state == LexerState.SINGLE_QUOTE:
            if ch == "'":
                state = LexerState.NORMAL
            else:
                current.append(ch)
            i += 1

        elif state == LexerState.DOUBLE_QUOTE:
            if ch == "\\" and i + 1 < len(line):
                nxt = line[i + 1]
                if nxt in _DQUOTE_ESCAPABLE:
                    if nxt != "\n":
                        current.append(nxt)
                else:
                    current.append(ch)
                    current.append(nxt)
                i += 2
                continue
            if ch == '"':
                state = LexerState.NORMAL
            else:
                current.append(ch)
            i += 1

    if state == LexerState.SINGLE_QUOTE:
        raise ParseError("unterminated single quote", quote_start)
    if state == LexerState.DOUBLE_QUOTE:
        raise ParseError("unterminated double quote", quote_start)
    if state == LexerState.ESCAPE:
        raise ParseError("trailing backslash with nothing to escape",
                         len(line) - 1)

    if in_token:
        tokens.append("".join(current))

    return tokens


def join_tokens(tokens: list[str]) -> str:
    """Join tokens back into a line that tokenizes to the same list."""
    return " ".join(shlex.quote(t) for t in tokens)
