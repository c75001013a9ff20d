# GoSh — Interactive Command Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Alias resolution.

Exactly one level of expansion is applied to the leading token. The
expanded tokens are never resolved again, even when their head is itself
an alias (or a builtin name).
"""

from __future__ import annotations

from collections.abc import Mapping

from .tokenizer import tokenize


def resolve(tokens: list[str], aliases: Mapping[str, str]) -> list[str]:
    """Rewrite the leading token of ``tokens`` using ``aliases``.

    Args:
        tokens: Tokenized command line
        aliases: Mapping of alias name -> command string

    Returns:
        ``tokenize(aliases[tokens[0]]) + tokens[1:]`` when the head is an
        alias, otherwise ``tokens`` unchanged.

    Raises:
        ParseError: If the stored alias command cannot be tokenized
    """
    if not tokens:
        return tokens

    command = aliases.get(tokens[0])
    if command is None:
        return tokens

    return tokenize(command) + list(tokens[1:])


def describe(name: str, aliases: Mapping[str, str]) -> str | None:
    """Return the expansion text for ``name``, or None if not an alias."""
    if not name:
        return None
    return aliases.get(name.strip())
