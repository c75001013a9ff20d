# GoSh — Interactive Command Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
GoSh core package.

An interactive command shell: aliases, a small builtin set, and external
commands run either directly or behind a pseudo-terminal.
"""
from .config import SHELL_VERSION as __version__  # noqa: F401
from .kernel import Kernel as Kernel  # noqa: F401 (re-export)
