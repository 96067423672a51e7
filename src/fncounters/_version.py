# SPDX-FileCopyrightText: 2026 The fncounters Authors
# SPDX-License-Identifier: Apache-2.0

"""Version string read from the installed distribution metadata."""

from __future__ import annotations

try:
    from importlib.metadata import version

    __version__: str = version("fncounters")
except Exception:
    __version__ = "0.0.0.dev0"
