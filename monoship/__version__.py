"""
monoship version information.

Single source of truth for the package version; ``pyproject.toml`` and
``monoship --version`` must agree with it.
"""

from __future__ import annotations

__version__ = "0.1.0.dev0"
