"""
Shared context object for monoship CLI commands.

The ``monoship`` group builds one :class:`MonoshipContext` per invocation
from the global options and the loaded configuration; subcommands receive
it through :data:`pass_context` and layer their own options on top with
:meth:`MonoshipContext.override`.
"""

from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import Any, Optional

import click

from monoship.config import MonoshipConfig
from monoship.utils.logger import get_logger

logger = get_logger("context")


class MonoshipContext:
    """Global context object for monoship CLI commands.

    Attributes:
        config_path: Path to the monoship configuration file, if any.
        verbose: Verbosity level (0=WARNING, 1=INFO, 2+=DEBUG).
        color: Whether colored terminal output is enabled.
        config: Effective configuration (file and environment, plus any
            command-line overrides applied so far).
    """

    __slots__ = ("config_path", "verbose", "color", "config")

    def __init__(self) -> None:
        self.config_path: Optional[Path] = None
        self.verbose: int = 0
        self.color: bool = True
        self.config: MonoshipConfig = MonoshipConfig()

    def override(self, **options: Any) -> MonoshipConfig:
        """Apply command-line options on top of the loaded configuration.

        Options whose value is ``None`` were not given on the command line
        and leave the configured value alone. The loaded configuration
        object is never mutated; ``config`` is replaced instead.

        Returns:
            The new effective configuration.

        Raises:
            TypeError: An option is not a :class:`MonoshipConfig` field.
        """
        given = {name: value for name, value in options.items() if value is not None}
        if given:
            self.config = dataclasses.replace(self.config, **given)
            logger.debug("Command-line overrides: %s", ", ".join(sorted(given)))
        return self.config


#: Click decorator for injecting :class:`MonoshipContext` into commands.
pass_context = click.make_pass_decorator(MonoshipContext, ensure=True)
