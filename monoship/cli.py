"""
Command-line interface for monoship.

This module provides the main CLI entry point and handles global options,
configuration loading, and command registration.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Optional, Sequence

import click

from monoship.config import load_config
from monoship.__version__ import __version__
from monoship.context import MonoshipContext
from monoship.exceptions import MonoshipError
from monoship.commands.publish import publish
from monoship.commands.assemble import assemble
from monoship.utils.logger import get_logger, level_for_verbosity, setup_logging
from monoship.utils.console import print_error, print_warning, reconfigure_console

logger = get_logger("cli")


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to configuration file.",
    envvar="MONOSHIP_CONFIG",
)
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity (can be repeated: -v, -vv).",
)
@click.option(
    "--color/--no-color",
    default=True,
    help="Enable or disable colored output.",
    envvar="MONOSHIP_COLOR",
)
@click.version_option(
    version=__version__,
    prog_name="monoship",
    message="%(prog)s %(version)s",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config: Optional[Path],
    verbose: int,
    color: bool,
) -> None:
    """monoship — publish packages out of a JavaScript monorepo.

    Internal workspace dependencies are folded into each published
    package under ``deps/`` and their imports rewritten to relative paths.

    \b
    Available commands:
      monoship assemble PACKAGE_DIR...   Build publishable directories
      monoship publish PACKAGE_DIR...    Assemble and publish a batch

    \b
    Examples:
      monoship assemble packages/app --output-root dist
      monoship publish packages/app packages/cli --bump minor
      monoship -v publish packages/app --dry-run

    Use ``monoship COMMAND --help`` for command-specific options.
    """
    # Respect NO_COLOR for the console and downstream libraries
    if color:
        os.environ.pop("NO_COLOR", None)
    else:
        os.environ["NO_COLOR"] = "1"
    reconfigure_console()

    setup_logging(level=level_for_verbosity(verbose), verbose=verbose >= 2)

    loaded_config = load_config(config)

    monoship_ctx = MonoshipContext()
    monoship_ctx.config_path = config or loaded_config.source_path
    monoship_ctx.color = color
    monoship_ctx.verbose = verbose
    monoship_ctx.config = loaded_config
    ctx.obj = monoship_ctx

    logger.debug("monoship v%s", __version__)
    logger.debug("Config path: %s", monoship_ctx.config_path)
    logger.debug("Verbosity: %s | Color: %s", verbose, color)


cli.add_command(assemble)
cli.add_command(publish)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the monoship CLI.

    Returns:
        Exit code:
            0   Success
            1   Unhandled or application error
            2   Usage error (Click)
            130 Interrupted by user (Ctrl+C)
    """
    try:
        result = cli.main(
            args=list(argv) if argv is not None else None,
            prog_name="monoship",
            standalone_mode=False,
        )
        return result if isinstance(result, int) else 0

    except click.exceptions.Abort:
        print_warning("\nOperation cancelled by user")
        return 130

    except click.ClickException as exc:
        exc.show()
        return exc.exit_code

    except MonoshipError as exc:
        print_error(str(exc))
        logger.debug(
            "MonoshipError details: %s",
            exc.details or "<none>",
            exc_info=True,
        )
        return 1

    except KeyboardInterrupt:
        print_warning("\nOperation cancelled by user")
        return 130

    except Exception as exc:
        print_error(f"Unexpected error: {exc}")
        logger.exception("Unhandled exception in CLI")
        return 1


if __name__ == "__main__":
    sys.exit(main())
