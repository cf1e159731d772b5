"""Allow ``python -m monoship`` as an alias of the ``monoship`` script."""

from __future__ import annotations

import sys


def main() -> int:
    """Run the CLI and return its exit code (see :func:`monoship.cli.main`)."""
    # The CLI pulls in httpx and rich; load it only when actually run
    from monoship.cli import main as cli_main

    return cli_main()


if __name__ == "__main__":
    sys.exit(main())
