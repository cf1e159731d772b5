"""
Utility helpers for monoship.

This package provides reusable utilities used across monoship, including:

- Console output helpers (Rich-based)
- Logging configuration and retrieval
- Filesystem safety helpers
- Async HTTP client utilities
- Semver helpers

Only symbols listed in ``__all__`` are considered part of the public API.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Filesystem utilities
# ---------------------------------------------------------------------------

from monoship.utils.filesystem import (
    copy_file,
    read_json_file,
    safe_read_file,
    safe_write_file,
    validate_path,
    write_json_file,
)

# ---------------------------------------------------------------------------
# Logging utilities
# ---------------------------------------------------------------------------

from monoship.utils.logger import (
    disable_logging,
    get_logger,
    is_logging_configured,
    level_for_verbosity,
    setup_logging,
)

# ---------------------------------------------------------------------------
# Console utilities
# ---------------------------------------------------------------------------

from monoship.utils.console import (
    colorize_bump,
    colorize_state,
    confirm,
    print_blank,
    print_error,
    print_info,
    print_success,
    print_table,
    print_tree,
    print_warning,
    reconfigure_console,
)

# ---------------------------------------------------------------------------
# HTTP utilities
# ---------------------------------------------------------------------------

from monoship.utils.http import HTTPClient

# ---------------------------------------------------------------------------
# Version utilities
# ---------------------------------------------------------------------------

from monoship.utils.version_utils import bump_version, get_update_type, is_semver

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

__all__ = [
    # Console
    "confirm",
    "print_error",
    "print_info",
    "print_table",
    "print_tree",
    "print_blank",
    "print_success",
    "print_warning",
    "reconfigure_console",
    "colorize_bump",
    "colorize_state",
    # Logging
    "get_logger",
    "setup_logging",
    "disable_logging",
    "is_logging_configured",
    "level_for_verbosity",
    # Filesystem
    "safe_read_file",
    "safe_write_file",
    "read_json_file",
    "write_json_file",
    "copy_file",
    "validate_path",
    # HTTP
    "HTTPClient",
    # Version utilities
    "bump_version",
    "get_update_type",
    "is_semver",
]
