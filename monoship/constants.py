"""
Centralized constants for monoship.

This module defines immutable configuration values used across monoship,
including registry settings, output layout names, file kinds, and logging
formats. All values are intended to be treated as read-only.
"""

from typing import Final, Sequence

# ---------------------------------------------------------------------------
# Project metadata
# ---------------------------------------------------------------------------

#: HTTP User-Agent template used for outbound requests.
USER_AGENT_TEMPLATE: Final[str] = "monoship/{version} (https://github.com/monoship/monoship)"

# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

#: Default npm-compatible registry.
DEFAULT_REGISTRY: Final[str] = "https://registry.npmjs.org"

#: Dist-tag that phase one of a publish writes to.
PENDING_TAG: Final[str] = "pending"

#: Dist-tag consumers resolve by default; moved in phase two.
LATEST_TAG: Final[str] = "latest"

#: Baseline version for names that were never published.
UNPUBLISHED_BASELINE: Final[str] = "0.0.0"

# ---------------------------------------------------------------------------
# HTTP configuration
# ---------------------------------------------------------------------------

#: Default network timeout in seconds.
DEFAULT_TIMEOUT: Final[int] = 30

#: Maximum number of retries for failed idempotent HTTP requests.
DEFAULT_MAX_RETRIES: Final[int] = 3

# ---------------------------------------------------------------------------
# Workspace layout
# ---------------------------------------------------------------------------

#: Manifest file name of every package.
MANIFEST_FILE: Final[str] = "package.json"

#: Per-package npm configuration, shipped with the package.
NPMRC_FILE: Final[str] = ".npmrc"

#: pnpm workspace definition file.
PNPM_WORKSPACE_FILE: Final[str] = "pnpm-workspace.yaml"

#: Workspace patterns used when the root declares none.
DEFAULT_WORKSPACE_PATTERNS: Final[Sequence[str]] = ("packages/*",)

#: Directory names never searched for packages.
IGNORED_DIRECTORIES: Final[Sequence[str]] = ("node_modules", ".git")

#: Manifest block holding monoship's own per-package settings.
PRIVATE_CONFIG_KEY: Final[str] = "monoship"

#: Key inside the private block that overrides the published name.
PUBLISH_NAME_KEY: Final[str] = "publishName"

#: Output subdirectory holding every folded-in internal dependency.
DEPS_DIR: Final[str] = "deps"

#: Files always shipped with a package regardless of its ``files`` list.
ALWAYS_INCLUDED_PREFIXES: Final[Sequence[str]] = ("README", "LICENSE", "LICENCE")

# ---------------------------------------------------------------------------
# Version specifiers
# ---------------------------------------------------------------------------

#: Bump keywords accepted by ``--bump``.
BUMP_KEYWORDS: Final[Sequence[str]] = ("major", "minor", "patch")

#: ``--bump`` value that publishes the version declared in each package.json.
PACKAGE_VERSION_KEYWORD: Final[str] = "package"

#: Default bump applied when none is given.
DEFAULT_BUMP: Final[str] = "minor"

#: Version policy names.
VERSION_POLICY_MAX: Final[str] = "max"
VERSION_POLICY_INDEPENDENT: Final[str] = "independent"

#: Conflict policy names.
CONFLICT_POLICY_ERROR: Final[str] = "error"
CONFLICT_POLICY_WARN: Final[str] = "warn"

# ---------------------------------------------------------------------------
# Configuration defaults
# ---------------------------------------------------------------------------

DEFAULT_VERSION_POLICY: Final[str] = VERSION_POLICY_MAX
DEFAULT_CONFLICT_POLICY: Final[str] = CONFLICT_POLICY_ERROR
DEFAULT_INCLUDE_SOURCE_MAPS: Final[bool] = True
DEFAULT_INCLUDE_DECLARATIONS: Final[bool] = True

# ---------------------------------------------------------------------------
# Security constraints
# ---------------------------------------------------------------------------

#: Maximum allowed file size (in bytes) when reading source files.
MAX_FILE_SIZE: Final[int] = 10 * 1024 * 1024  # 10 MB

# ---------------------------------------------------------------------------
# Logging configuration
# ---------------------------------------------------------------------------

#: Timestamp format for verbose logging.
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

#: Default log format (non-verbose).
LOG_DEFAULT_FORMAT: Final[str] = "%(levelname)s: %(message)s"

#: Verbose log format including timestamp and logger name.
LOG_VERBOSE_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
