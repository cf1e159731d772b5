"""Configuration file loader for monoship.

Handles discovery, loading, parsing, and validation of configuration files.
Supports two formats:

- ``monoship.toml`` — settings under ``[monoship]`` table
- ``pyproject.toml`` — settings under ``[tool.monoship]`` table

Discovery order:

1. Explicit path from ``--config`` or ``MONOSHIP_CONFIG``
2. ``monoship.toml`` in current directory
3. ``pyproject.toml`` with ``[tool.monoship]`` section

Configuration precedence: defaults < monorepo ``.npmrc`` < config file <
environment < CLI args. The environment contributes ``MONOSHIP_REGISTRY``
and ``MONOSHIP_REGISTRY_TOKEN``. The token is never read from the config
file; the ``.npmrc`` at the monorepo root may supply ``registry`` and the
matching ``//host/:_authToken`` (see :func:`apply_npmrc`).

Typical usage::

    config = load_config()  # Auto-discover
    config = load_config(Path("custom.toml"))  # Explicit path

Example (``monoship.toml``)::

    [monoship]
    registry = "https://npm.example.com"
    bump = "patch"
    conflict_policy = "warn"
"""

from __future__ import annotations

import os
import re
import tomli as tomllib
from pathlib import Path
from urllib.parse import urlsplit
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type

from monoship.exceptions import ConfigError
from monoship.utils.logger import get_logger
from monoship.utils.version_utils import is_semver
from monoship.constants import (
    BUMP_KEYWORDS,
    CONFLICT_POLICY_ERROR,
    CONFLICT_POLICY_WARN,
    DEFAULT_BUMP,
    DEFAULT_CONFLICT_POLICY,
    DEFAULT_INCLUDE_DECLARATIONS,
    DEFAULT_INCLUDE_SOURCE_MAPS,
    DEFAULT_REGISTRY,
    DEFAULT_TIMEOUT,
    DEFAULT_VERSION_POLICY,
    PACKAGE_VERSION_KEYWORD,
    VERSION_POLICY_INDEPENDENT,
    VERSION_POLICY_MAX,
)

logger = get_logger("config")

#: Environment variable overriding the registry URL.
REGISTRY_ENV_VAR = "MONOSHIP_REGISTRY"

#: Environment variable holding the registry bearer token.
TOKEN_ENV_VAR = "MONOSHIP_REGISTRY_TOKEN"


@dataclass
class MonoshipConfig:
    """Parsed and validated monoship configuration.

    All fields have defaults, so empty config files are valid.

    Attributes:
        registry: Base URL of the npm-compatible registry.
        bump: Default version specifier for ``--bump``.
        version_policy: ``max`` or ``independent``.
        conflict_policy: ``error`` or ``warn``.
        output_root: Directory for assembled units; a temporary
            directory when ``None``.
        include_source_maps: Ship ``*.map`` files.
        include_declarations: Ship declaration files.
        timeout: HTTP timeout in seconds.
        token: Registry bearer token (environment or monorepo ``.npmrc``).
        source_path: Path to loaded config file, or ``None`` if using defaults.
    """

    registry: str = DEFAULT_REGISTRY
    bump: str = DEFAULT_BUMP
    version_policy: str = DEFAULT_VERSION_POLICY
    conflict_policy: str = DEFAULT_CONFLICT_POLICY
    output_root: Optional[Path] = None
    include_source_maps: bool = DEFAULT_INCLUDE_SOURCE_MAPS
    include_declarations: bool = DEFAULT_INCLUDE_DECLARATIONS
    timeout: int = DEFAULT_TIMEOUT

    # Not user-facing options
    token: Optional[str] = field(default=None, repr=False)
    source_path: Optional[Path] = field(default=None, repr=False)

    def to_log_dict(self) -> Dict[str, Any]:
        """Return configuration as dictionary for debug logging.

        The token is reported only as present or absent.
        """
        return {
            "registry": self.registry,
            "bump": self.bump,
            "version_policy": self.version_policy,
            "conflict_policy": self.conflict_policy,
            "output_root": str(self.output_root) if self.output_root else None,
            "include_source_maps": self.include_source_maps,
            "include_declarations": self.include_declarations,
            "timeout": self.timeout,
            "token": "<set>" if self.token else None,
        }


# Option name -> (expected type, allowed values or None)
_OPTIONS: Dict[str, Tuple[Type[Any], Optional[Tuple[str, ...]]]] = {
    "registry": (str, None),
    "bump": (str, None),
    "version_policy": (str, (VERSION_POLICY_MAX, VERSION_POLICY_INDEPENDENT)),
    "conflict_policy": (str, (CONFLICT_POLICY_ERROR, CONFLICT_POLICY_WARN)),
    "output_root": (str, None),
    "include_source_maps": (bool, None),
    "include_declarations": (bool, None),
    "timeout": (int, None),
}

_TYPE_NAMES = {str: "a string", bool: "a boolean", int: "an integer"}

_BUMP_VALUES = (*BUMP_KEYWORDS, PACKAGE_VERSION_KEYWORD)


def discover_config_file(explicit_path: Optional[Path] = None) -> Optional[Path]:
    """Find the configuration file to load.

    Args:
        explicit_path: Explicit config path. If provided, must exist.

    Returns:
        Resolved path to config file, or ``None`` if not found.

    Raises:
        ConfigError: Explicit path provided but does not exist.
    """
    if explicit_path is not None:
        resolved = explicit_path.resolve()
        if not resolved.is_file():
            raise ConfigError(
                f"Configuration file not found: {explicit_path}",
                config_path=str(explicit_path),
            )
        logger.debug("Using explicit config: %s", resolved)
        return resolved

    cwd = Path.cwd()

    monoship_toml = cwd / "monoship.toml"
    if monoship_toml.is_file():
        logger.debug("Found monoship.toml: %s", monoship_toml)
        return monoship_toml

    pyproject_toml = cwd / "pyproject.toml"
    if pyproject_toml.is_file() and _pyproject_has_monoship_section(pyproject_toml):
        logger.debug("Found [tool.monoship] in pyproject.toml: %s", pyproject_toml)
        return pyproject_toml

    logger.debug("No configuration file found")
    return None


def _pyproject_has_monoship_section(path: Path) -> bool:
    """Check if pyproject.toml contains a [tool.monoship] section.

    Parse errors count as "no section" so that an unrelated broken
    pyproject.toml does not stop the CLI.
    """
    try:
        raw = _read_toml(path)
    except ConfigError:
        return False
    return "monoship" in raw.get("tool", {})


def load_config(
    config_path: Optional[Path] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> MonoshipConfig:
    """Load and validate monoship configuration.

    Args:
        config_path: Explicit path to config file. If ``None``, uses
            auto-discovery (see :func:`discover_config_file`).
        environ: Environment to read overrides from; ``os.environ`` by
            default.

    Returns:
        Validated :class:`MonoshipConfig`.

    Raises:
        ConfigError: File cannot be parsed, has unknown keys, or invalid values.
    """
    resolved = discover_config_file(config_path)

    if resolved is None:
        logger.debug("No config file found, using defaults")
        config = MonoshipConfig()
    else:
        logger.info("Loading configuration from %s", resolved)
        raw = _read_toml(resolved)

        if resolved.name == "pyproject.toml":
            section = raw.get("tool", {}).get("monoship", {})
        else:
            section = raw.get("monoship", {})

        if not isinstance(section, dict):
            raise ConfigError("monoship section must be a table", config_path=str(resolved))

        config = _parse_section(section, config_path=str(resolved))
        config.source_path = resolved

    _apply_environment(config, os.environ if environ is None else environ)
    logger.debug("Loaded configuration: %s", config.to_log_dict())
    return config


def _apply_environment(config: MonoshipConfig, environ: Mapping[str, str]) -> None:
    registry = environ.get(REGISTRY_ENV_VAR)
    if registry:
        config.registry = registry
    token = environ.get(TOKEN_ENV_VAR)
    if token:
        config.token = token


def _read_toml(path: Path) -> Dict[str, Any]:
    """Read and parse a TOML file.

    Raises:
        ConfigError: File cannot be read or is invalid TOML.
    """
    try:
        with open(path, "rb") as fh:
            return tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(
            f"Invalid TOML in {path.name}: {exc}",
            config_path=str(path),
        ) from exc
    except OSError as exc:
        raise ConfigError(
            f"Cannot read configuration file {path}: {exc}",
            config_path=str(path),
        ) from exc


def _parse_section(
    section: Dict[str, Any],
    *,
    config_path: str,
) -> MonoshipConfig:
    """Parse and validate a ``[monoship]`` or ``[tool.monoship]`` table.

    Raises:
        ConfigError: Unknown keys, incorrect types or disallowed values.
    """
    unknown = set(section) - set(_OPTIONS)
    if unknown:
        raise ConfigError(
            f"Unknown configuration keys: {', '.join(sorted(unknown))}",
            config_path=config_path,
        )

    config = MonoshipConfig()
    for option, value in section.items():
        expected, allowed = _OPTIONS[option]
        # bool is a subclass of int; reject it for integer options
        if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
            raise ConfigError(
                f"{option} must be {_TYPE_NAMES[expected]}, got {type(value).__name__}",
                config_path=config_path,
                option=option,
            )
        if allowed is not None and value not in allowed:
            raise ConfigError(
                f"{option} must be one of {', '.join(allowed)}, got {value!r}",
                config_path=config_path,
                option=option,
            )
        if option == "bump" and value not in _BUMP_VALUES and not is_semver(value):
            raise ConfigError(
                f"bump must be one of {', '.join(_BUMP_VALUES)} or a version, got {value!r}",
                config_path=config_path,
                option=option,
            )
        if option == "timeout" and value <= 0:
            raise ConfigError(
                f"timeout must be positive, got {value}",
                config_path=config_path,
                option=option,
            )

        if option == "output_root":
            config.output_root = Path(value)
        else:
            setattr(config, option, value)

    return config


# ---------------------------------------------------------------------------
# Monorepo .npmrc
# ---------------------------------------------------------------------------

_NPMRC_ENV_REF = re.compile(r"\$\{([^}]+)\}")


def _expand_npmrc_env(value: str, environ: Mapping[str, str], path: Path) -> str:
    def replace(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name not in environ:
            raise ConfigError(
                f"Failed to replace env in config: ${{{name}}}",
                config_path=str(path),
            )
        return environ[name]

    return _NPMRC_ENV_REF.sub(replace, value)


def read_npmrc(
    path: Path,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """Parse an ``.npmrc`` file into ``key -> value``.

    Blank lines and ``#`` / ``;`` comments are skipped, surrounding quotes
    are removed and ``${VAR}`` references are expanded from ``environ``.

    Raises:
        ConfigError: The file cannot be read or references an unset
            environment variable.
    """
    environ = os.environ if environ is None else environ
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read {path}: {exc}", config_path=str(path)) from exc

    values: Dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith(("#", ";")):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        values[key.strip()] = _expand_npmrc_env(value, environ, path)
    return values


def _auth_token_keys(registry: str) -> List[str]:
    """Return the ``//host/path/:_authToken`` keys for ``registry``, most specific first."""
    parts = urlsplit(registry)
    segments = [segment for segment in parts.path.split("/") if segment]
    keys: List[str] = []
    for size in range(len(segments), -1, -1):
        path = "/".join(segments[:size])
        prefix = f"//{parts.netloc}/{path}/" if path else f"//{parts.netloc}/"
        keys.append(f"{prefix}:_authToken")
    return keys


def apply_npmrc(
    config: MonoshipConfig,
    path: Path,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> bool:
    """Fill in registry settings from the monorepo's ``.npmrc``.

    ``registry`` is taken only while ``config`` still has the default
    registry, and the ``_authToken`` matching the final registry only
    while no token is set, so the config file, the environment and the
    command line all win over the ``.npmrc``.

    Returns:
        True if ``path`` exists and was read.

    Raises:
        ConfigError: See :func:`read_npmrc`.
    """
    if not path.is_file():
        return False

    values = read_npmrc(path, environ=environ)
    registry = values.get("registry")
    if registry and config.registry == DEFAULT_REGISTRY:
        config.registry = registry
        logger.debug("Registry from %s: %s", path, registry)

    if config.token is None:
        for key in _auth_token_keys(config.registry):
            token = values.get(key)
            if token:
                config.token = token
                logger.debug("Registry token from %s (%s)", path, key)
                break

    return True
