"""
Custom exception hierarchy for monoship.

This module defines structured exception types used across monoship.
All exceptions inherit from :class:`MonoshipError` and support optional
structured metadata via the ``details`` attribute to improve diagnostics
and logging.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping, MutableMapping, Optional, Sequence, Tuple

if TYPE_CHECKING:
    from monoship.models.conflict import VersionConflict


class MonoshipError(Exception):
    """Base exception for all monoship errors.

    All monoship-specific exceptions should inherit from this class.
    It supports structured metadata via ``details`` for richer error
    reporting and debugging.

    Args:
        message: Human-readable error message.
        details: Optional structured metadata describing the error.
    """

    __slots__ = ("message", "details")

    def __init__(
        self,
        message: str,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.message: str = message
        # Internally normalize to a mutable dict
        self.details: MutableMapping[str, Any] = dict(details) if details else {}
        super().__init__(message)

    def __str__(self) -> str:
        if not self.details:
            return self.message
        formatted = ", ".join(f"{k}={v}" for k, v in self.details.items())
        return f"{self.message} ({formatted})"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, details={dict(self.details)!r})"
        )


def _add_if(details: MutableMapping[str, Any], key: str, value: Any) -> None:
    """Add a key to ``details`` only if ``value`` is not ``None``."""
    if value is not None:
        details[key] = value


def _truncate(text: str, max_length: int = 200) -> str:
    """Truncate long text for safe logging or error reporting."""
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


# ---------------------------------------------------------------------------
# Workspace and closure errors
# ---------------------------------------------------------------------------


class ManifestError(MonoshipError):
    """Raised when a ``package.json`` or workspace definition is malformed.

    Args:
        message: Error description.
        file_path: Path to the offending file.
        package_name: Package the manifest belongs to, if known.
    """

    __slots__ = ("file_path", "package_name")

    def __init__(
        self,
        message: str,
        *,
        file_path: Optional[str] = None,
        package_name: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "file", file_path)
        _add_if(details, "package", package_name)

        super().__init__(message, details)

        self.file_path = file_path
        self.package_name = package_name


class UnknownPackageError(MonoshipError):
    """Raised when a package name or directory is not part of the workspace."""

    __slots__ = ("package_name",)

    def __init__(self, package_name: str, *, message: Optional[str] = None) -> None:
        super().__init__(message or f'Unrecognized package: "{package_name}"')
        self.package_name = package_name


class CircularDependencyError(MonoshipError):
    """Raised when internal packages depend on each other in a cycle.

    Args:
        cycle: Package names along the cycle; the first name is repeated
            at the end (``("a", "b", "a")``).
    """

    __slots__ = ("cycle",)

    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle: Tuple[str, ...] = tuple(cycle)
        super().__init__(
            "Circular dependency between internal packages: "
            + " -> ".join(self.cycle)
        )


class VersionConflictError(MonoshipError):
    """Raised when members of a closure require different versions of one
    third-party package.

    Args:
        conflicts: Every offending external name with its full, ordered
            list of (version, requirer) pairs.
    """

    __slots__ = ("conflicts",)

    def __init__(self, conflicts: Sequence["VersionConflict"]) -> None:
        self.conflicts: Tuple["VersionConflict", ...] = tuple(conflicts)
        lines = ["Third-party dependency version conflicts detected:"]
        lines.extend(f"  {conflict}" for conflict in self.conflicts)
        super().__init__("\n".join(lines))


# ---------------------------------------------------------------------------
# Assembly errors
# ---------------------------------------------------------------------------


class ModuleSystemError(MonoshipError):
    """Raised when a CommonJS file is found in a package being assembled.

    Args:
        message: Error description.
        file_path: Offending file, relative to the repository root.
        package_name: Package that owns the file.
    """

    __slots__ = ("file_path", "package_name")

    def __init__(
        self,
        message: str,
        *,
        file_path: Optional[str] = None,
        package_name: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "file", file_path)
        _add_if(details, "package", package_name)

        super().__init__(message, details)

        self.file_path = file_path
        self.package_name = package_name


class UnresolvableSpecifierError(MonoshipError):
    """Raised when a module reference cannot be rewritten safely.

    Covers computed dynamic ``import()`` arguments and subpaths that the
    target package does not export.

    Args:
        message: Error description.
        specifier: The module specifier (or source text) involved.
        file_path: File containing the reference.
        line: 1-based line of the reference.
    """

    __slots__ = ("specifier", "file_path", "line")

    def __init__(
        self,
        message: str,
        *,
        specifier: Optional[str] = None,
        file_path: Optional[str] = None,
        line: Optional[int] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "specifier", specifier)
        _add_if(details, "file", file_path)
        _add_if(details, "line", line)

        super().__init__(message, details)

        self.specifier = specifier
        self.file_path = file_path
        self.line = line


class IdentityConflictError(MonoshipError):
    """Raised when two packages would be published under the same name.

    Args:
        publish_name: The contested registry name.
        package_names: Workspace packages competing for it, sorted.
    """

    __slots__ = ("publish_name", "package_names")

    def __init__(self, publish_name: str, package_names: Sequence[str]) -> None:
        self.publish_name = publish_name
        self.package_names: Tuple[str, ...] = tuple(sorted(package_names))
        quoted = " and ".join(f'"{name}"' for name in self.package_names)
        super().__init__(
            f'Publish name collision: {quoted} would both be published as "{publish_name}"'
        )


class VersionSpecifierError(MonoshipError):
    """Raised for an invalid ``--bump`` value."""

    __slots__ = ("value",)

    def __init__(self, value: str) -> None:
        super().__init__(
            f'Invalid version specifier: "{value}". Expected "patch", "minor", '
            f'"major", "package" or an explicit version such as "1.2.3"'
        )
        self.value = value


# ---------------------------------------------------------------------------
# Network and registry errors
# ---------------------------------------------------------------------------


class NetworkError(MonoshipError):
    """Raised when HTTP or network operations fail.

    Args:
        message: Error description.
        url: URL being accessed.
        status_code: HTTP status code, if available.
        response_body: Raw response body, truncated for safety.
    """

    __slots__ = ("url", "status_code", "response_body")

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "url", url)
        _add_if(details, "status_code", status_code)

        if response_body is not None:
            details["response"] = _truncate(response_body)

        super().__init__(message, details)

        self.url = url
        self.status_code = status_code
        self.response_body = response_body


class RegistryError(NetworkError):
    """Raised for failed registry reads, publishes or dist-tag moves.

    Args:
        message: Error description.
        package_name: Name of the package involved.
        operation: ``view``, ``publish`` or ``dist-tag``.
        **kwargs: Additional arguments forwarded to ``NetworkError``.
    """

    __slots__ = ("package_name", "operation")

    def __init__(
        self,
        message: str,
        *,
        package_name: Optional[str] = None,
        operation: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)

        self.package_name = package_name
        self.operation = operation
        if package_name is not None:
            self.details["package"] = package_name
        if operation is not None:
            self.details["operation"] = operation


# ---------------------------------------------------------------------------
# Configuration and filesystem errors
# ---------------------------------------------------------------------------


class ConfigError(MonoshipError):
    """Raised when a configuration file is missing, unreadable or invalid.

    Args:
        message: Error description.
        config_path: Path of the configuration file.
        option: Offending option, if any.
    """

    __slots__ = ("config_path", "option")

    def __init__(
        self,
        message: str,
        *,
        config_path: Optional[str] = None,
        option: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "path", config_path)
        _add_if(details, "option", option)

        super().__init__(message, details)

        self.config_path = config_path
        self.option = option


class FileOperationError(MonoshipError):
    """Raised when file system operations fail.

    Args:
        message: Error description.
        file_path: Path to the file involved.
        operation: Operation being performed (read/write/copy).
        original_error: Original exception that triggered this error.
    """

    __slots__ = ("file_path", "operation", "original_error")

    def __init__(
        self,
        message: str,
        *,
        file_path: Optional[str] = None,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "path", file_path)
        _add_if(details, "operation", operation)
        _add_if(
            details,
            "original_error",
            str(original_error) if original_error else None,
        )

        super().__init__(message, details)

        self.file_path = file_path
        self.operation = operation
        self.original_error = original_error
