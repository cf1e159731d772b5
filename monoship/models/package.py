"""
Package data model for monoship.

This module defines the parsed form of a workspace package's
``package.json`` (:class:`Manifest`) and the immutable record of one
in-repo package (:class:`InternalPackage`).
"""

from __future__ import annotations

from pathlib import Path
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from monoship.exceptions import ManifestError
from monoship.constants import PRIVATE_CONFIG_KEY, PUBLISH_NAME_KEY


def _string_map(
    data: Mapping[str, Any],
    key: str,
    *,
    file_path: Optional[str],
    package_name: Optional[str],
) -> Dict[str, str]:
    """Return ``data[key]`` as an ordered ``str -> str`` dict (empty if absent)."""
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ManifestError(
            f'"{key}" must be an object, got {type(value).__name__}',
            file_path=file_path,
            package_name=package_name,
        )

    result: Dict[str, str] = {}
    for dep_name, dep_version in value.items():
        if not isinstance(dep_version, str):
            raise ManifestError(
                f'Version of "{dep_name}" in "{key}" must be a string',
                file_path=file_path,
                package_name=package_name,
            )
        result[dep_name] = dep_version
    return result


def _optional_str(
    data: Mapping[str, Any],
    key: str,
    *,
    file_path: Optional[str],
    package_name: Optional[str],
) -> Optional[str]:
    value = data.get(key)
    if value is None or isinstance(value, str):
        return value
    raise ManifestError(
        f'"{key}" must be a string, got {type(value).__name__}',
        file_path=file_path,
        package_name=package_name,
    )


@dataclass(frozen=True)
class Manifest:
    """
    Parsed ``package.json`` of a workspace package.

    Only the fields monoship reasons about are lifted out; ``raw`` keeps
    the complete document (in its original key order) so every other
    field can pass through to the published manifest untouched. Treat
    ``raw`` as read-only.

    Attributes:
        name: Package name.
        version: Declared version, if any (a baseline only for ``--bump package``).
        dependencies: Production dependencies, in declaration order.
        dev_dependencies: Development dependencies, in declaration order.
        module_type: Value of ``"type"`` (``"module"`` or ``"commonjs"``).
        main: Legacy entry point.
        types: Declaration entry point (``types`` or ``typings``).
        exports: Conditional-exports map, exactly as declared.
        files: ``files`` allow-list, or ``None`` when absent.
        publish_name: Override from the private ``monoship`` block.
        raw: The full parsed document.
    """

    name: str
    version: Optional[str] = None
    dependencies: Dict[str, str] = field(default_factory=dict)
    dev_dependencies: Dict[str, str] = field(default_factory=dict)
    module_type: Optional[str] = None
    main: Optional[str] = None
    types: Optional[str] = None
    exports: Any = None
    files: Optional[Tuple[str, ...]] = None
    publish_name: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_dict(
        cls,
        data: Any,
        *,
        file_path: Optional[str] = None,
    ) -> "Manifest":
        """Validate a decoded ``package.json`` document.

        Raises:
            ManifestError: The document is not an object, has no ``name``,
                or a known field has the wrong type.
        """
        if not isinstance(data, dict):
            raise ManifestError("package.json must contain a JSON object", file_path=file_path)

        name = data.get("name")
        if not isinstance(name, str) or not name:
            raise ManifestError('package.json has no "name"', file_path=file_path)

        ctx = {"file_path": file_path, "package_name": name}

        files_value = data.get("files")
        files: Optional[Tuple[str, ...]] = None
        if files_value is not None:
            if not isinstance(files_value, list) or not all(
                isinstance(entry, str) for entry in files_value
            ):
                raise ManifestError('"files" must be an array of strings', **ctx)
            files = tuple(files_value)

        module_type = _optional_str(data, "type", **ctx)
        if module_type not in (None, "module", "commonjs"):
            raise ManifestError(
                f'"type" must be "module" or "commonjs", got "{module_type}"', **ctx
            )

        private = data.get(PRIVATE_CONFIG_KEY) or {}
        if not isinstance(private, dict):
            raise ManifestError(f'"{PRIVATE_CONFIG_KEY}" must be an object', **ctx)
        publish_name = _optional_str(private, PUBLISH_NAME_KEY, **ctx)

        return cls(
            name=name,
            version=_optional_str(data, "version", **ctx),
            dependencies=_string_map(data, "dependencies", **ctx),
            dev_dependencies=_string_map(data, "devDependencies", **ctx),
            module_type=module_type,
            main=_optional_str(data, "main", **ctx),
            types=_optional_str(data, "types", **ctx) or _optional_str(data, "typings", **ctx),
            exports=data.get("exports"),
            files=files,
            publish_name=publish_name,
            raw=data,
        )

    @property
    def is_esm(self) -> bool:
        """True when the package declares ``"type": "module"``."""
        return self.module_type == "module"


@dataclass(frozen=True)
class InternalPackage:
    """
    A package that lives in the source repository.

    Attributes:
        name: Registry-unique package name.
        path: Absolute path of the package directory.
        path_in_repo: POSIX path of the directory relative to the repo root.
        manifest: Parsed ``package.json``.
    """

    name: str
    path: Path
    path_in_repo: str
    manifest: Manifest

    @property
    def publish_name(self) -> str:
        """Name the package is published under (override or original)."""
        return self.manifest.publish_name or self.name

    @property
    def is_esm(self) -> bool:
        return self.manifest.is_esm

    def __str__(self) -> str:
        return self.name
