"""Workspace discovery for monoship.

Finds every package of a JavaScript monorepo and returns them as an
immutable :class:`~monoship.models.workspace.Workspace`.

Workspace patterns come from, in order of preference:

1. the root ``package.json`` ``workspaces`` field (an array, or an object
   with a ``packages`` array),
2. ``pnpm-workspace.yaml`` ``packages``,
3. the default ``packages/*``.

Patterns starting with ``!`` exclude matching package directories.
``node_modules`` is never searched.
"""

from __future__ import annotations

import yaml
import fnmatch
from pathlib import Path, PurePosixPath
from typing import Any, Dict, List, Optional, Tuple

from monoship.models.package import InternalPackage, Manifest
from monoship.models.workspace import Workspace
from monoship.utils.logger import get_logger
from monoship.exceptions import FileOperationError, ManifestError
from monoship.utils.filesystem import read_json_file, safe_read_file, validate_path
from monoship.constants import (
    DEFAULT_WORKSPACE_PATTERNS,
    IGNORED_DIRECTORIES,
    MANIFEST_FILE,
    PNPM_WORKSPACE_FILE,
)

logger = get_logger("workspace")

__all__ = [
    "find_monorepo_root",
    "load_manifest",
    "workspace_patterns",
    "discover_workspace",
]


def _read_root_manifest(root: Path) -> Optional[Any]:
    path = root / MANIFEST_FILE
    if not path.is_file():
        return None
    return read_json_file(path)


def find_monorepo_root(start: Path) -> Path:
    """Walk up from ``start`` to the directory that defines the workspace.

    A directory qualifies when its ``package.json`` has a ``workspaces``
    field or it contains ``pnpm-workspace.yaml``.

    Raises:
        ManifestError: No such directory above ``start``.
    """
    current = start.resolve()

    while True:
        data = _read_root_manifest(current)
        if isinstance(data, dict) and "workspaces" in data:
            return current
        if (current / PNPM_WORKSPACE_FILE).is_file():
            return current

        if current.parent == current:
            raise ManifestError(f"Could not find monorepo root from {start}")
        current = current.parent


def load_manifest(package_dir: Path) -> Manifest:
    """Read and validate ``package_dir/package.json``.

    Raises:
        ManifestError: The file is missing, not JSON, or malformed.
    """
    path = package_dir / MANIFEST_FILE
    if not path.is_file():
        raise ManifestError(f"No {MANIFEST_FILE} found in {package_dir}", file_path=str(path))

    try:
        data = read_json_file(path)
    except FileOperationError as exc:
        raise ManifestError(str(exc.message), file_path=str(path)) from exc

    return Manifest.from_dict(data, file_path=str(path))


def _string_list(value: Any, source: str) -> List[str]:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ManifestError(f"Workspace patterns in {source} must be a list of strings")
    return list(value)


def workspace_patterns(root: Path) -> List[str]:
    """Return the workspace glob patterns declared at ``root``.

    Raises:
        ManifestError: The declaration exists but is malformed.
    """
    data = _read_root_manifest(root)
    if isinstance(data, dict) and "workspaces" in data:
        workspaces = data["workspaces"]
        if isinstance(workspaces, dict):
            workspaces = workspaces.get("packages", [])
        return _string_list(workspaces, MANIFEST_FILE)

    pnpm_file = root / PNPM_WORKSPACE_FILE
    if pnpm_file.is_file():
        try:
            config = yaml.safe_load(safe_read_file(pnpm_file)) or {}
        except yaml.YAMLError as exc:
            raise ManifestError(
                f"Invalid YAML: {exc}", file_path=str(pnpm_file)
            ) from exc
        if not isinstance(config, dict):
            raise ManifestError("Expected a mapping", file_path=str(pnpm_file))
        return _string_list(config.get("packages", []), PNPM_WORKSPACE_FILE)

    return list(DEFAULT_WORKSPACE_PATTERNS)


def _split_patterns(patterns: List[str]) -> Tuple[List[str], List[str]]:
    includes: List[str] = []
    excludes: List[str] = []
    for pattern in patterns:
        target = excludes if pattern.startswith("!") else includes
        cleaned = pattern.lstrip("!")
        if cleaned.startswith("./"):
            cleaned = cleaned[2:]
        target.append(cleaned.rstrip("/"))
    return includes, excludes


def _is_ignored(relative: PurePosixPath) -> bool:
    return any(part in IGNORED_DIRECTORIES for part in relative.parts)


def discover_workspace(root: Path) -> Workspace:
    """Discover every package under ``root``.

    Raises:
        ManifestError: A package manifest is malformed, a package directory
            resolves outside ``root``, or two packages share a name.
    """
    root = root.resolve()
    includes, excludes = _split_patterns(workspace_patterns(root))
    logger.debug("Workspace patterns: include=%s exclude=%s", includes, excludes)

    packages: List[InternalPackage] = []
    seen: Dict[Path, str] = {}

    for pattern in includes:
        for manifest_path in sorted(root.glob(f"{pattern}/{MANIFEST_FILE}")):
            package_dir = manifest_path.parent
            relative = PurePosixPath(package_dir.relative_to(root).as_posix())

            if _is_ignored(relative):
                continue
            if any(fnmatch.fnmatchcase(str(relative), exclude) for exclude in excludes):
                logger.debug("Excluded %s", relative)
                continue

            try:
                resolved_dir = validate_path(package_dir, base_dir=root)
            except FileOperationError as exc:
                raise ManifestError(
                    f"Package directory resolves outside the repository: {package_dir}",
                    file_path=str(manifest_path),
                ) from exc

            if resolved_dir in seen:
                continue

            data = read_json_file(manifest_path)
            if isinstance(data, dict) and not data.get("name"):
                logger.debug("Skipping unnamed package at %s", relative)
                continue

            manifest = Manifest.from_dict(data, file_path=str(manifest_path))
            if manifest.name in seen.values():
                raise ManifestError(
                    f'Duplicate package name "{manifest.name}"',
                    file_path=str(manifest_path),
                    package_name=manifest.name,
                )
            seen[resolved_dir] = manifest.name

            packages.append(
                InternalPackage(
                    name=manifest.name,
                    path=resolved_dir,
                    path_in_repo=resolved_dir.relative_to(root).as_posix(),
                    manifest=manifest,
                )
            )

    logger.info("Discovered %d workspace package(s) under %s", len(packages), root)
    return Workspace(root, packages)
