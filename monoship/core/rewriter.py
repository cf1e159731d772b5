"""Module-reference rewriting for assembled units.

After a unit's files are copied, every reference to an internal package
(``import { greet } from "lib"``) is replaced by a relative path into the
unit's output tree (``"./deps/__lib/dist/index.js"``). External packages,
Node builtins and relative specifiers are left exactly as written.

Only ES modules can be rewritten safely, so every package passes the
module-system gate (:func:`check_module_system`) before anything is
written.

Typical usage::

    check_module_system(package, files)
    report = rewrite(copied_files, layout)
    print(report.rewrite_count, "specifier(s) rewritten")
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path, PurePosixPath
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple, Union

from monoship.core.layout import Layout
from monoship.models.package import InternalPackage
from monoship.utils.logger import get_logger
from monoship.utils.filesystem import safe_read_file, safe_write_file
from monoship.exceptions import ModuleSystemError, UnresolvableSpecifierError
from monoship.core.specifiers import (
    ModuleReference,
    scan_module_references,
    split_specifier,
)

logger = get_logger("rewriter")

__all__ = [
    "FileKind",
    "SpecifierRewrite",
    "RewriteReport",
    "ModuleRewriter",
    "check_module_system",
    "rewrite",
]


# ---------------------------------------------------------------------------
# File kinds
# ---------------------------------------------------------------------------


class FileKind(Enum):
    """The six file variants that can carry module references."""

    JS = ".js"
    MJS = ".mjs"
    CJS = ".cjs"
    DTS = ".d.ts"
    DMTS = ".d.mts"
    DCTS = ".d.cts"

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> Optional["FileKind"]:
        """Classify ``path`` by extension; ``None`` for other files."""
        name = os.fspath(path)
        for kind in (cls.DTS, cls.DMTS, cls.DCTS, cls.JS, cls.MJS, cls.CJS):
            if name.endswith(kind.value):
                return kind
        return None

    @property
    def is_declaration(self) -> bool:
        return self in (FileKind.DTS, FileKind.DMTS, FileKind.DCTS)

    def is_esm(self, package_is_esm: bool) -> bool:
        """Whether a file of this kind is an ES module in its package."""
        return _ESM_BY_KIND[self](package_is_esm)


_ESM_BY_KIND = {
    FileKind.JS: lambda package_is_esm: package_is_esm,
    FileKind.DTS: lambda package_is_esm: package_is_esm,
    FileKind.MJS: lambda package_is_esm: True,
    FileKind.DMTS: lambda package_is_esm: True,
    FileKind.CJS: lambda package_is_esm: False,
    FileKind.DCTS: lambda package_is_esm: False,
}

_RUNTIME_EXTENSION = {
    FileKind.DTS: ".js",
    FileKind.DMTS: ".mjs",
    FileKind.DCTS: ".cjs",
}


def check_module_system(package: InternalPackage, files: Iterable[str]) -> None:
    """Reject CommonJS files in ``package``.

    Args:
        package: Package that owns ``files``.
        files: POSIX paths relative to the package directory.

    Raises:
        ModuleSystemError: A ``.cjs``/``.d.cts`` file, or a ``.js``/``.d.ts``
            file in a package without ``"type": "module"``.
    """
    for rel_path in files:
        kind = FileKind.from_path(rel_path)
        if kind is None or kind.is_esm(package.is_esm):
            continue

        repo_path = str(PurePosixPath(package.path_in_repo) / rel_path)
        if kind in (FileKind.CJS, FileKind.DCTS):
            message = (
                f"Cannot process {kind.value} file: {repo_path}. Only ES modules "
                f'are supported; use .mjs or set "type": "module" in package.json'
            )
        else:
            message = (
                f"Cannot process {kind.value} file in CommonJS package: {repo_path}. "
                f'Package "{package.name}" does not set "type": "module" in package.json'
            )
        raise ModuleSystemError(message, file_path=repo_path, package_name=package.name)


# ---------------------------------------------------------------------------
# Rewriting
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SpecifierRewrite:
    """One replaced specifier."""

    file_path: Path
    line: int
    original: str
    replacement: str


@dataclass
class RewriteReport:
    """Outcome of rewriting a unit's files.

    Attributes:
        rewritten_files: Files whose content changed.
        unchanged_files: Files left byte-identical.
        rewrites: Every replaced specifier, in file then source order.
    """

    rewritten_files: List[Path] = field(default_factory=list)
    unchanged_files: List[Path] = field(default_factory=list)
    rewrites: List[SpecifierRewrite] = field(default_factory=list)

    @property
    def rewrite_count(self) -> int:
        return len(self.rewrites)


def _relative_specifier(from_dir: Path, target: Path) -> str:
    relative = Path(os.path.relpath(target, from_dir)).as_posix()
    if not (relative.startswith("./") or relative.startswith("../")):
        relative = "./" + relative
    return relative


class ModuleRewriter:
    """Rewrites internal module specifiers against one :class:`Layout`."""

    def __init__(self, layout: Layout) -> None:
        self.layout = layout

    def _target_for(
        self,
        reference: ModuleReference,
        kind: FileKind,
        file_path: Path,
        origin: str,
    ) -> Optional[str]:
        """Return the replacement specifier, or ``None`` to leave it alone."""
        if reference.specifier is None:
            raise UnresolvableSpecifierError(
                "Dynamic import() with a non-literal argument cannot be rewritten",
                file_path=origin,
                line=reference.line,
            )

        name, subpath = split_specifier(reference.specifier)
        location = self.layout.get(name)
        if location is None:
            if name in self.layout.workspace_names:
                raise UnresolvableSpecifierError(
                    f'Import of in-repo package "{name}" found in {origin}, '
                    f'but "{name}" is not listed in package.json dependencies',
                    specifier=reference.specifier,
                    file_path=origin,
                    line=reference.line,
                )
            return None

        target = location.resolve(subpath, declaration=kind.is_declaration)
        if target is None:
            raise UnresolvableSpecifierError(
                f'Package "{name}" does not export "./{subpath}"'
                if subpath
                else f'Package "{name}" has no resolvable entry point',
                specifier=reference.specifier,
                file_path=origin,
                line=reference.line,
            )

        if kind.is_declaration:
            for decl_kind, runtime_ext in _RUNTIME_EXTENSION.items():
                if target.endswith(decl_kind.value):
                    target = target[: -len(decl_kind.value)] + runtime_ext
                    break

        return _relative_specifier(file_path.parent, self.layout.output_dir / target)

    def rewrite_source(
        self,
        source: str,
        file_path: Path,
        *,
        origin: Optional[str] = None,
    ) -> Tuple[str, List[SpecifierRewrite]]:
        """Rewrite ``source`` as if it lived at ``file_path``.

        ``file_path`` is the absolute location of the file in the output
        tree; relative specifiers are computed from its directory. Errors
        name ``origin`` (the file as shown to the user) when given.

        Returns the new text (``source`` itself when nothing changed) and
        the list of rewrites.

        Raises:
            UnresolvableSpecifierError: A computed dynamic import, or an
                internal subpath the target package does not export, or an
                in-repo package the file's package does not depend on.
        """
        kind = FileKind.from_path(file_path)
        if kind is None:
            return source, []

        edits: List[Tuple[ModuleReference, str]] = []
        for reference in scan_module_references(source):
            replacement = self._target_for(reference, kind, file_path, origin or str(file_path))
            if replacement is not None and replacement != reference.specifier:
                edits.append((reference, replacement))

        if not edits:
            return source, []

        pieces: List[str] = []
        cursor = 0
        for reference, replacement in edits:
            pieces.append(source[cursor : reference.start])
            pieces.append(f"{reference.quote}{replacement}{reference.quote}")
            cursor = reference.end
        pieces.append(source[cursor:])

        rewrites = [
            SpecifierRewrite(
                file_path=file_path,
                line=reference.line,
                original=reference.specifier or "",
                replacement=replacement,
            )
            for reference, replacement in edits
        ]
        return "".join(pieces), rewrites

    def check_file(
        self,
        source_path: Path,
        output_path: Path,
        *,
        origin: Optional[str] = None,
    ) -> None:
        """Dry-run the rewrite of ``source_path`` placed at ``output_path``."""
        if FileKind.from_path(output_path) is None:
            return
        self.rewrite_source(
            safe_read_file(source_path), output_path, origin=origin or str(source_path)
        )

    def rewrite_file(self, path: Path) -> List[SpecifierRewrite]:
        """Rewrite ``path`` in place; untouched when nothing changes."""
        if FileKind.from_path(path) is None:
            return []

        source = safe_read_file(path)
        new_source, rewrites = self.rewrite_source(source, path)
        if rewrites:
            safe_write_file(path, new_source)
            logger.debug("Rewrote %d specifier(s) in %s", len(rewrites), path)
        return rewrites


def rewrite(files: Iterable[Path], layout: Layout) -> RewriteReport:
    """Rewrite every copied file of a unit in place.

    Args:
        files: Absolute paths of files in the unit's output tree.
        layout: Layout of the unit.

    Returns:
        A :class:`RewriteReport`.
    """
    rewriter = ModuleRewriter(layout)
    report = RewriteReport()

    for path in files:
        rewrites = rewriter.rewrite_file(path)
        if rewrites:
            report.rewritten_files.append(path)
            report.rewrites.extend(rewrites)
        else:
            report.unchanged_files.append(path)

    logger.info(
        "Rewrote %d specifier(s) across %d file(s)",
        report.rewrite_count,
        len(report.rewritten_files),
    )
    return report
