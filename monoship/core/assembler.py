"""Package assembly for monoship.

Assembly turns a resolved closure into a self-contained directory:

1. **plan**: place every member (:func:`plan_layout`), select each
   member's publishable files, run the module-system gate and dry-run the
   specifier rewrite. Nothing is written, so every resolution error
   surfaces before the first byte lands on disk.
2. **assemble**: copy the files, rewrite internal specifiers in place,
   then write the output ``package.json``.

Typical usage::

    assembler = PackageAssembler()
    plan = assembler.plan(closure, output_root / mangle_package_name("app"))
    result = assembler.assemble(plan, version="1.3.0")
"""

from __future__ import annotations

import posixpath
from pathlib import Path, PurePosixPath
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set

from monoship.core.exports import ExportsTable
from monoship.core.layout import Layout, plan_layout
from monoship.models.package import InternalPackage
from monoship.models.closure import DependencyClosure
from monoship.utils.logger import get_logger
from monoship.utils.filesystem import copy_file, validate_path
from monoship.exceptions import FileOperationError, ManifestError
from monoship.core.manifest import build_output_manifest, write_output_manifest
from monoship.core.rewriter import (
    FileKind,
    ModuleRewriter,
    RewriteReport,
    check_module_system,
    rewrite,
)
from monoship.constants import (
    ALWAYS_INCLUDED_PREFIXES,
    DEFAULT_INCLUDE_DECLARATIONS,
    DEFAULT_INCLUDE_SOURCE_MAPS,
    IGNORED_DIRECTORIES,
    MANIFEST_FILE,
    NPMRC_FILE,
)

logger = get_logger("assembler")

__all__ = [
    "FileCopy",
    "AssemblyPlan",
    "AssemblyResult",
    "PackageAssembler",
    "collect_package_files",
]


# ---------------------------------------------------------------------------
# File selection
# ---------------------------------------------------------------------------


def _is_ignored(relative: PurePosixPath) -> bool:
    return any(part in IGNORED_DIRECTORIES for part in relative.parts)


def _walk_files(root: Path, directory: Path) -> Iterator[Path]:
    for path in sorted(directory.rglob("*")):
        if path.is_file() and not _is_ignored(PurePosixPath(path.relative_to(root).as_posix())):
            yield path


def _normalize_entry(entry: str) -> str:
    if entry.startswith("./"):
        entry = entry[2:]
    return entry.rstrip("/")


def _expand_entry(package: InternalPackage, entry: str) -> Iterator[Path]:
    """Yield the files one ``files`` entry selects."""
    root = package.path
    entry = _normalize_entry(entry)

    if entry in ("", "."):
        yield from _walk_files(root, root)
        return

    target = root / entry
    try:
        validate_path(target, base_dir=root)
    except FileOperationError as exc:
        raise ManifestError(
            f'"files" entry escapes the package directory: {entry}',
            package_name=package.name,
        ) from exc

    if target.is_dir():
        yield from _walk_files(root, target)
    elif target.is_file():
        yield target
    else:
        for match in sorted(root.glob(entry)):
            if match.is_dir():
                yield from _walk_files(root, match)
            elif match.is_file():
                yield match


def _is_source_map(rel_path: str) -> bool:
    return rel_path.endswith(".map")


def _is_declaration(rel_path: str) -> bool:
    kind = FileKind.from_path(rel_path[: -len(".map")] if _is_source_map(rel_path) else rel_path)
    return kind is not None and kind.is_declaration


def collect_package_files(
    package: InternalPackage,
    *,
    include_source_maps: bool = DEFAULT_INCLUDE_SOURCE_MAPS,
    include_declarations: bool = DEFAULT_INCLUDE_DECLARATIONS,
) -> List[str]:
    """Return the files of ``package`` that get published.

    The selection follows the manifest's ``files`` list; without one, the
    directory holding the entry point is used. ``package.json``,
    ``.npmrc`` and top-level ``README*`` / ``LICENSE*`` files are always
    included.

    Returns:
        Sorted POSIX paths relative to the package directory.
    """
    root = package.path
    entries = package.manifest.files
    if entries is None:
        entry_point = ExportsTable.from_manifest(package.manifest).entry_point
        entries = (posixpath.dirname(entry_point) or ".",)

    selected: Set[str] = set()
    excluded: List[str] = []
    for entry in entries:
        if entry.startswith("!"):
            excluded.append(_normalize_entry(entry[1:]))
            continue
        for path in _expand_entry(package, entry):
            selected.add(path.relative_to(root).as_posix())

    for child in root.iterdir():
        upper = child.name.upper()
        if child.is_file() and (
            child.name in (MANIFEST_FILE, NPMRC_FILE)
            or upper.startswith(tuple(ALWAYS_INCLUDED_PREFIXES))
        ):
            selected.add(child.name)

    result: List[str] = []
    for rel_path in sorted(selected):
        if any(
            PurePosixPath(rel_path).match(pattern) or rel_path.startswith(pattern + "/")
            for pattern in excluded
        ):
            continue
        if not include_source_maps and _is_source_map(rel_path):
            continue
        if not include_declarations and _is_declaration(rel_path):
            continue
        result.append(rel_path)
    return result


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------

def _check_output_dir(output_dir: Path) -> None:
    if output_dir.exists() and any(output_dir.iterdir()):
        raise FileOperationError(
            f"Output directory is not empty: {output_dir}",
            file_path=str(output_dir),
            operation="assemble",
        )



@dataclass(frozen=True)
class FileCopy:
    """One file to copy into the output tree."""

    package_name: str
    relative_path: str
    source: Path
    destination: Path
    repo_path: str = ""


@dataclass
class AssemblyPlan:
    """Everything needed to write one unit, validated but not yet written."""

    closure: DependencyClosure
    layout: Layout
    copies: List[FileCopy] = field(default_factory=list)

    @property
    def output_dir(self) -> Path:
        return self.layout.output_dir


@dataclass
class AssemblyResult:
    """Outcome of writing one unit."""

    plan: AssemblyPlan
    files: List[Path]
    report: RewriteReport
    manifest: Dict[str, Any]

    @property
    def output_dir(self) -> Path:
        return self.plan.output_dir


class PackageAssembler:
    """Plans and writes assembled units.

    Args:
        include_source_maps: Ship ``*.map`` files.
        include_declarations: Ship ``.d.ts``/``.d.mts``/``.d.cts`` files.
    """

    def __init__(
        self,
        *,
        include_source_maps: bool = DEFAULT_INCLUDE_SOURCE_MAPS,
        include_declarations: bool = DEFAULT_INCLUDE_DECLARATIONS,
    ) -> None:
        self.include_source_maps = include_source_maps
        self.include_declarations = include_declarations

    def plan(
        self,
        closure: DependencyClosure,
        output_dir: Path,
        *,
        workspace_names: Iterable[str] = (),
    ) -> AssemblyPlan:
        """Lay out ``closure`` under ``output_dir`` and validate every file.

        Args:
            closure: Resolved closure of the subject.
            output_dir: Directory the unit will be written to.
            workspace_names: Every package of the workspace; imports of one
                that is not in the closure are rejected.

        Raises:
            FileOperationError: ``output_dir`` exists and is not empty.
            ModuleSystemError: A member ships CommonJS files.
            UnresolvableSpecifierError: A reference cannot be rewritten.
            ManifestError: A member's manifest is malformed.
        """
        _check_output_dir(output_dir)
        layout = plan_layout(closure, output_dir, workspace_names=workspace_names)
        copies: List[FileCopy] = []

        for location in layout:
            package = location.package
            files = collect_package_files(
                package,
                include_source_maps=self.include_source_maps,
                include_declarations=self.include_declarations,
            )
            check_module_system(package, files)
            copies.extend(
                FileCopy(
                    package_name=package.name,
                    relative_path=rel_path,
                    source=package.path / rel_path,
                    destination=location.output_dir / rel_path,
                    repo_path=str(PurePosixPath(package.path_in_repo) / rel_path),
                )
                for rel_path in files
            )

        rewriter = ModuleRewriter(layout)
        for file_copy in copies:
            rewriter.check_file(
                file_copy.source, file_copy.destination, origin=file_copy.repo_path or None
            )

        logger.debug(
            "Planned %d file(s) for %s in %s", len(copies), closure.subject_name, layout.output_dir
        )
        return AssemblyPlan(closure=closure, layout=layout, copies=copies)

    def assemble(self, plan: AssemblyPlan, *, version: Optional[str] = None) -> AssemblyResult:
        """Copy, rewrite and write the manifest for ``plan``.

        Raises:
            FileOperationError: The output directory is not empty, or a
                file cannot be copied or written.
        """
        output_dir = plan.output_dir
        _check_output_dir(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        files = [copy_file(item.source, item.destination) for item in plan.copies]
        report = rewrite(files, plan.layout)

        manifest = build_output_manifest(plan.closure, version=version)
        write_output_manifest(output_dir, manifest)

        logger.info(
            "Assembled %s (%d file(s), %d rewrite(s)) in %s",
            plan.closure.subject_name,
            len(files),
            report.rewrite_count,
            output_dir,
        )
        return AssemblyResult(plan=plan, files=files, report=report, manifest=manifest)
