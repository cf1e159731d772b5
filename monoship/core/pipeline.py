"""End-to-end orchestration of a monoship batch.

A batch runs in two stages so that every validation happens before the
first write:

1. :func:`prepare_batch` discovers the workspace, validates publish
   names, resolves each subject's closure and plans its assembly. Nothing
   touches the output root or the registry.
2. :func:`write_batch` copies, rewrites and writes the manifest of every
   planned unit using the versions resolved in between.

Typical usage::

    prepared = prepare_batch([Path("packages/app")], output_root=out)
    await resolve_versions(prepared.units, parse_version_specifier("minor"), registry)
    write_batch(prepared)
    batch = await publish_batch(prepared.units, registry)
"""

from __future__ import annotations

import tempfile
from pathlib import Path
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from monoship.models.workspace import Workspace
from monoship.models.package import InternalPackage
from monoship.models.publish import PublishUnit
from monoship.models.closure import DependencyClosure
from monoship.models.location import mangle_package_name
from monoship.models.conflict import VersionConflict
from monoship.utils.logger import get_logger
from monoship.core.identity import validate_publish_names
from monoship.core.closure import build_order, resolve_closures
from monoship.core.workspace import discover_workspace, find_monorepo_root
from monoship.core.assembler import AssemblyPlan, AssemblyResult, PackageAssembler
from monoship.constants import DEFAULT_CONFLICT_POLICY

logger = get_logger("pipeline")

__all__ = ["PreparedBatch", "prepare_batch", "write_batch", "default_output_root"]


def default_output_root() -> Path:
    """Return a fresh temporary directory for assembled units."""
    return Path(tempfile.mkdtemp(prefix="monoship-"))


@dataclass
class PreparedBatch:
    """A validated batch whose units are planned but not yet written.

    Attributes:
        workspace: Workspace snapshot the batch was resolved against.
        closures: One closure per subject, in request order.
        plans: One assembly plan per subject, parallel to ``closures``.
        units: One publish unit per subject, parallel to ``closures``.
        results: Filled in by :func:`write_batch`.
    """

    workspace: Workspace
    closures: List[DependencyClosure]
    plans: List[AssemblyPlan]
    units: List[PublishUnit]
    assembler: PackageAssembler
    results: List[AssemblyResult] = field(default_factory=list)

    @property
    def build_order(self) -> List[InternalPackage]:
        """Every internal package the batch needs, dependencies first."""
        return build_order(self.closures)

    @property
    def diagnostics(self) -> List[VersionConflict]:
        """Conflicts tolerated under the ``warn`` policy."""
        return [conflict for closure in self.closures for conflict in closure.diagnostics]


def _subject_names(workspace: Workspace, package_dirs: Sequence[Path]) -> List[str]:
    names: List[str] = []
    for package_dir in package_dirs:
        name = workspace.find_by_path(package_dir).name
        if name not in names:
            names.append(name)
    return names


def prepare_batch(
    package_dirs: Sequence[Path],
    *,
    output_root: Path,
    monorepo_root: Optional[Path] = None,
    conflict_policy: str = DEFAULT_CONFLICT_POLICY,
    assembler: Optional[PackageAssembler] = None,
) -> PreparedBatch:
    """Resolve and plan every subject in ``package_dirs``.

    Args:
        package_dirs: Directories of the packages to publish.
        output_root: Directory receiving one subdirectory per unit.
        monorepo_root: Workspace root; discovered upwards from the first
            package directory when omitted.
        conflict_policy: ``"error"`` or ``"warn"``.
        assembler: Assembler carrying the file-selection flags.

    Raises:
        MonoshipError: Any discovery, identity, closure, gate or rewrite
            failure. No file has been written when this is raised.
    """
    if not package_dirs:
        raise ValueError("At least one package directory is required")

    assembler = assembler or PackageAssembler()
    root = monorepo_root.resolve() if monorepo_root else find_monorepo_root(package_dirs[0])
    logger.info("Monorepo root: %s", root)

    workspace = discover_workspace(root)
    validate_publish_names(workspace)

    names = _subject_names(workspace, package_dirs)
    closures = resolve_closures(names, workspace, conflict_policy=conflict_policy)

    output_root = output_root.resolve()
    plans: List[AssemblyPlan] = []
    units: List[PublishUnit] = []
    for closure in closures:
        plan = assembler.plan(
            closure,
            output_root / mangle_package_name(closure.subject_name),
            workspace_names=workspace.names(),
        )
        plans.append(plan)
        units.append(
            PublishUnit(
                package_name=closure.subject_name,
                publish_name=closure.subject.publish_name,
                output_dir=plan.output_dir,
                source_version=closure.subject.manifest.version,
            )
        )

    logger.info("Prepared %d unit(s) under %s", len(units), output_root)
    return PreparedBatch(
        workspace=workspace,
        closures=closures,
        plans=plans,
        units=units,
        assembler=assembler,
    )


def write_batch(prepared: PreparedBatch) -> List[AssemblyResult]:
    """Assemble every planned unit with its resolved version.

    Units without a resolved version keep the version of their source
    manifest.
    """
    results: List[AssemblyResult] = []
    for plan, unit in zip(prepared.plans, prepared.units):
        result = prepared.assembler.assemble(plan, version=unit.version)
        unit.manifest = result.manifest
        if unit.version is None:
            unit.version = result.manifest.get("version")
        results.append(result)
    prepared.results = results
    return results
