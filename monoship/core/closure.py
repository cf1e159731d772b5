"""Dependency closure resolution for monoship.

Given a workspace and a subject package, compute everything that has to
ship with the subject:

- the internal packages reachable through ``dependencies`` (the runtime
  closure), ordered so that every package follows its dependencies;
- the internal packages reachable through ``dependencies`` or
  ``devDependencies`` (the compile-time closure, for build ordering only);
- the merged third-party dependencies, checked for version conflicts.

The traversal is an iterative depth-first search over an explicit stack
of frames. A package still on the current path is a cycle (an error at
runtime, a skipped edge at compile time); a package that was already
fully visited (a diamond) is simply skipped.

Typical usage::

    workspace = discover_workspace(root)
    closure = resolve_closure("app", workspace)
    for member in closure.runtime_members:
        print(member.name)
"""

from __future__ import annotations

from typing import Dict, Iterator, List, Sequence, Set, Tuple

from monoship.utils.logger import get_logger
from monoship.models.workspace import Workspace
from monoship.models.package import InternalPackage
from monoship.models.closure import DependencyClosure
from monoship.models.conflict import VersionConflict, VersionRequirement
from monoship.constants import (
    CONFLICT_POLICY_ERROR,
    CONFLICT_POLICY_WARN,
    DEFAULT_CONFLICT_POLICY,
)
from monoship.exceptions import (
    CircularDependencyError,
    ManifestError,
    VersionConflictError,
)

logger = get_logger("closure")

__all__ = ["resolve_closure", "resolve_closures", "build_order"]

_Frame = Tuple[InternalPackage, Iterator[Tuple[str, str]]]
_Externals = Dict[str, List[VersionRequirement]]


def _edges(package: InternalPackage, include_dev: bool) -> Iterator[Tuple[str, str]]:
    yield from package.manifest.dependencies.items()
    if include_dev:
        yield from package.manifest.dev_dependencies.items()


def _walk(
    subject: InternalPackage,
    workspace: Workspace,
    *,
    include_dev: bool,
) -> Tuple[List[InternalPackage], _Externals]:
    """Depth-first walk from ``subject``.

    Edges that re-enter a package on the current path raise, except in
    the compile-time walk (``include_dev``), where they are skipped: a
    test helper that dev-depends back on its consumer only orders builds.

    Returns:
        Members in dependency order (subject last) and the external
        requirements in discovery order.

    Raises:
        CircularDependencyError: A runtime edge re-enters a package on
            the path.
        ManifestError: A dependency has an empty version.
    """
    order: List[InternalPackage] = []
    visited: Set[str] = set()
    externals: _Externals = {}

    on_path: List[str] = [subject.name]
    stack: List[_Frame] = [(subject, _edges(subject, include_dev))]

    while stack:
        package, edges = stack[-1]
        descended = False

        for dep_name, version in edges:
            if not version:
                raise ManifestError(
                    f'No version for dependency "{dep_name}"',
                    package_name=package.name,
                )
            if dep_name == package.name:
                continue

            target = workspace.lookup(dep_name)
            if target is None:
                externals.setdefault(dep_name, []).append(
                    VersionRequirement(version=version, required_by=package.name)
                )
                continue

            if dep_name in on_path:
                if include_dev:
                    logger.debug(
                        "Ignoring compile-time cycle edge %s -> %s", package.name, dep_name
                    )
                    continue
                cycle = on_path[on_path.index(dep_name) :] + [dep_name]
                raise CircularDependencyError(cycle)
            if dep_name in visited:
                continue

            on_path.append(dep_name)
            stack.append((target, _edges(target, include_dev)))
            descended = True
            break

        if not descended:
            stack.pop()
            on_path.pop()
            visited.add(package.name)
            order.append(package)

    return order, externals


def _collapse(
    externals: _Externals,
    conflict_policy: str,
) -> Tuple[Dict[str, str], List[VersionConflict]]:
    """Reduce each external name to a single version."""
    resolved: Dict[str, str] = {}
    conflicts: List[VersionConflict] = []

    for name, requirements in externals.items():
        conflict = VersionConflict(name=name, requirements=tuple(requirements))
        if len(conflict.versions) == 1:
            resolved[name] = requirements[0].version
            continue
        conflicts.append(conflict)
        resolved[name] = conflict.highest().version

    if conflicts and conflict_policy == CONFLICT_POLICY_ERROR:
        raise VersionConflictError(conflicts)

    for conflict in conflicts:
        logger.warning(
            "Version conflict, using %s: %s", resolved[conflict.name], conflict
        )

    return resolved, conflicts


def resolve_closure(
    subject_name: str,
    workspace: Workspace,
    *,
    conflict_policy: str = DEFAULT_CONFLICT_POLICY,
) -> DependencyClosure:
    """Resolve the closure of one subject package.

    Args:
        subject_name: Name of the package to publish.
        workspace: Workspace snapshot to resolve against.
        conflict_policy: ``"error"`` raises on third-party version
            conflicts; ``"warn"`` picks the highest version and reports
            the conflicts as diagnostics.

    Raises:
        UnknownPackageError: ``subject_name`` is not in the workspace.
        CircularDependencyError: Internal packages form a cycle.
        VersionConflictError: Conflicting third-party versions under the
            ``"error"`` policy.
        ManifestError: A dependency has an empty version.
    """
    if conflict_policy not in (CONFLICT_POLICY_ERROR, CONFLICT_POLICY_WARN):
        raise ValueError(f"Unknown conflict policy: {conflict_policy!r}")

    subject = workspace.get(subject_name)

    runtime_members, externals = _walk(subject, workspace, include_dev=False)
    compiletime_members, _ = _walk(subject, workspace, include_dev=True)
    third_party, diagnostics = _collapse(externals, conflict_policy)

    logger.debug(
        "Closure of %s: %s", subject_name, [pkg.name for pkg in runtime_members]
    )

    return DependencyClosure(
        subject=subject,
        runtime_members=tuple(runtime_members),
        compiletime_members=tuple(compiletime_members),
        all_third_party_deps=third_party,
        diagnostics=tuple(diagnostics),
    )


def resolve_closures(
    subject_names: Sequence[str],
    workspace: Workspace,
    *,
    conflict_policy: str = DEFAULT_CONFLICT_POLICY,
) -> List[DependencyClosure]:
    """Resolve every subject of a batch, in the given order."""
    return [
        resolve_closure(name, workspace, conflict_policy=conflict_policy)
        for name in subject_names
    ]


def build_order(closures: Sequence[DependencyClosure]) -> List[InternalPackage]:
    """Return every compile-time member of ``closures`` once, each after
    all of its dependencies."""
    seen: Set[str] = set()
    ordered: List[InternalPackage] = []
    for closure in closures:
        for package in closure.compiletime_members:
            if package.name not in seen:
                seen.add(package.name)
                ordered.append(package)
    return ordered
