"""
Dependency closure model for monoship.

A :class:`DependencyClosure` is the result of resolving one publishable
package against the workspace: the internal packages that must travel
with it, and the merged set of third-party dependencies the published
manifest will declare.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from monoship.models.conflict import VersionConflict
from monoship.models.package import InternalPackage


@dataclass(frozen=True)
class DependencyClosure:
    """Resolved closure of one subject package.

    Attributes:
        subject: The package being published.
        runtime_members: Internal packages reachable through
            ``dependencies``, dependencies first and ``subject`` last.
        compiletime_members: Internal packages reachable through
            ``dependencies`` or ``devDependencies``; always a superset
            of ``runtime_members``.
        all_third_party_deps: Merged external runtime dependencies,
            in depth-first discovery order.
        diagnostics: Conflicts that were resolved under the ``warn``
            policy instead of raising.
    """

    subject: InternalPackage
    runtime_members: Tuple[InternalPackage, ...]
    compiletime_members: Tuple[InternalPackage, ...]
    all_third_party_deps: Dict[str, str] = field(default_factory=dict)
    diagnostics: Tuple[VersionConflict, ...] = ()

    @property
    def subject_name(self) -> str:
        return self.subject.name

    @property
    def internal_dependencies(self) -> Tuple[InternalPackage, ...]:
        """Runtime members other than the subject."""
        return tuple(pkg for pkg in self.runtime_members if pkg.name != self.subject.name)

    def has_internal_dependencies(self) -> bool:
        return bool(self.internal_dependencies)

    def member_names(self) -> List[str]:
        return [pkg.name for pkg in self.runtime_members]

    def contains(self, name: str) -> bool:
        """Return True if ``name`` is a runtime member."""
        return any(pkg.name == name for pkg in self.runtime_members)

    def to_json(self) -> Dict[str, Any]:
        """Return a JSON-serializable representation."""
        return {
            "subject": self.subject.name,
            "runtime_members": self.member_names(),
            "compiletime_members": [pkg.name for pkg in self.compiletime_members],
            "dependencies": dict(self.all_third_party_deps),
            "diagnostics": [conflict.to_json() for conflict in self.diagnostics],
        }
