"""Output layout planning for monoship.

Assigns every runtime member of a :class:`DependencyClosure` a location in
the unit's output directory before anything is copied, so the rewriter can
compute every relative path up front.
"""

from __future__ import annotations

from pathlib import Path
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional

from monoship.utils.logger import get_logger
from monoship.core.exports import ExportsTable
from monoship.exceptions import IdentityConflictError
from monoship.models.closure import DependencyClosure
from monoship.models.location import LocationKind, OutputLocation

logger = get_logger("layout")

__all__ = ["Layout", "plan_layout"]


class Layout:
    """Name → :class:`OutputLocation` mapping for one publish unit.

    ``workspace_names`` holds every package of the workspace, so that a
    reference to an in-repo package outside the closure can be told apart
    from a third-party import.
    """

    def __init__(
        self,
        output_dir: Path,
        locations: List[OutputLocation],
        workspace_names: Iterable[str] = (),
    ) -> None:
        self.output_dir = output_dir
        self.workspace_names: FrozenSet[str] = frozenset(workspace_names)
        self._locations: Mapping[str, OutputLocation] = MappingProxyType(
            {location.name: location for location in locations}
        )

    @property
    def subject(self) -> OutputLocation:
        for location in self._locations.values():
            if location.kind is LocationKind.SUBJECT:
                return location
        raise LookupError("layout has no subject")

    @property
    def locations(self) -> Mapping[str, OutputLocation]:
        return self._locations

    def get(self, name: str) -> Optional[OutputLocation]:
        return self._locations.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._locations

    def __iter__(self) -> Iterator[OutputLocation]:
        return iter(self._locations.values())

    def __len__(self) -> int:
        return len(self._locations)


def plan_layout(
    closure: DependencyClosure,
    output_dir: Path,
    *,
    workspace_names: Iterable[str] = (),
) -> Layout:
    """Place each runtime member of ``closure`` under ``output_dir``.

    The subject keeps its own layout at the output root; every other
    member goes to ``deps/<mangled name>``. ``workspace_names`` is kept on
    the layout for the rewriter.

    Raises:
        IdentityConflictError: Two members mangle to the same directory.
        ManifestError: A member's ``exports`` field is malformed.
    """
    output_dir = output_dir.resolve()
    locations: List[OutputLocation] = []
    claimed: Dict[str, str] = {}

    for package in closure.runtime_members:
        kind = (
            LocationKind.SUBJECT
            if package.name == closure.subject.name
            else LocationKind.DEPENDENCY
        )
        prefix = OutputLocation.prefix_for(package, kind)

        if prefix in claimed:
            raise IdentityConflictError(prefix, [claimed[prefix], package.name])
        claimed[prefix] = package.name

        location = OutputLocation(
            package=package,
            kind=kind,
            prefix=prefix,
            output_dir=output_dir / prefix if prefix else output_dir,
            exports=ExportsTable.from_manifest(package.manifest),
        )
        logger.debug("%s -> %s", package.name, prefix or ".")
        locations.append(location)

    return Layout(output_dir, locations, workspace_names)
