"""
Output location model for monoship.

Every runtime member of a closure gets one :class:`OutputLocation`: the
subject sits at the root of the unit's output directory and each internal
dependency sits under ``deps/<mangled name>``.
"""

from __future__ import annotations

import posixpath
from enum import Enum
from pathlib import Path
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from monoship.constants import DEPS_DIR
from monoship.models.package import InternalPackage

if TYPE_CHECKING:
    from monoship.core.exports import ExportsTable


def mangle_package_name(name: str) -> str:
    """Return the directory name used for an internal dependency.

    Examples:
        >>> mangle_package_name("@scope/name")
        '__scope__name'
        >>> mangle_package_name("lib")
        '__lib'
    """
    if name.startswith("@"):
        name = name[1:]
    return "__" + name.replace("/", "__")


class LocationKind(str, Enum):
    SUBJECT = "subject"
    DEPENDENCY = "dependency"


@dataclass(frozen=True)
class OutputLocation:
    """Where one closure member lands in a unit's output tree.

    Attributes:
        package: The member package.
        kind: SUBJECT (output root) or DEPENDENCY (``deps/<mangled>``).
        prefix: POSIX prefix relative to the unit's output directory
            (``""`` for the subject).
        output_dir: Absolute directory the member's files are copied to.
        exports: Pre-resolved exports of the member.
    """

    package: InternalPackage
    kind: LocationKind
    prefix: str
    output_dir: Path
    exports: "ExportsTable"

    @classmethod
    def prefix_for(cls, package: InternalPackage, kind: LocationKind) -> str:
        if kind is LocationKind.SUBJECT:
            return ""
        return posixpath.join(DEPS_DIR, mangle_package_name(package.name))

    @property
    def name(self) -> str:
        return self.package.name

    @property
    def entry_point(self) -> str:
        """Entry point relative to the member's own directory."""
        return self.exports.entry_point

    def resolve(self, subpath: str, *, declaration: bool = False) -> Optional[str]:
        """Resolve ``subpath`` to a POSIX path relative to the unit root.

        Returns ``None`` when the member does not export ``subpath``.
        """
        target = self.exports.resolve(subpath, declaration=declaration)
        if target is None:
            return None
        return posixpath.join(self.prefix, target) if self.prefix else target
