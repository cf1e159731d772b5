"""
Workspace snapshot model for monoship.

A :class:`Workspace` is the immutable name → package lookup table produced
by discovery. It is passed explicitly to everything that needs it, so a
test can resolve against any hand-built snapshot.
"""

from __future__ import annotations

from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Iterator, List, Mapping, Optional

from monoship.exceptions import UnknownPackageError
from monoship.models.package import InternalPackage


class Workspace:
    """Immutable lookup table of the packages in a repository.

    Args:
        root: Absolute repository root.
        packages: Discovered packages. Later entries with a duplicate name
            replace earlier ones.

    Example:
        >>> ws = Workspace(Path("/repo"), [app, lib])
        >>> ws.get("lib").path_in_repo
        'packages/lib'
    """

    __slots__ = ("_root", "_packages")

    def __init__(self, root: Path, packages: Iterable[InternalPackage]) -> None:
        self._root = root
        self._packages: Mapping[str, InternalPackage] = MappingProxyType(
            {pkg.name: pkg for pkg in packages}
        )

    @property
    def root(self) -> Path:
        return self._root

    @property
    def packages(self) -> Mapping[str, InternalPackage]:
        """Read-only name → package mapping."""
        return self._packages

    def lookup(self, name: str) -> Optional[InternalPackage]:
        """Return the package called ``name``, or ``None``."""
        return self._packages.get(name)

    def get(self, name: str) -> InternalPackage:
        """Return the package called ``name``.

        Raises:
            UnknownPackageError: No such package in the workspace.
        """
        pkg = self._packages.get(name)
        if pkg is None:
            raise UnknownPackageError(name)
        return pkg

    def find_by_path(self, directory: Path) -> InternalPackage:
        """Return the package whose directory is ``directory``.

        Raises:
            UnknownPackageError: ``directory`` is not a workspace package.
        """
        target = directory.resolve()
        for pkg in self._packages.values():
            if pkg.path.resolve() == target:
                return pkg
        raise UnknownPackageError(
            str(directory),
            message=f'No workspace package at "{directory}"',
        )

    def names(self) -> List[str]:
        return list(self._packages)

    def __contains__(self, name: object) -> bool:
        return name in self._packages

    def __iter__(self) -> Iterator[InternalPackage]:
        return iter(self._packages.values())

    def __len__(self) -> int:
        return len(self._packages)

    def __repr__(self) -> str:
        return f"Workspace(root={str(self._root)!r}, packages={list(self._packages)!r})"
