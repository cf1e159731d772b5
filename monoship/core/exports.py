"""Conditional-exports resolution for monoship.

Node resolves ``import "pkg/sub"`` through the ``exports`` map of
``pkg``'s ``package.json``. Published units are ES modules, so only the
``import``, ``module``, ``node`` and ``default`` conditions are honoured;
``require`` never matches. Declaration files additionally prefer the
``types`` condition.

An :class:`ExportsTable` pre-resolves one manifest's map once: exact
subpaths become a dictionary lookup and ``*`` patterns are kept sorted so
that the longest prefix is tried first.

Example::

    table = ExportsTable.from_manifest(manifest)
    table.resolve("")                 # 'dist/index.js'
    table.resolve("utils/helper")     # 'dist/utils/helper.js'
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from monoship.exceptions import ManifestError
from monoship.models.package import Manifest

__all__ = ["ExportsTable", "select_target", "RUNTIME_CONDITIONS"]

# ---------------------------------------------------------------------------
# Conditions
# ---------------------------------------------------------------------------

#: Conditions matched for runtime files, in no particular priority; the
#: order of keys in the exports object decides.
RUNTIME_CONDITIONS = frozenset({"import", "module", "node", "default"})

#: Condition preferred for declaration files.
TYPES_CONDITION = "types"

#: Subpaths that already name a file and get no ``.js`` appended.
_KNOWN_EXTENSIONS = (".js", ".mjs", ".cjs", ".json", ".node")


def select_target(value: Any, *, declaration: bool = False) -> Optional[str]:
    """Reduce an exports target to a single path.

    Strings are returned as-is, arrays yield their first resolvable entry,
    and condition objects are walked in key order (``types`` first for
    declarations). ``None`` means excluded or no matching condition.
    """
    if value is None:
        return None

    if isinstance(value, str):
        return value

    if isinstance(value, list):
        for item in value:
            target = select_target(item, declaration=declaration)
            if target is not None:
                return target
        return None

    if isinstance(value, dict):
        if declaration and TYPES_CONDITION in value:
            target = select_target(value[TYPES_CONDITION], declaration=declaration)
            if target is not None:
                return target
        for key, item in value.items():
            if key in RUNTIME_CONDITIONS:
                target = select_target(item, declaration=declaration)
                if target is not None:
                    return target
        return None

    return None


def _clean_target(target: Optional[str]) -> Optional[str]:
    """Normalize ``./dist/x.js`` to ``dist/x.js``; reject escaping paths."""
    if target is None or not target.startswith("./"):
        return None
    cleaned = posixpath.normpath(target[2:])
    if cleaned == ".." or cleaned.startswith("../"):
        return None
    return cleaned


# ---------------------------------------------------------------------------
# Table
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _Entry:
    """A subpath's targets for runtime and declaration importers."""

    runtime: Optional[str]
    declaration: Optional[str]

    def pick(self, declaration: bool) -> Optional[str]:
        return self.declaration if declaration else self.runtime


@dataclass(frozen=True)
class _Pattern:
    """A ``./prefix*suffix`` exports key."""

    key: str
    prefix: str
    suffix: str
    entry: _Entry

    def capture(self, subpath: str) -> Optional[str]:
        if not subpath.startswith(self.prefix) or subpath == self.prefix:
            return None
        if self.suffix:
            if not subpath.endswith(self.suffix) or len(subpath) < len(self.key):
                return None
            return subpath[len(self.prefix) : len(subpath) - len(self.suffix)]
        return subpath[len(self.prefix) :]


def _pattern_sort_key(pattern: _Pattern) -> Tuple[int, int]:
    # Longest prefix first, then longest key.
    return (-len(pattern.prefix), -len(pattern.key))


def _normalize_exports(exports: Any, manifest: Manifest) -> Dict[str, Any]:
    """Return ``exports`` as a subpath → target mapping."""
    if isinstance(exports, (str, list)):
        return {".": exports}

    if not isinstance(exports, dict):
        raise ManifestError(
            f'"exports" must be a string, array or object, got {type(exports).__name__}',
            package_name=manifest.name,
        )

    subpath_keys = [key.startswith(".") for key in exports]
    if all(subpath_keys):
        return dict(exports)
    if not any(subpath_keys):
        return {".": exports}

    raise ManifestError(
        '"exports" cannot mix subpath keys (starting with ".") with condition keys',
        package_name=manifest.name,
    )


class ExportsTable:
    """Pre-resolved module surface of one package.

    Resolution results are POSIX paths relative to the package root, or
    ``None`` when the subpath is not exported.
    """

    def __init__(
        self,
        *,
        has_exports: bool,
        exact: Optional[Dict[str, _Entry]] = None,
        patterns: Optional[List[_Pattern]] = None,
        main: Optional[str] = None,
        types: Optional[str] = None,
    ) -> None:
        self.has_exports = has_exports
        self._exact: Dict[str, _Entry] = exact or {}
        self._patterns: List[_Pattern] = sorted(patterns or [], key=_pattern_sort_key)
        self._main = main
        self._types = types

    @classmethod
    def from_manifest(cls, manifest: Manifest) -> "ExportsTable":
        """Build the table for ``manifest``.

        Raises:
            ManifestError: The ``exports`` field is malformed.
        """
        main = posixpath.normpath(manifest.main) if manifest.main else None
        types = posixpath.normpath(manifest.types) if manifest.types else None

        if manifest.exports is None:
            return cls(has_exports=False, main=main, types=types)

        exact: Dict[str, _Entry] = {}
        patterns: List[_Pattern] = []

        for key, value in _normalize_exports(manifest.exports, manifest).items():
            entry = _Entry(
                runtime=select_target(value),
                declaration=select_target(value, declaration=True),
            )
            star_count = key.count("*")
            if star_count == 0:
                exact[key] = entry
            elif star_count == 1:
                prefix, suffix = key.split("*")
                patterns.append(_Pattern(key=key, prefix=prefix, suffix=suffix, entry=entry))
            else:
                raise ManifestError(
                    f'Exports key "{key}" may contain at most one "*"',
                    package_name=manifest.name,
                )

        return cls(has_exports=True, exact=exact, patterns=patterns, main=main, types=types)

    def resolve(self, subpath: str, *, declaration: bool = False) -> Optional[str]:
        """Resolve ``subpath`` (``""`` for the bare package name)."""
        if not self.has_exports:
            return self._resolve_without_exports(subpath, declaration)

        key = "./" + subpath if subpath else "."

        if key in self._exact:
            return _clean_target(self._exact[key].pick(declaration))

        for pattern in self._patterns:
            captured = pattern.capture(key)
            if captured is None:
                continue
            template = pattern.entry.pick(declaration)
            if template is None:
                return None
            return _clean_target(template.replace("*", captured))

        return None

    def _resolve_without_exports(self, subpath: str, declaration: bool) -> Optional[str]:
        if not subpath:
            if declaration and self._types:
                return self._types
            return self._main or "index.js"
        if subpath.endswith(_KNOWN_EXTENSIONS):
            return posixpath.normpath(subpath)
        return posixpath.normpath(f"{subpath}.js")

    @property
    def entry_point(self) -> str:
        """Runtime file behind the bare package name."""
        return self.resolve("") or self._main or "index.js"

    def __repr__(self) -> str:
        return (
            f"ExportsTable(has_exports={self.has_exports}, "
            f"exact={sorted(self._exact)!r}, "
            f"patterns={[p.key for p in self._patterns]!r})"
        )
