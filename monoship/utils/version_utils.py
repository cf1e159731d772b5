"""
Version helpers for monoship.

npm versions follow Semantic Versioning (``1.2.3-rc.1+build``). Ordering is
done on the numeric ``MAJOR.MINOR.PATCH`` core with ``packaging``'s
:class:`~packaging.version.Version`; a prerelease sorts below the release
with the same core, and prerelease identifiers compare numerically when
they are numbers (``rc.2 < rc.10``).
"""

from __future__ import annotations

import re
from typing import Iterable, Optional, Tuple, Union

from packaging.version import InvalidVersion, Version

SEMVER_PATTERN = re.compile(
    r"^(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<pre>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)

_RANGE_VERSION = re.compile(r"(\d+)(?:\.(\d+|[xX*]))?(?:\.(\d+|[xX*]))?")

PrereleaseKey = Tuple[Tuple[int, Union[int, str]], ...]
SortKey = Tuple[Version, int, PrereleaseKey]


def is_semver(value: str) -> bool:
    """Return True if ``value`` is a full ``MAJOR.MINOR.PATCH`` version."""
    return SEMVER_PATTERN.match(value) is not None


def semver_core(value: str) -> Tuple[int, int, int]:
    """Return the numeric ``(major, minor, patch)`` of a semver string.

    Raises:
        InvalidVersion: ``value`` is not a semver string.
    """
    match = SEMVER_PATTERN.match(value.strip())
    if match is None:
        raise InvalidVersion(value)
    return int(match["major"]), int(match["minor"]), int(match["patch"])


def _prerelease_key(pre: str) -> PrereleaseKey:
    # Numeric identifiers rank below alphanumeric ones
    return tuple(
        (0, int(part)) if part.isdigit() else (1, part) for part in pre.split(".")
    )


def semver_sort_key(value: str) -> SortKey:
    """Key ordering semver strings by precedence.

    Examples:
        >>> sorted(["1.10.0", "1.2.0", "1.10.0-rc.1"], key=semver_sort_key)
        ['1.2.0', '1.10.0-rc.1', '1.10.0']
        >>> sorted(["1.0.0-rc.10", "1.0.0-rc.2"], key=semver_sort_key)
        ['1.0.0-rc.2', '1.0.0-rc.10']
    """
    match = SEMVER_PATTERN.match(value.strip())
    if match is None:
        raise InvalidVersion(value)
    core = Version(f"{match['major']}.{match['minor']}.{match['patch']}")
    pre = match["pre"]
    if pre is None:
        return (core, 1, ())
    return (core, 0, _prerelease_key(pre))


def max_version(versions: Iterable[str]) -> Optional[str]:
    """Return the highest semver in ``versions`` (``None`` if empty)."""
    best: Optional[str] = None
    best_key: Optional[SortKey] = None
    for version in versions:
        key = semver_sort_key(version)
        if best_key is None or key > best_key:
            best, best_key = version, key
    return best


def bump_version(baseline: str, part: str) -> str:
    """Apply a semver bump to ``baseline``.

    Lower components are reset and prerelease/build metadata dropped.

    Examples:
        >>> bump_version("1.4.2", "minor")
        '1.5.0'
        >>> bump_version("2.0.0-rc.1", "patch")
        '2.0.1'
    """
    major, minor, patch = semver_core(baseline)
    if part == "major":
        return f"{major + 1}.0.0"
    if part == "minor":
        return f"{major}.{minor + 1}.0"
    if part == "patch":
        return f"{major}.{minor}.{patch + 1}"
    raise ValueError(f"Unknown version part: {part!r}")


def range_floor(spec: str) -> Optional[Version]:
    """Return the first version mentioned in an npm range, as a Version.

    Wildcard components count as ``0``; ``None`` when the range names no
    version at all (``*``, ``latest``, ``file:...``).

    Examples:
        >>> range_floor("^4.17.0")
        <Version('4.17.0')>
        >>> range_floor(">=1.x <3")
        <Version('1.0.0')>
    """
    match = _RANGE_VERSION.search(spec)
    if match is None:
        return None
    parts = [p if p and p.isdigit() else "0" for p in match.groups()]
    return Version(".".join(parts))


def get_update_type(
    current_version: Optional[str],
    target_version: Optional[str],
) -> str:
    """Classify the change between two versions.

    Returns:
        ``"new"`` (no current version), ``"major"``, ``"minor"`` or
        ``"patch"`` (the highest core component that moved up), or
        ``"unknown"`` when either side is missing or unparseable or the
        core did not move up.

    Examples:
        >>> get_update_type("1.0.0", "2.0.0")
        'major'
        >>> get_update_type(None, "1.0.0")
        'new'
    """
    if target_version is None:
        return "unknown"

    if current_version is None:
        return "new"

    try:
        current = semver_core(current_version)
        target = semver_core(target_version)
    except InvalidVersion:
        return "unknown"

    if target <= current:
        return "unknown"
    if target[0] != current[0]:
        return "major"
    if target[1] != current[1]:
        return "minor"
    return "patch"
