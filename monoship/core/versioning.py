"""Version resolution for monoship.

A version specifier is a bump keyword (``patch``, ``minor``, ``major``),
the ``package`` keyword or an explicit semver. Bumps are applied to the
version the registry currently serves as ``latest``; a name that was never
published starts from ``0.0.0``. Only ``package`` reads the version in the
local ``package.json``, and neither it nor an explicit version touches the
registry.

With the ``max`` policy every unit of a batch receives the same version,
computed from the highest baseline across the batch. With the
``independent`` policy each unit is versioned from its own baseline.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Optional, Sequence

from monoship.utils.logger import get_logger
from monoship.models.publish import PublishUnit
from monoship.exceptions import ManifestError, VersionSpecifierError
from monoship.utils.version_utils import SEMVER_PATTERN, bump_version, is_semver, max_version
from monoship.constants import (
    BUMP_KEYWORDS,
    DEFAULT_VERSION_POLICY,
    PACKAGE_VERSION_KEYWORD,
    UNPUBLISHED_BASELINE,
    VERSION_POLICY_INDEPENDENT,
    VERSION_POLICY_MAX,
)

if TYPE_CHECKING:
    from monoship.core.registry import Registry

logger = get_logger("versioning")

__all__ = [
    "VersionSpecifier",
    "package_version",
    "parse_version_specifier",
    "resolve_versions",
]


@dataclass(frozen=True)
class VersionSpecifier:
    """A parsed ``--bump`` value.

    Attributes:
        bump: ``"major"``, ``"minor"`` or ``"patch"``; ``None`` otherwise.
        explicit: The explicit version; ``None`` otherwise.
        from_package: Publish the version declared in each ``package.json``.
    """

    bump: Optional[str] = None
    explicit: Optional[str] = None
    from_package: bool = False

    @property
    def is_explicit(self) -> bool:
        return self.explicit is not None

    @property
    def reads_registry(self) -> bool:
        return self.bump is not None

    def apply(self, baseline: str) -> str:
        """Return the version this specifier produces from ``baseline``.

        For ``package`` the baseline is the declared version and is
        returned unchanged.
        """
        if self.explicit is not None:
            return self.explicit
        if self.from_package:
            return baseline
        assert self.bump is not None
        return bump_version(baseline, self.bump)

    def __str__(self) -> str:
        if self.from_package:
            return PACKAGE_VERSION_KEYWORD
        return self.explicit if self.explicit is not None else str(self.bump)


def parse_version_specifier(value: str) -> VersionSpecifier:
    """Parse a bump keyword, ``package`` or an explicit version.

    Examples:
        >>> parse_version_specifier("minor")
        VersionSpecifier(bump='minor', explicit=None, from_package=False)
        >>> parse_version_specifier("package").from_package
        True
        >>> parse_version_specifier("2.0.0-rc.1").explicit
        '2.0.0-rc.1'

    Raises:
        VersionSpecifierError: ``value`` is none of these.
    """
    cleaned = value.strip()
    if cleaned in BUMP_KEYWORDS:
        return VersionSpecifier(bump=cleaned)
    if cleaned == PACKAGE_VERSION_KEYWORD:
        return VersionSpecifier(from_package=True)
    if is_semver(cleaned):
        return VersionSpecifier(explicit=cleaned)
    raise VersionSpecifierError(value)


def package_version(unit: PublishUnit) -> str:
    """Return the release version declared in ``unit``'s package.json.

    Raises:
        ManifestError: The version is missing or is not a plain X.Y.Z release.
    """
    version = unit.source_version
    if not version:
        raise ManifestError(
            f'No version found in package.json for "{unit.package_name}"',
            package_name=unit.package_name,
        )
    match = SEMVER_PATTERN.match(version)
    if match is None:
        raise ManifestError(
            f'Invalid version "{version}" in package.json for "{unit.package_name}". '
            "Expected a valid semver in X.Y.Z format.",
            package_name=unit.package_name,
        )
    if match["pre"]:
        raise ManifestError(
            "Prerelease versions are not supported with --bump package. "
            f'Found "{version}" in package.json for "{unit.package_name}". '
            "Please use a version in X.Y.Z format.",
            package_name=unit.package_name,
        )
    return version


async def resolve_versions(
    units: Sequence[PublishUnit],
    specifier: VersionSpecifier,
    registry: "Registry",
    *,
    policy: str = DEFAULT_VERSION_POLICY,
) -> Dict[str, str]:
    """Assign a version to every unit.

    Sets ``version`` on each unit, and ``current_version`` for bump
    specifiers. Registry reads are made one unit at a time, and only for
    bump specifiers.

    Returns:
        Mapping of publish name to resolved version.

    Raises:
        RegistryError: The registry could not be queried.
        ManifestError: ``package`` was given and a unit's package.json has
            no usable version.
    """
    if policy not in (VERSION_POLICY_MAX, VERSION_POLICY_INDEPENDENT):
        raise ValueError(f"Unknown version policy: {policy!r}")

    baselines: Dict[str, str] = {}
    if specifier.from_package:
        for unit in units:
            baselines[unit.publish_name] = package_version(unit)
    elif specifier.reads_registry:
        for unit in units:
            unit.current_version = await registry.current_version(unit.publish_name)
            logger.debug("%s is at %s", unit.publish_name, unit.current_version or "(unpublished)")
            if unit.current_version:
                baselines[unit.publish_name] = unit.current_version

    if policy == VERSION_POLICY_MAX:
        baseline = max_version(baselines.values()) or UNPUBLISHED_BASELINE
        shared = specifier.apply(baseline)
        for unit in units:
            unit.version = shared
    else:
        for unit in units:
            unit.version = specifier.apply(
                baselines.get(unit.publish_name, UNPUBLISHED_BASELINE)
            )

    resolved = {unit.publish_name: unit.version for unit in units if unit.version}
    logger.info("Resolved versions: %s", resolved)
    return resolved
