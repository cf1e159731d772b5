"""
Third-party version conflict models for monoship.

A conflict arises when members of one closure declare different version
ranges for the same external package. Requirements are kept in the order
the resolver discovered them so that reports are stable and readable.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, List, Tuple

from packaging.version import Version

from monoship.utils.version_utils import range_floor


@dataclass(frozen=True)
class VersionRequirement:
    """One declaration of an external dependency.

    Args:
        version: Version range exactly as written in the manifest.
        required_by: Name of the declaring internal package.
    """

    version: str
    required_by: str

    def __str__(self) -> str:
        return f"{self.version} (by {self.required_by})"


@dataclass(frozen=True)
class VersionConflict:
    """Every declaration of one external package inside a closure, when
    they disagree.

    Args:
        name: External package name.
        requirements: Declarations in depth-first discovery order.
    """

    name: str
    requirements: Tuple[VersionRequirement, ...]

    @property
    def versions(self) -> List[str]:
        """Distinct version ranges, in discovery order."""
        seen: Dict[str, None] = {}
        for req in self.requirements:
            seen.setdefault(req.version, None)
        return list(seen)

    def highest(self) -> VersionRequirement:
        """Pick the requirement with the highest lower bound.

        Ranges that name no version rank lowest; ties keep the earliest
        discovered requirement, so the pick is deterministic.
        """
        best = self.requirements[0]
        best_floor = range_floor(best.version) or Version("0")
        for req in self.requirements[1:]:
            floor = range_floor(req.version) or Version("0")
            if floor > best_floor:
                best, best_floor = req, floor
        return best

    def to_display_string(self) -> str:
        """Return e.g. ``lodash: ^3.10.0 (by lib), ^4.17.0 (by app)``."""
        listed = ", ".join(str(req) for req in self.requirements)
        return f"{self.name}: {listed}"

    def to_json(self) -> Dict[str, object]:
        """Return a JSON-serializable representation."""
        return {
            "name": self.name,
            "requirements": [
                {"version": req.version, "required_by": req.required_by}
                for req in self.requirements
            ],
        }

    def __str__(self) -> str:
        return self.to_display_string()

    def __len__(self) -> int:
        return len(self.requirements)

    def __iter__(self) -> Iterator[VersionRequirement]:
        return iter(self.requirements)
