"""
Publish unit models for monoship.

A :class:`PublishUnit` is one assembled artifact waiting to be pushed to
the registry. Its :class:`PublishState` only ever moves forward:

    UNPUBLISHED -> PENDING -> LATEST
    UNPUBLISHED -> FAILED
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from monoship.utils.version_utils import get_update_type


class PublishState(str, Enum):
    UNPUBLISHED = "unpublished"
    PENDING = "pending"
    LATEST = "latest"
    FAILED = "failed"


@dataclass
class PublishUnit:
    """One assembled package ready for publication.

    Attributes:
        package_name: Workspace name of the subject package.
        publish_name: Name the artifact is published under.
        output_dir: Assembled output directory (the tarball root).
        manifest: The output ``package.json`` document.
        version: Version being published; set by version resolution.
        current_version: Registry ``latest`` before this run, if any.
        source_version: Version declared in the subject's ``package.json``.
        state: Lifecycle state.
        error: Failure message when ``state`` is FAILED.
    """

    package_name: str
    publish_name: str
    output_dir: Path
    manifest: Dict[str, Any] = field(default_factory=dict)
    version: Optional[str] = None
    current_version: Optional[str] = None
    source_version: Optional[str] = None
    state: PublishState = PublishState.UNPUBLISHED
    error: Optional[str] = None

    @property
    def update_type(self) -> str:
        return get_update_type(self.current_version, self.version)

    def mark_pending(self) -> None:
        self.state = PublishState.PENDING

    def mark_latest(self) -> None:
        self.state = PublishState.LATEST

    def mark_failed(self, error: str) -> None:
        self.state = PublishState.FAILED
        self.error = error

    def to_json(self) -> Dict[str, Any]:
        """Return a JSON-serializable representation."""
        return {
            "package": self.package_name,
            "publish_name": self.publish_name,
            "version": self.version,
            "current_version": self.current_version,
            "state": self.state.value,
            "error": self.error,
            "output_dir": str(self.output_dir),
        }


@dataclass
class PublishBatch:
    """Units published together under the pending/latest protocol.

    Attributes:
        units: Units in publication order.
        promoted: True once ``latest`` has moved for every unit.
        dry_run: True when nothing was sent to the registry.
    """

    units: List[PublishUnit] = field(default_factory=list)
    promoted: bool = False
    dry_run: bool = False

    @property
    def failed_units(self) -> List[PublishUnit]:
        return [unit for unit in self.units if unit.state is PublishState.FAILED]

    @property
    def pending_units(self) -> List[PublishUnit]:
        return [unit for unit in self.units if unit.state is PublishState.PENDING]

    def to_json(self) -> Dict[str, Any]:
        return {
            "promoted": self.promoted,
            "dry_run": self.dry_run,
            "units": [unit.to_json() for unit in self.units],
        }

    def __len__(self) -> int:
        return len(self.units)

    def __iter__(self):
        return iter(self.units)
