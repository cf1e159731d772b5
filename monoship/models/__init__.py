"""
Unified data model exports for monoship.

This module re-exports all core data models to provide a stable and
convenient public API. Users can import models directly from
``monoship.models`` instead of individual submodules.

Example:
    >>> from monoship.models import InternalPackage, Workspace, DependencyClosure
"""

from __future__ import annotations

from monoship.models.package import InternalPackage, Manifest
from monoship.models.workspace import Workspace
from monoship.models.conflict import VersionConflict, VersionRequirement
from monoship.models.closure import DependencyClosure
from monoship.models.publish import PublishBatch, PublishState, PublishUnit

__all__ = [
    "Manifest",
    "InternalPackage",
    "Workspace",
    "VersionConflict",
    "VersionRequirement",
    "DependencyClosure",
    "PublishBatch",
    "PublishState",
    "PublishUnit",
]
