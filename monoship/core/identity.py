"""Publish-name validation for monoship."""

from __future__ import annotations

from typing import Dict, Iterable

from monoship.models.package import InternalPackage
from monoship.exceptions import IdentityConflictError

__all__ = ["validate_publish_names"]


def validate_publish_names(packages: Iterable[InternalPackage]) -> None:
    """Reject ambiguous publish names before anything is written.

    Raises:
        IdentityConflictError: Two packages resolve to the same publish
            name, or a ``publishName`` override equals another package's
            own name.
    """
    packages = list(packages)
    claimed: Dict[str, str] = {}

    for package in packages:
        other = claimed.get(package.publish_name)
        if other is not None:
            raise IdentityConflictError(package.publish_name, [package.name, other])
        claimed[package.publish_name] = package.name

    names = {package.name for package in packages}
    for package in packages:
        if package.publish_name != package.name and package.publish_name in names:
            raise IdentityConflictError(
                package.publish_name, [package.name, package.publish_name]
            )
