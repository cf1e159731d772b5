"""npm registry access for monoship.

The publisher only needs three operations, captured by the
:class:`Registry` protocol: read the current ``latest`` version of a
name, publish a unit under a dist-tag, and move a dist-tag.
:class:`NpmRegistry` implements them over the registry's HTTP API using
the shared :class:`~monoship.utils.http.HTTPClient`.

Typical usage::

    from monoship.utils.http import HTTPClient
    from monoship.core.registry import NpmRegistry

    async with HTTPClient(token=token) as client:
        registry = NpmRegistry(client, "https://registry.npmjs.org")
        print(await registry.current_version("react"))   # e.g. "18.3.1"
"""

from __future__ import annotations

from urllib.parse import quote
from typing import Any, Dict, Optional, Protocol

from monoship.utils.http import HTTPClient
from monoship.utils.logger import get_logger
from monoship.models.publish import PublishUnit
from monoship.core.tarball import Tarball, pack_directory
from monoship.utils.version_utils import is_semver
from monoship.constants import DEFAULT_REGISTRY, LATEST_TAG
from monoship.exceptions import NetworkError, RegistryError

logger = get_logger("registry")

__all__ = ["Registry", "NpmRegistry", "escape_package_name"]


class Registry(Protocol):
    """Operations the publisher needs from a package registry."""

    async def current_version(self, name: str) -> Optional[str]:
        """Return the ``latest`` version of ``name``, or ``None``."""
        ...

    async def publish(self, unit: PublishUnit, tag: str) -> None:
        """Publish ``unit`` under dist-tag ``tag``."""
        ...

    async def move_tag(self, name: str, tag: str, version: str) -> None:
        """Point dist-tag ``tag`` of ``name`` at ``version``."""
        ...


def escape_package_name(name: str) -> str:
    """Escape a package name for use as one URL path segment.

    Examples:
        >>> escape_package_name("@scope/pkg")
        '@scope%2Fpkg'
    """
    return quote(name, safe="@")


class NpmRegistry:
    """HTTP client for an npm-compatible registry.

    Args:
        http: Shared HTTP client (carries the bearer token).
        registry_url: Base URL of the registry.
    """

    def __init__(self, http: HTTPClient, registry_url: str = DEFAULT_REGISTRY) -> None:
        self.http = http
        self.registry_url = registry_url.rstrip("/")

    def package_url(self, name: str) -> str:
        return f"{self.registry_url}/{escape_package_name(name)}"

    def tarball_url(self, name: str, version: str) -> str:
        basename = name.rsplit("/", 1)[-1]
        return f"{self.registry_url}/{name}/-/{basename}-{version}.tgz"

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def current_version(self, name: str) -> Optional[str]:
        """Return the version ``latest`` points at; ``None`` if unpublished.

        Raises:
            RegistryError: The registry could not be queried or returned
                an unusable document.
        """
        url = self.package_url(name)
        try:
            document = await self.http.get_json(url)
        except NetworkError as exc:
            raise RegistryError(
                f'Could not read "{name}" from the registry: {exc.message}',
                package_name=name,
                operation="view",
                url=url,
                status_code=exc.status_code,
            ) from exc

        if document is None:
            return None

        version = (document.get("dist-tags") or {}).get(LATEST_TAG)
        if version is None:
            return None
        if not isinstance(version, str) or not is_semver(version):
            raise RegistryError(
                f'Registry reports an invalid "{LATEST_TAG}" version for "{name}": {version!r}',
                package_name=name,
                operation="view",
                url=url,
            )
        return version

    # ------------------------------------------------------------------
    # Writes (never retried)
    # ------------------------------------------------------------------

    def build_publish_document(
        self,
        unit: PublishUnit,
        tag: str,
        tarball: Tarball,
    ) -> Dict[str, Any]:
        """Return the JSON body of a publish request."""
        name = unit.publish_name
        version = unit.version or ""
        filename = f"{name.rsplit('/', 1)[-1]}-{version}.tgz"

        version_doc = dict(unit.manifest)
        version_doc.update(
            {
                "name": name,
                "version": version,
                "_id": f"{name}@{version}",
                "dist": {
                    "shasum": tarball.shasum,
                    "integrity": tarball.integrity,
                    "tarball": self.tarball_url(name, version),
                },
            }
        )

        return {
            "_id": name,
            "name": name,
            "description": unit.manifest.get("description", ""),
            "dist-tags": {tag: version},
            "versions": {version: version_doc},
            "_attachments": {
                filename: {
                    "content_type": "application/octet-stream",
                    "data": tarball.to_base64(),
                    "length": len(tarball),
                }
            },
        }

    async def publish(self, unit: PublishUnit, tag: str) -> None:
        """Pack ``unit.output_dir`` and publish it under ``tag``.

        Raises:
            RegistryError: The registry rejected the publish (for example
                because the version already exists) or was unreachable.
        """
        name = unit.publish_name
        url = self.package_url(name)
        tarball = pack_directory(unit.output_dir)
        body = self.build_publish_document(unit, tag, tarball)

        logger.info("Publishing %s@%s (tag %s, %d bytes)", name, unit.version, tag, len(tarball))
        try:
            response = await self.http.put(url, json=body)
        except NetworkError as exc:
            raise RegistryError(
                f'Could not publish "{name}@{unit.version}": {exc.message}',
                package_name=name,
                operation="publish",
                url=url,
            ) from exc

        if response.status_code >= 400:
            raise RegistryError(
                f'Registry rejected "{name}@{unit.version}" (HTTP {response.status_code})',
                package_name=name,
                operation="publish",
                url=url,
                status_code=response.status_code,
                response_body=response.text,
            )

    async def move_tag(self, name: str, tag: str, version: str) -> None:
        """Point ``tag`` of ``name`` at ``version``.

        Raises:
            RegistryError: The registry rejected the change or was
                unreachable.
        """
        url = f"{self.registry_url}/-/package/{escape_package_name(name)}/dist-tags/{quote(tag)}"
        logger.info("Moving %s of %s to %s", tag, name, version)
        try:
            response = await self.http.put(url, json=version)
        except NetworkError as exc:
            raise RegistryError(
                f'Could not move "{tag}" of "{name}": {exc.message}',
                package_name=name,
                operation="dist-tag",
                url=url,
            ) from exc

        if response.status_code >= 400:
            raise RegistryError(
                f'Registry rejected moving "{tag}" of "{name}" to {version} '
                f"(HTTP {response.status_code})",
                package_name=name,
                operation="dist-tag",
                url=url,
                status_code=response.status_code,
                response_body=response.text,
            )
