"""Output ``package.json`` generation for monoship.

The published manifest is the subject's own manifest with:

- ``name`` replaced by the publish name,
- ``version`` set to the resolved version (when one was resolved),
- ``dependencies`` replaced by the closure's third-party dependencies
  (dropped when there are none),
- ``devDependencies`` and the private ``monoship`` block removed,
- ``deps`` appended to ``files`` when internal dependencies were folded in.

Every other field passes through unchanged and in its original order.
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Dict, List, Optional

from monoship.utils.logger import get_logger
from monoship.utils.filesystem import write_json_file
from monoship.models.closure import DependencyClosure
from monoship.constants import DEPS_DIR, MANIFEST_FILE, PRIVATE_CONFIG_KEY

logger = get_logger("manifest")

__all__ = ["build_output_manifest", "write_output_manifest"]

_STRIPPED_KEYS = ("devDependencies", PRIVATE_CONFIG_KEY)


def build_output_manifest(
    closure: DependencyClosure,
    *,
    version: Optional[str] = None,
) -> Dict[str, Any]:
    """Return the manifest to publish for ``closure``'s subject.

    Example:
        >>> manifest = build_output_manifest(closure, version="1.3.0")
        >>> manifest["dependencies"]
        {'lodash': '^4.17.0'}
    """
    subject = closure.subject
    source: Dict[str, Any] = copy.deepcopy(subject.manifest.raw)

    output: Dict[str, Any] = {}
    for key, value in source.items():
        if key in _STRIPPED_KEYS:
            continue
        if key == "name":
            output["name"] = subject.publish_name
            if version is not None and "version" not in source:
                output["version"] = version
        elif key == "version" and version is not None:
            output["version"] = version
        elif key == "dependencies":
            if closure.all_third_party_deps:
                output["dependencies"] = dict(closure.all_third_party_deps)
        else:
            output[key] = value

    if "dependencies" not in source and closure.all_third_party_deps:
        output["dependencies"] = dict(closure.all_third_party_deps)

    files: Optional[List[str]] = output.get("files")
    if isinstance(files, list) and closure.has_internal_dependencies() and DEPS_DIR not in files:
        output["files"] = files + [DEPS_DIR]

    return output


def write_output_manifest(output_dir: Path, manifest: Dict[str, Any]) -> Path:
    """Write ``manifest`` as ``output_dir/package.json``."""
    path = output_dir / MANIFEST_FILE
    write_json_file(path, manifest)
    logger.debug("Wrote %s", path)
    return path
