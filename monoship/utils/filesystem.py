"""
Filesystem utilities for monoship.

Safe helpers for reading, atomically writing and copying files, plus path
containment checks. All filesystem errors are normalized to
``FileOperationError``.
"""

from __future__ import annotations

import os
import json
import shutil
import tempfile
from pathlib import Path
from typing import Any, Optional, Union

from monoship.utils.logger import get_logger
from monoship.constants import MAX_FILE_SIZE
from monoship.exceptions import FileOperationError


logger = get_logger("filesystem")

PathLike = Union[str, Path]


def _validated_file(path: Path) -> Path:
    """Ensure ``path`` exists and is a regular file; return it resolved."""
    if not path.exists():
        raise FileOperationError(
            f"File not found: {path}",
            file_path=str(path),
            operation="read",
        )
    if not path.is_file():
        raise FileOperationError(
            f"Not a file: {path}",
            file_path=str(path),
            operation="read",
        )
    return path.resolve()


def _atomic_write(target: Path, content: str) -> None:
    """Write text through a sibling temporary file and ``os.replace``."""
    target.parent.mkdir(parents=True, exist_ok=True)
    temp_path: Optional[Path] = None

    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            newline="",
            dir=str(target.parent),
            delete=False,
            prefix=f".{target.name}.",
            suffix=".tmp",
        ) as tmp:
            temp_path = Path(tmp.name)
            tmp.write(content)
            tmp.flush()
            os.fsync(tmp.fileno())

        temp_path.replace(target)

    except OSError as exc:
        if temp_path and temp_path.exists():
            try:
                temp_path.unlink()
                logger.debug("Cleaned up temporary file: %s", temp_path)
            except OSError as cleanup_exc:
                logger.warning(
                    "Failed to clean up temporary file %s: %s",
                    temp_path,
                    cleanup_exc,
                )

        raise FileOperationError(
            f"Atomic write failed: {exc}",
            file_path=str(target),
            operation="write",
            original_error=exc,
        ) from exc


def safe_read_file(
    file_path: PathLike,
    *,
    max_size: Optional[int] = MAX_FILE_SIZE,
    encoding: str = "utf-8",
) -> str:
    """Read a text file, refusing files larger than ``max_size`` bytes.

    Newlines are returned untranslated so that rewriting a file keeps its
    line endings.
    """
    path = _validated_file(Path(file_path))
    size = path.stat().st_size

    if max_size is not None and size > max_size:
        raise FileOperationError(
            f"File too large: {size} bytes (max {max_size})",
            file_path=str(path),
            operation="read",
        )

    try:
        with open(path, "r", encoding=encoding, newline="") as fh:
            return fh.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise FileOperationError(
            f"Failed to read file: {exc}",
            file_path=str(path),
            operation="read",
            original_error=exc,
        ) from exc


def safe_write_file(file_path: PathLike, content: str) -> None:
    """Write text to ``file_path`` using atomic replacement."""
    _atomic_write(Path(file_path), content)


def read_json_file(file_path: PathLike) -> Any:
    """Read and decode a JSON document.

    Raises:
        FileOperationError: The file is missing, unreadable or not JSON.
    """
    text = safe_read_file(file_path)
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise FileOperationError(
            f"Invalid JSON: {exc}",
            file_path=str(file_path),
            operation="parse",
            original_error=exc,
        ) from exc


def write_json_file(file_path: PathLike, data: Any) -> None:
    """Write ``data`` as 2-space indented JSON with a trailing newline."""
    safe_write_file(file_path, json.dumps(data, indent=2, ensure_ascii=False) + "\n")


def copy_file(source: PathLike, destination: PathLike) -> Path:
    """Copy a file (with metadata), creating parent directories as needed."""
    src = Path(source)
    dest = Path(destination)

    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src, dest)
    except OSError as exc:
        raise FileOperationError(
            f"Failed to copy file: {exc}",
            file_path=str(src),
            operation="copy",
            original_error=exc,
        ) from exc

    return dest


def validate_path(
    path: PathLike,
    *,
    base_dir: Optional[PathLike] = None,
) -> Path:
    """Resolve ``path`` (following symlinks) and, if ``base_dir`` is given,
    require it to lie inside that directory.
    """
    resolved = Path(path).expanduser().resolve(strict=False)

    if base_dir is not None:
        base = Path(base_dir).resolve(strict=False)
        try:
            resolved.relative_to(base)
        except ValueError:
            raise FileOperationError(
                f"Path outside allowed base directory: {resolved}",
                file_path=str(path),
                operation="validate",
            )

    return resolved
