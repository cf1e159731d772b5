"""Tarball packing for the npm registry.

npm packages are gzip-compressed tarballs whose entries all live under a
``package/`` directory. Entries are sorted and carry a fixed timestamp and
ownership so that packing the same tree twice yields the same bytes.
"""

from __future__ import annotations

import io
import gzip
import base64
import hashlib
import tarfile
from pathlib import Path
from dataclasses import dataclass

from monoship.exceptions import FileOperationError

__all__ = ["Tarball", "pack_directory"]

# npm's fixed mtime: 1985-10-26T08:15:00Z
_FIXED_MTIME = 499162500


@dataclass(frozen=True)
class Tarball:
    """Packed package contents and their digests."""

    data: bytes

    @property
    def shasum(self) -> str:
        """Hex SHA-1 of the tarball (``dist.shasum``)."""
        return hashlib.sha1(self.data).hexdigest()

    @property
    def integrity(self) -> str:
        """Subresource integrity string (``dist.integrity``)."""
        digest = hashlib.sha512(self.data).digest()
        return "sha512-" + base64.b64encode(digest).decode("ascii")

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def __len__(self) -> int:
        return len(self.data)


def pack_directory(directory: Path, *, prefix: str = "package") -> Tarball:
    """Pack every file below ``directory`` into an npm tarball.

    Raises:
        FileOperationError: A file cannot be read.
    """
    buffer = io.BytesIO()
    try:
        with gzip.GzipFile(fileobj=buffer, mode="wb", mtime=0) as gz:
            with tarfile.open(fileobj=gz, mode="w", format=tarfile.PAX_FORMAT) as tar:
                for path in sorted(directory.rglob("*")):
                    if not path.is_file():
                        continue
                    arcname = f"{prefix}/{path.relative_to(directory).as_posix()}"
                    info = tarfile.TarInfo(arcname)
                    info.size = path.stat().st_size
                    info.mtime = _FIXED_MTIME
                    info.mode = 0o644
                    info.uid = info.gid = 0
                    info.uname = info.gname = ""
                    with path.open("rb") as handle:
                        tar.addfile(info, handle)
    except OSError as exc:
        raise FileOperationError(
            f"Failed to pack {directory}: {exc}",
            file_path=str(directory),
            operation="pack",
            original_error=exc,
        ) from exc

    return Tarball(buffer.getvalue())
