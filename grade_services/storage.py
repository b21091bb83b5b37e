"""
grade_services.storage -- Blob storage for approval attachments.

Responsibility:
    Implements the kernel's BlobStorage Protocol on the local filesystem.

Invariants enforced:
    - Every write lands inside the configured root; paths that resolve
      outside it raise InvalidStoragePathError before anything is written.
    - Parent directories are created on demand.

Failure modes:
    - InvalidStoragePathError for absolute or traversing paths.
    - OSError from the filesystem propagates.
"""

from __future__ import annotations

from pathlib import Path, PurePosixPath

from grade_kernel.domain.storage import BlobStorage, StoredBlob
from grade_kernel.exceptions import InvalidStoragePathError
from grade_kernel.logging_config import get_logger

logger = get_logger("storage")


class LocalBlobStorage:
    """Writes blobs under a root directory and serves them from base_url."""

    def __init__(self, root: Path | str, disk: str = "public", base_url: str = "/storage"):
        self.root = Path(root).resolve()
        self.disk = disk
        self.base_url = base_url.rstrip("/")

    def resolve(self, path: str) -> Path:
        """Absolute filesystem location for a relative storage path."""
        relative = PurePosixPath(path)
        if relative.is_absolute() or not relative.parts:
            raise InvalidStoragePathError(path)
        target = self.root.joinpath(*relative.parts).resolve()
        if not target.is_relative_to(self.root) or target == self.root:
            raise InvalidStoragePathError(path)
        return target

    def put(self, path: str, data: bytes) -> StoredBlob:
        target = self.resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

        stored_path = target.relative_to(self.root).as_posix()
        logger.debug(
            "blob_stored",
            extra={"disk": self.disk, "path": stored_path, "size": len(data)},
        )
        return StoredBlob(
            disk=self.disk,
            path=stored_path,
            url=f"{self.base_url}/{stored_path}",
        )

    def read(self, path: str) -> bytes:
        return self.resolve(path).read_bytes()

    def delete(self, path: str) -> None:
        self.resolve(path).unlink(missing_ok=True)
        logger.debug("blob_deleted", extra={"disk": self.disk, "path": path})


__all__ = ["BlobStorage", "LocalBlobStorage", "StoredBlob"]
