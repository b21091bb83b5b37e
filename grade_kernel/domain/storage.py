"""
Blob storage contract (``grade_kernel.domain.storage``).

The kernel writes uploaded bytes through this Protocol and records where
they landed.  Implementations live in ``grade_services.storage``.
"""

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class StoredBlob:
    """Location of a written blob."""

    disk: str
    path: str
    url: str


class BlobStorage(Protocol):
    """Pluggable interface for blob writes and their removal."""

    def put(self, path: str, data: bytes) -> StoredBlob:
        """Write data at path (relative, '/'-separated) and describe it."""
        ...

    def delete(self, path: str) -> None:
        """Remove the blob at path.  A missing blob is not an error."""
        ...
