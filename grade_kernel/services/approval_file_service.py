"""
Module: grade_kernel.services.approval_file_service
Responsibility: Attach uploaded files to approval requests and list them.

Architecture position: Kernel > Services.  Writes bytes through the
    BlobStorage Protocol; never touches the filesystem directly.

Invariants enforced:
    - A stored path is ``<now formatted with directory_pattern>/<uuid4>.<ext>``,
      so two uploads never collide.
    - The File row and its link row are flushed into the caller's
      transaction together.

Failure modes:
    - EmptyUploadError for zero-byte content (checked before any write).
    - ApprovalNotFoundError for an unknown request (checked before any write).
    - If the File row or its link fails to flush, the blob just written is
      deleted and the database error propagates.
    - A blob whose rows the caller later rolls back stays in storage.
"""

import posixpath
import uuid

from sqlalchemy import insert, select
from sqlalchemy.orm import Session

from grade_kernel.domain.approval import AttachedFile
from grade_kernel.domain.clock import Clock
from grade_kernel.domain.storage import BlobStorage
from grade_kernel.exceptions import ApprovalNotFoundError, EmptyUploadError
from grade_kernel.logging_config import get_logger
from grade_kernel.models.approval import ApprovalRequestModel
from grade_kernel.models.file import File, approval_request_files
from grade_kernel.services.base import BaseService

logger = get_logger("services.approval_files")

DEFAULT_DIRECTORY_PATTERN = "approval-requests/%Y/%m/%d"


def file_extension(original_name: str) -> str | None:
    """Lower-cased extension of a client file name, without the dot."""
    _, ext = posixpath.splitext(original_name.replace("\\", "/"))
    return ext[1:].lower() or None


class ApprovalFileService(BaseService):
    """Stores attachments and links them to approval requests."""

    def __init__(
        self,
        session: Session,
        storage: BlobStorage,
        clock: Clock | None = None,
        directory_pattern: str = DEFAULT_DIRECTORY_PATTERN,
    ) -> None:
        super().__init__(session, clock)
        self.storage = storage
        self.directory_pattern = directory_pattern

    def attach(
        self,
        request_id: int,
        content: bytes,
        original_name: str,
        name: str | None = None,
    ) -> AttachedFile:
        if not content:
            raise EmptyUploadError(original_name)
        if self.session.get(ApprovalRequestModel, request_id) is None:
            raise ApprovalNotFoundError(request_id)

        now = self.clock.now()
        extension = file_extension(original_name)
        stored_name = uuid.uuid4().hex + (f".{extension}" if extension else "")
        path = posixpath.join(now.strftime(self.directory_pattern), stored_name)
        blob = self.storage.put(path, content)

        try:
            file = File(
                name=(name or "").strip() or original_name,
                extension=extension,
                url=blob.url,
                disk=blob.disk,
                path=blob.path,
            )
            self.session.add(file)
            self.session.flush()
            self.session.execute(
                insert(approval_request_files).values(
                    approval_request_id=request_id,
                    file_id=file.id,
                    created_at=now,
                )
            )
        except Exception:
            self.storage.delete(blob.path)
            logger.warning(
                "approval_file_blob_discarded",
                extra={"approval_request_id": request_id, "disk": blob.disk},
                exc_info=True,
            )
            raise

        logger.info(
            "approval_file_attached",
            extra={
                "approval_request_id": request_id,
                "file_id": file.id,
                "disk": blob.disk,
                "size": len(content),
            },
        )
        return AttachedFile(
            id=file.id,
            name=file.name,
            extension=file.extension,
            url=file.url,
            path=file.path,
            disk=file.disk,
            attached_at=now,
        )

    def list_files(self, request_id: int) -> list[AttachedFile]:
        """Files linked to the request, most recently attached first."""
        if self.session.get(ApprovalRequestModel, request_id) is None:
            raise ApprovalNotFoundError(request_id)

        link = approval_request_files.c
        rows = self.session.execute(
            select(File, link.created_at)
            .join(approval_request_files, link.file_id == File.id)
            .where(link.approval_request_id == request_id)
            .order_by(link.created_at.desc(), File.id.desc())
        ).all()
        return [
            AttachedFile(
                id=file.id,
                name=file.name,
                extension=file.extension,
                url=file.url,
                path=file.path,
                disk=file.disk,
                attached_at=attached_at,
            )
            for file, attached_at in rows
        ]
