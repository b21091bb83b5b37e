"""
grade_services -- Package init and public API.

Responsibility:
    Composition root and external collaborators for the grade kernel: the
    ApprovalWorkflow that wires services together, the local blob storage,
    and the database-backed user directory.

Architecture position:
    Services -- top layer.

    Dependency direction:
        grade_services/ -> grade_config/, grade_kernel/  (allowed)
        grade_config/   -> grade_kernel/                 (allowed)
        grade_kernel/   -> grade_config/, grade_services/ (FORBIDDEN)
"""

from grade_services.storage import LocalBlobStorage
from grade_services.user_directory import DatabaseUserDirectory, StaticUserDirectory
from grade_services.workflow import ApprovalWorkflow

__all__ = [
    "ApprovalWorkflow",
    "DatabaseUserDirectory",
    "LocalBlobStorage",
    "StaticUserDirectory",
]
