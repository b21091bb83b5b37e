"""Domain models for the grade kernel."""

from grade_kernel.models.academic import AcademicPeriod, AcademicPeriodState, Phase
from grade_kernel.models.approval import ApprovalRecipientModel, ApprovalRequestModel
from grade_kernel.models.file import File, approval_request_files
from grade_kernel.models.project import (
    GroupMember,
    Project,
    ProjectGroup,
    ProjectPosition,
    ProjectStaff,
    ProjectStatus,
)
from grade_kernel.models.proposal import Proposal
from grade_kernel.models.user import User

__all__ = [
    "AcademicPeriod",
    "AcademicPeriodState",
    "Phase",
    "ApprovalRequestModel",
    "ApprovalRecipientModel",
    "File",
    "approval_request_files",
    "GroupMember",
    "Project",
    "ProjectGroup",
    "ProjectPosition",
    "ProjectStaff",
    "ProjectStatus",
    "Proposal",
    "User",
]
