"""Selectors for the grade kernel (read side)."""

from grade_kernel.selectors.approval_selector import ApprovalSelector, recipients_label

__all__ = [
    "ApprovalSelector",
    "recipients_label",
]
