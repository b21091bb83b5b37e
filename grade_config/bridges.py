"""
Config -> Kernel Bridges.

Functions that convert a GradeConfig into kernel-compatible inputs.  They
live in grade_config because the kernel must NEVER import grade_config.

Usage:
    from grade_config.bridges import build_action_settings, load_action_class

    config = get_active_config()
    settings = build_action_settings(config)
"""

from __future__ import annotations

import importlib

from grade_config.schema import GradeConfig
from grade_kernel.actions.base import ActionSettings


def build_action_settings(config: GradeConfig) -> ActionSettings:
    """Handler defaults taken from the academic and approval sections."""
    return ActionSettings(
        active_state_name=config.academic.active_state_name,
        auto_phase_name=config.academic.auto_phase_name,
        project_in_progress_status=config.academic.project_in_progress_status,
        committee_title=config.approval.committee_title,
        committee_description=config.approval.committee_description,
    )


def load_action_class(reference: str) -> type:
    """
    Import the class named by a ``module:ClassName`` reference.

    Raises:
        ImportError: The module cannot be imported.
        AttributeError: The module has no such attribute.
        TypeError: The attribute is not a class.
    """
    module_name, _, attr = reference.partition(":")
    module = importlib.import_module(module_name)
    obj = getattr(module, attr)
    if not isinstance(obj, type):
        raise TypeError(f"{reference} is not a class")
    return obj
