"""
GradeConfig schema.

Typed, frozen view of a configuration set.  YAML files are parsed into these
types by ``grade_config.loader``; the composition root and the bridges read
them.  Nothing here touches the filesystem or the environment.
"""

from __future__ import annotations

from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection settings handed to ``grade_kernel.db.engine``."""

    url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30


# ---------------------------------------------------------------------------
# Approval workflow
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ApprovalConfig:
    """Action registry map and committee request defaults.

    ``actions`` maps an action key to a ``"package.module:ClassName"``
    reference.
    """

    actions: dict[str, str] = field(default_factory=dict)
    committee_title: str = "Aprobación de propuesta estudiantil"
    committee_description: str = "El comité debe revisar y aprobar esta propuesta."


# ---------------------------------------------------------------------------
# Academic calendar
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AcademicConfig:
    """Reference-row names the proposal handlers look up or create."""

    active_state_name: str = "Activo"
    auto_phase_name: str = "Fase inicial automática"
    project_in_progress_status: str = "En proceso"


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StorageConfig:
    """Where approval attachments are written."""

    root: str = "storage/app/public"
    disk: str = "public"
    directory_pattern: str = "approval-requests/%Y/%m/%d"
    base_url: str = "/storage"


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GradeConfig:
    """A complete, loaded configuration set."""

    config_id: str
    version: int
    database: DatabaseConfig
    approval: ApprovalConfig
    academic: AcademicConfig = field(default_factory=AcademicConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    checksum: str = ""
