"""
Configuration Loader (``grade_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the typed
``grade_config.schema`` dataclasses.  Callers use
``grade_config.get_active_config()``; tests may call ``load_config_file``
directly with a temporary file.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; there are no silent defaults for required fields
  (``config_id``, ``database.url``, ``approval.actions``).
* Every parsed object is a frozen dataclass from ``schema.py``.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the parsed
  document.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Wrong value types  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from grade_config.schema import (
    AcademicConfig,
    ApprovalConfig,
    DatabaseConfig,
    GradeConfig,
    StorageConfig,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top-level YAML value must be a mapping")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON form of a parsed document."""
    canonical = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ValueError(f"'{name}' section must be a mapping")
    return value


def _str(section: dict[str, Any], key: str, default: str) -> str:
    value = section.get(key, default)
    if not isinstance(value, str):
        raise ValueError(f"'{key}' must be a string, got {type(value).__name__}")
    return value


def parse_database(data: dict[str, Any], url_override: str | None = None) -> DatabaseConfig:
    url = url_override or data["url"]
    return DatabaseConfig(
        url=str(url),
        echo=bool(data.get("echo", False)),
        pool_size=int(data.get("pool_size", 20)),
        max_overflow=int(data.get("max_overflow", 10)),
        pool_timeout=int(data.get("pool_timeout", 30)),
    )


def parse_actions(data: Any) -> dict[str, str]:
    """
    Validate the action-key map.

    Every key and reference must be a non-empty string; references use the
    ``module:ClassName`` form.
    """
    if not isinstance(data, dict):
        raise ValueError("'approval.actions' must be a mapping of key -> 'module:Class'")
    actions: dict[str, str] = {}
    for key, ref in data.items():
        if not isinstance(key, str) or not key:
            raise ValueError(f"Invalid action key: {key!r}")
        if not isinstance(ref, str) or ref.count(":") != 1 or ref.startswith(":") or ref.endswith(":"):
            raise ValueError(f"Action '{key}': reference must be 'module:Class', got {ref!r}")
        actions[key] = ref
    return actions


def parse_approval(data: dict[str, Any]) -> ApprovalConfig:
    defaults = ApprovalConfig()
    return ApprovalConfig(
        actions=parse_actions(data["actions"]),
        committee_title=_str(data, "committee_title", defaults.committee_title),
        committee_description=_str(
            data, "committee_description", defaults.committee_description,
        ),
    )


def parse_academic(data: dict[str, Any]) -> AcademicConfig:
    defaults = AcademicConfig()
    return AcademicConfig(
        active_state_name=_str(data, "active_state_name", defaults.active_state_name),
        auto_phase_name=_str(data, "auto_phase_name", defaults.auto_phase_name),
        project_in_progress_status=_str(
            data, "project_in_progress_status", defaults.project_in_progress_status,
        ),
    )


def parse_storage(data: dict[str, Any]) -> StorageConfig:
    defaults = StorageConfig()
    return StorageConfig(
        root=_str(data, "root", defaults.root),
        disk=_str(data, "disk", defaults.disk),
        directory_pattern=_str(data, "directory_pattern", defaults.directory_pattern),
        base_url=_str(data, "base_url", defaults.base_url),
    )


def parse_config(data: dict[str, Any], database_url: str | None = None) -> GradeConfig:
    """
    Build a GradeConfig from a parsed YAML document.

    Args:
        data: The document.
        database_url: Replaces ``database.url`` when given.
    """
    return GradeConfig(
        config_id=str(data["config_id"]),
        version=int(data.get("version", 1)),
        database=parse_database(_section(data, "database"), database_url),
        approval=parse_approval(_section(data, "approval")),
        academic=parse_academic(_section(data, "academic")),
        storage=parse_storage(_section(data, "storage")),
        checksum=compute_checksum(data),
    )


def load_config_file(path: Path, database_url: str | None = None) -> GradeConfig:
    return parse_config(load_yaml_file(path), database_url)
