"""
grade_config -- single public entrypoint for workflow configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or environment variables directly.

Architecture position:
    Configuration.  This package sits above ``grade_kernel`` and below
    ``grade_services``.  The kernel MUST NEVER import from
    ``grade_config``; ``grade_config.bridges`` translates a loaded
    configuration into kernel inputs.

Environment:
    GRADE_CONFIG_PATH   YAML file to load instead of ``sets/default.yaml``.
    DATABASE_URL        Replaces ``database.url`` from the file.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``ValueError`` / ``KeyError`` -- schema or structural problems.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from grade_config.loader import load_config_file
from grade_config.schema import GradeConfig

_logger = logging.getLogger("grade_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"

CONFIG_PATH_ENV = "GRADE_CONFIG_PATH"
DATABASE_URL_ENV = "DATABASE_URL"


def get_active_config(config_path: Path | str | None = None) -> GradeConfig:
    """The ONLY public configuration entrypoint.

    Resolution order for the file: ``config_path``, then
    ``$GRADE_CONFIG_PATH``, then the bundled default set.  ``$DATABASE_URL``
    always wins over the file's database URL.

    Guarantees:
        - A ``grade_config_loaded`` log entry is emitted on every
          successful call.
        - No caching: each call re-reads the file.
    """
    path = Path(config_path or os.environ.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH)
    config = load_config_file(path, database_url=os.environ.get(DATABASE_URL_ENV))

    _logger.info(
        "grade_config_loaded",
        extra={
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "path": str(path),
            "action_count": len(config.approval.actions),
        },
    )
    return config


__all__ = ["GradeConfig", "get_active_config", "DEFAULT_CONFIG_PATH"]
