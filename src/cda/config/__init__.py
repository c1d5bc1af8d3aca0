"""
cda config package public API.

File: src/cda/config/__init__.py

Purpose
- Export project config loading and the validated ``ProjectConfig`` type.

Functional requirements
- Support loading from ``cda.config.json`` + ``CDA_`` env overrides.
- Fail fast with ``ConfigError`` naming the offending key path.
"""

from cda.config.loader import (
    BUNDLED_CONSTRAINTS_NAME,
    ENV_PREFIX,
    PROJECT_CONFIG_FILENAME,
    ProjectConfig,
    dump_project_config,
    load_project_config,
    normalize_project_config,
)

__all__ = [
    "BUNDLED_CONSTRAINTS_NAME",
    "ENV_PREFIX",
    "PROJECT_CONFIG_FILENAME",
    "ProjectConfig",
    "dump_project_config",
    "load_project_config",
    "normalize_project_config",
]
