"""
cda — project config loader.

File: src/cda/config/loader.py

Purpose
- Load ``cda.config.json`` from a project root and validate it into ``ProjectConfig``.

What should be included in this file
- Precedence logic: env (CDA_) > file.
- JSON loading, with ``.yaml``/``.yml`` paths accepted via PyYAML ``safe_load``.
- Override payload validation shared with the constraint resolver.
- Resolution of the configured constraint source relative to the config file.

Functional requirements
- Every validation failure is a ``ConfigError`` naming the offending key path.
- A missing file is an error only when the caller requires a config.

Non-functional requirements
- Keep loading deterministic and reproducible.
"""

from __future__ import annotations

import dataclasses
import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final

import yaml

from cda.constraints.loader import BUNDLED_CONSTRAINTS_DIR
from cda.constraints.overrides import (
    OVERRIDES_KEY,
    ConstraintOverride,
    normalize_constraint_overrides,
    overrides_to_dict,
)
from cda.errors import ConfigError

PROJECT_CONFIG_FILENAME: Final[str] = "cda.config.json"
ENV_PREFIX: Final[str] = "CDA_"
BUNDLED_CONSTRAINTS_NAME: Final[str] = "core"
ROOT_KEY_PATH: Final[str] = "<root>"

_YAML_SUFFIXES: Final[frozenset[str]] = frozenset({".yaml", ".yml"})


@dataclass(frozen=True, slots=True)
class ProjectConfig:
    """Validated project configuration."""

    path: Path
    version: int
    constraints: str
    constraint_overrides: Mapping[str, ConstraintOverride] = field(default_factory=dict)
    ignored_paths: tuple[str, ...] | None = None

    def constraints_dir(self, base: Path | str | None = None) -> Path:
        """Directory holding the configured constraint set.

        ``core`` names the bundled set; anything else is a directory, resolved
        against ``base`` (default: the config file's directory) when relative.
        """

        if self.constraints == BUNDLED_CONSTRAINTS_NAME:
            return BUNDLED_CONSTRAINTS_DIR
        candidate = Path(os.path.expandvars(self.constraints)).expanduser()
        if candidate.is_absolute():
            return candidate
        root = Path(base) if base is not None else self.path.parent
        return Path(os.path.normpath(str(root / candidate)))

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "version": self.version,
            "constraints": self.constraints,
            OVERRIDES_KEY: overrides_to_dict(self.constraint_overrides),
        }
        if self.ignored_paths is not None:
            payload["ignored_paths"] = list(self.ignored_paths)
        return payload


def load_project_config(
    cwd: Path | str | None = None,
    *,
    path: Path | str | None = None,
    required: bool = True,
    environ: Mapping[str, str] | None = None,
) -> ProjectConfig | None:
    """Load the project config with precedence env > file.

    ``path`` selects an explicit file; otherwise ``cda.config.json`` in ``cwd``.
    Returns ``None`` only when the file is absent and ``required`` is false.
    """

    config_path = _resolve_config_path(cwd, path)
    env_map = dict(os.environ if environ is None else environ)

    if not config_path.exists():
        if required:
            raise ConfigError(
                ROOT_KEY_PATH, f"project config not found at {config_path}.", path=config_path
            )
        return None

    config = normalize_project_config(_load_config_file(config_path), config_path)
    env_constraints = env_map.get(f"{ENV_PREFIX}CONSTRAINTS")
    if env_constraints is not None:
        config = _apply_env_constraints(config, env_constraints)
    return config


def normalize_project_config(value: object, config_path: Path) -> ProjectConfig:
    """Validate an already-parsed config payload."""

    if not isinstance(value, Mapping):
        raise ConfigError(ROOT_KEY_PATH, "must contain an object.", path=config_path)

    return ProjectConfig(
        path=config_path,
        version=_as_positive_int(value.get("version"), "version", config_path),
        constraints=_as_non_empty_string(value.get("constraints"), "constraints", config_path),
        constraint_overrides=normalize_constraint_overrides(
            value.get(OVERRIDES_KEY), source=config_path
        ),
        ignored_paths=_as_ignored_paths(value.get("ignored_paths"), config_path),
    )


def dump_project_config(config: ProjectConfig) -> str:
    """Return the config as JSON text in the on-disk layout."""

    return json.dumps(config.to_dict(), indent=2, ensure_ascii=False) + "\n"


def _resolve_config_path(cwd: Path | str | None, path: Path | str | None) -> Path:
    if path is not None:
        return Path(path).expanduser().resolve()
    root = Path(cwd) if cwd is not None else Path.cwd()
    return (root / PROJECT_CONFIG_FILENAME).resolve()


def _load_config_file(path: Path) -> object:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(ROOT_KEY_PATH, f"unable to read file: {exc}", path=path) from exc

    if path.suffix.lower() in _YAML_SUFFIXES:
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigError(ROOT_KEY_PATH, f"invalid YAML: {exc}", path=path) from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigError(ROOT_KEY_PATH, f"invalid JSON: {exc}", path=path) from exc


def _apply_env_constraints(config: ProjectConfig, raw: str) -> ProjectConfig:
    value = raw.strip()
    if not value:
        raise ConfigError(
            f"{ENV_PREFIX}CONSTRAINTS -> constraints", "must be a non-empty string."
        )
    return dataclasses.replace(config, constraints=value)


def _as_positive_int(value: object, key: str, path: Path) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and value > 0:
        return value
    raise ConfigError(key, "must be a positive integer.", path=path)


def _as_non_empty_string(value: object, key: str, path: Path) -> str:
    if isinstance(value, str) and value:
        return value
    raise ConfigError(key, "must be a non-empty string.", path=path)


def _as_ignored_paths(value: object, path: Path) -> tuple[str, ...] | None:
    if value is None:
        return None
    if not isinstance(value, list):
        raise ConfigError("ignored_paths", "must be a list of strings.", path=path)
    entries: list[str] = []
    for index, item in enumerate(value):
        if not isinstance(item, str) or not item.strip():
            raise ConfigError(f"ignored_paths[{index}]", "must be a non-empty string.", path=path)
        entries.append(item.strip())
    return tuple(entries)


__all__ = [
    "BUNDLED_CONSTRAINTS_NAME",
    "ENV_PREFIX",
    "PROJECT_CONFIG_FILENAME",
    "ProjectConfig",
    "dump_project_config",
    "load_project_config",
    "normalize_project_config",
]
