"""
cda — project-level constraint overrides.

File: src/cda/constraints/overrides.py

Purpose
- Merge project enable/disable decisions onto bundle defaults.
- Derive the per-constraint configuration state shown by interactive tooling and
  compute the minimal override map back from an edited state.

Functional requirements
- Unknown constraint ids and non-boolean ``enabled`` values are configuration errors.
- Validation completes before any document is produced: a failed resolution leaves
  the caller's documents exactly as they were.
- Overrides may disable non-optional constraints; ``optional`` only informs tooling.

Non-functional requirements
- Pure transforms; documents are never mutated in place.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from cda.constraints.model import ConstraintDocument, ConstraintGroup
from cda.errors import ConfigError

OVERRIDES_KEY = "constraint_overrides"


@dataclass(frozen=True, slots=True)
class ConstraintOverride:
    """One project-level decision for a single constraint."""

    enabled: bool

    def to_dict(self) -> dict[str, bool]:
        return {"enabled": self.enabled}


ConstraintOverrides = Mapping[str, ConstraintOverride]


@dataclass(frozen=True, slots=True)
class ConfigConstraintState:
    """Effective enablement of one constraint as presented for configuration."""

    id: str
    name: str
    category: str
    group: ConstraintGroup
    optional: bool
    bundle_enabled: bool
    effective_enabled: bool
    toggleable: bool = True


def normalize_constraint_overrides(
    value: object,
    *,
    source: Path | None = None,
) -> dict[str, ConstraintOverride]:
    """Validate a raw ``{id: {"enabled": bool}}`` payload.

    ``None`` is treated as "no overrides". Already-typed ``ConstraintOverride`` values
    pass through unchanged.
    """

    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(OVERRIDES_KEY, "must be an object.", path=source)

    overrides: dict[str, ConstraintOverride] = {}
    for constraint_id, raw_override in value.items():
        key_path = f"{OVERRIDES_KEY}.{constraint_id}"
        if not isinstance(constraint_id, str) or not constraint_id:
            raise ConfigError(key_path, "must use non-empty string keys.", path=source)
        if isinstance(raw_override, ConstraintOverride):
            if not isinstance(raw_override.enabled, bool):
                raise ConfigError(f"{key_path}.enabled", "must be a boolean.", path=source)
            overrides[constraint_id] = raw_override
            continue
        if not isinstance(raw_override, Mapping):
            raise ConfigError(key_path, "must be an object.", path=source)
        enabled = raw_override.get("enabled")
        if not isinstance(enabled, bool):
            raise ConfigError(f"{key_path}.enabled", "must be a boolean.", path=source)
        overrides[constraint_id] = ConstraintOverride(enabled=enabled)
    return overrides


def resolve_overrides(
    documents: Sequence[ConstraintDocument],
    overrides: Mapping[str, object] | None = None,
) -> list[ConstraintDocument]:
    """Return new documents whose ``meta.is_active`` reflects ``overrides``.

    Documents without an override keep ``is_active == meta.enabled``. Input order is
    preserved.
    """

    normalized = normalize_constraint_overrides(overrides)
    known_ids = {doc.meta.id for doc in documents}
    for constraint_id in normalized:
        if constraint_id not in known_ids:
            raise ConfigError(
                f"{OVERRIDES_KEY}.{constraint_id}",
                f"references unknown constraint '{constraint_id}'.",
            )

    resolved: list[ConstraintDocument] = []
    for doc in documents:
        override = normalized.get(doc.meta.id)
        is_active = override.enabled if override is not None else doc.meta.enabled
        if is_active == doc.meta.is_active:
            resolved.append(doc)
            continue
        meta = dataclasses.replace(doc.meta, is_active=is_active)
        resolved.append(dataclasses.replace(doc, meta=meta))
    return resolved


def partition_constraints(
    documents: Iterable[ConstraintDocument],
) -> tuple[list[ConstraintDocument], list[ConstraintDocument]]:
    """Split into ``(active, disabled)`` preserving relative order."""

    active: list[ConstraintDocument] = []
    disabled: list[ConstraintDocument] = []
    for doc in documents:
        (active if doc.meta.is_active else disabled).append(doc)
    return active, disabled


def build_config_constraint_state(
    documents: Sequence[ConstraintDocument],
    overrides: Mapping[str, object] | None = None,
) -> list[ConfigConstraintState]:
    """Configuration view sorted by ``(group, enforcement_order, id)``."""

    normalized = normalize_constraint_overrides(overrides)
    ordered = sorted(
        documents,
        key=lambda doc: (doc.meta.group.value, doc.meta.enforcement_order, doc.meta.id),
    )

    states: list[ConfigConstraintState] = []
    for doc in ordered:
        override = normalized.get(doc.meta.id)
        states.append(
            ConfigConstraintState(
                id=doc.meta.id,
                name=doc.meta.name,
                category=doc.meta.category,
                group=doc.meta.group,
                optional=doc.meta.optional,
                bundle_enabled=doc.meta.enabled,
                effective_enabled=(
                    override.enabled if override is not None else doc.meta.enabled
                ),
            )
        )
    return states


def compute_overrides_from_state(
    documents: Sequence[ConstraintDocument],
    states: Iterable[ConfigConstraintState],
) -> dict[str, ConstraintOverride]:
    """Minimal override map: only constraints whose state differs from the bundle."""

    lookup = {doc.meta.id: doc for doc in documents}
    seen: set[str] = set()
    overrides: dict[str, ConstraintOverride] = {}

    for state in states:
        key_path = f"{OVERRIDES_KEY}.{state.id}"
        if state.id in seen:
            raise ConfigError(key_path, "appears multiple times in config state.")
        seen.add(state.id)

        doc = lookup.get(state.id)
        if doc is None:
            raise ConfigError(key_path, f"references unknown constraint '{state.id}'.")
        if state.effective_enabled != doc.meta.enabled:
            overrides[state.id] = ConstraintOverride(enabled=state.effective_enabled)
    return overrides


def overrides_to_dict(overrides: ConstraintOverrides) -> dict[str, dict[str, bool]]:
    """JSON-ready form of an override map, keys sorted."""

    return {key: overrides[key].to_dict() for key in sorted(overrides)}


__all__ = [
    "ConfigConstraintState",
    "ConstraintOverride",
    "ConstraintOverrides",
    "OVERRIDES_KEY",
    "build_config_constraint_state",
    "compute_overrides_from_state",
    "normalize_constraint_overrides",
    "overrides_to_dict",
    "partition_constraints",
    "resolve_overrides",
]
