"""
cda — constraint document schema.

File: src/cda/constraints/model.py

Purpose
- Immutable value objects for one parsed constraint document.

What should be included in this file
- The fixed, ordered section enumeration every document must follow.
- Frontmatter metadata, the redundant HEADER block, and the section mapping.

Non-functional requirements
- Documents are frozen; override resolution produces new instances.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from types import MappingProxyType
from typing import Final, Literal

CONSTRAINT_SECTION_ORDER: Final[tuple[str, ...]] = (
    "HEADER",
    "PURPOSE",
    "SCOPE",
    "DEFINITIONS",
    "FORBIDDEN",
    "ALLOWED",
    "REQUIRED DATA COLLECTION",
    "VALIDATION ALGORITHM (PSEUDOCODE)",
    "REPORTING CONTRACT",
    "FIX SEQUENCE (STRICT)",
    "REVALIDATION LOOP",
    "SUCCESS CRITERIA (MUST)",
    "FAILURE HANDLING",
    "COMMON MISTAKES",
    "POST-FIX ASSERTIONS",
    "FINAL REPORT SAMPLE",
)

SUPPORTED_SEVERITY: Final[str] = "error"


class ConstraintGroup(StrEnum):
    """Secondary organization used when presenting constraints for configuration."""

    CORE = "core"
    PATTERNS = "patterns"
    QUALITY = "quality"
    NAMING = "naming"


@dataclass(frozen=True, slots=True)
class ConstraintMeta:
    """Frontmatter metadata plus the derived active flag."""

    id: str
    name: str
    category: str
    version: int
    enforcement_order: int
    severity: Literal["error"] = "error"
    enabled: bool = True
    optional: bool = False
    is_active: bool = True
    group: ConstraintGroup = ConstraintGroup.CORE

    def sort_key(self) -> tuple[int, str]:
        return (self.enforcement_order, self.id)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "severity": self.severity,
            "enabled": self.enabled,
            "optional": self.optional,
            "isActive": self.is_active,
            "version": self.version,
            "enforcementOrder": self.enforcement_order,
            "group": self.group.value,
        }


@dataclass(frozen=True, slots=True)
class ConstraintHeader:
    """Cross-check block parsed from the HEADER section body."""

    constraint_id: str
    severity: str
    enforcement_order: int


@dataclass(frozen=True, slots=True)
class ConstraintDocument:
    """One fully validated constraint file."""

    source_path: Path
    meta: ConstraintMeta
    header: ConstraintHeader
    sections: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        missing = [name for name in CONSTRAINT_SECTION_ORDER if not self.sections.get(name)]
        if missing:
            raise ValueError(f"ConstraintDocument.sections missing {missing}")
        ordered = {name: self.sections[name] for name in CONSTRAINT_SECTION_ORDER}
        object.__setattr__(self, "sections", MappingProxyType(ordered))

    @property
    def id(self) -> str:
        return self.meta.id

    def section(self, name: str) -> str:
        return self.sections[name]


__all__ = [
    "CONSTRAINT_SECTION_ORDER",
    "SUPPORTED_SEVERITY",
    "ConstraintDocument",
    "ConstraintGroup",
    "ConstraintHeader",
    "ConstraintMeta",
]
