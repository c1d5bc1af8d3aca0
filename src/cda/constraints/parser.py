"""
cda — constraint document parser.

File: src/cda/constraints/parser.py

Purpose
- Turn the raw text of one constraint file into a validated ``ConstraintDocument``.

What should be included in this file
- Frontmatter extraction and scalar coercion.
- The order-strict section scanner.
- HEADER cross-validation against frontmatter.

Functional requirements
- Sections cannot be skipped, reordered, repeated, or left blank.
- Every failure is a ``BundleError`` naming the constraint id, or ``global`` when the
  id is not yet known.

Non-functional requirements
- Pure over the input text: the same text always yields the same document or error.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

from cda.constraints.model import (
    CONSTRAINT_SECTION_ORDER,
    SUPPORTED_SEVERITY,
    ConstraintDocument,
    ConstraintGroup,
    ConstraintHeader,
    ConstraintMeta,
)
from cda.errors import GLOBAL_CONSTRAINT_ID, BundleError

Scalar = str | int | bool

_BOM: Final[str] = "\ufeff"
_FRONTMATTER_RE: Final[re.Pattern[str]] = re.compile(
    r"\A---[ \t]*\r?\n(?P<frontmatter>.*?)\r?\n---[ \t]*(?:\r?\n|\Z)(?P<body>.*)\Z",
    flags=re.DOTALL,
)
_DIGITS_RE: Final[re.Pattern[str]] = re.compile(r"[0-9]+")
_LINE_SPLIT_RE: Final[re.Pattern[str]] = re.compile(r"\r?\n")
_SECTION_INDEX: Final[dict[str, int]] = {
    name: index for index, name in enumerate(CONSTRAINT_SECTION_ORDER)
}
_GROUP_VALUES: Final[frozenset[str]] = frozenset(group.value for group in ConstraintGroup)


@dataclass(slots=True)
class _SectionScan:
    expected_index: int = 0
    current: str | None = None
    buffers: dict[str, list[str]] = field(default_factory=dict)


def parse_constraint_text(
    text: str,
    *,
    source_path: Path | str = "<memory>",
) -> ConstraintDocument:
    """Parse and validate one constraint document."""

    path = Path(source_path)
    sanitized = text[1:] if text.startswith(_BOM) else text
    frontmatter, body = _extract_frontmatter(sanitized, path)

    constraint_id = _as_string(frontmatter.get("id"), "id", path, GLOBAL_CONSTRAINT_ID)
    name = _as_string(frontmatter.get("name"), "name", path, constraint_id)
    category = _as_string(frontmatter.get("category"), "category", path, constraint_id)
    severity = _as_string(frontmatter.get("severity"), "severity", path, constraint_id)
    enabled = _as_bool(frontmatter.get("enabled"), "enabled", path, constraint_id, default=True)
    optional = _as_bool(frontmatter.get("optional"), "optional", path, constraint_id, default=False)
    version = _as_int(frontmatter.get("version"), "version", path, constraint_id)
    if version < 1:
        raise BundleError(
            constraint_id, f"Expected positive integer 'version' in {path}.", path=path
        )
    group = _as_group(frontmatter.get("group"), path, constraint_id)

    sections = extract_sections(body, constraint_id=constraint_id, source_path=path)
    header_fields = parse_key_value_block(
        sections["HEADER"], constraint_id=constraint_id, source_path=path, label="HEADER"
    )
    header = ConstraintHeader(
        constraint_id=_as_string(
            header_fields.get("constraint_id"), "constraint_id", path, constraint_id
        ),
        severity=_as_string(header_fields.get("severity"), "severity", path, constraint_id),
        enforcement_order=_as_int(
            header_fields.get("enforcement_order"), "enforcement_order", path, constraint_id
        ),
    )

    if header.constraint_id != constraint_id:
        raise BundleError(
            constraint_id,
            f"Frontmatter id '{constraint_id}' does not match HEADER constraint_id "
            f"'{header.constraint_id}'.",
            path=path,
        )
    if header.severity != severity:
        raise BundleError(
            constraint_id,
            f"Frontmatter severity '{severity}' does not match HEADER severity "
            f"'{header.severity}'.",
            path=path,
        )
    if severity != SUPPORTED_SEVERITY:
        raise BundleError(
            constraint_id,
            f"Unsupported severity '{severity}' in {path}; only '{SUPPORTED_SEVERITY}' allowed.",
            path=path,
        )

    meta = ConstraintMeta(
        id=constraint_id,
        name=name,
        category=category,
        version=version,
        enforcement_order=header.enforcement_order,
        enabled=enabled,
        optional=optional,
        is_active=enabled,
        group=group,
    )
    return ConstraintDocument(source_path=path, meta=meta, header=header, sections=sections)


def extract_sections(body: str, *, constraint_id: str, source_path: Path) -> dict[str, str]:
    """Split ``body`` into the fixed ordered sections, enforcing order and presence."""

    scan = _SectionScan()
    for line in _LINE_SPLIT_RE.split(body):
        trimmed = line.strip()
        found = _SECTION_INDEX.get(trimmed)

        if found is not None:
            if scan.expected_index >= len(CONSTRAINT_SECTION_ORDER):
                raise BundleError(
                    constraint_id,
                    f"Section '{trimmed}' repeated after "
                    f"'{CONSTRAINT_SECTION_ORDER[-1]}' in {source_path}.",
                    path=source_path,
                )
            if found != scan.expected_index:
                expected = CONSTRAINT_SECTION_ORDER[scan.expected_index]
                raise BundleError(
                    constraint_id,
                    f"Section '{expected}' missing before '{trimmed}' in {source_path}.",
                    path=source_path,
                )
            scan.current = trimmed
            scan.expected_index += 1
            scan.buffers[trimmed] = []
            continue

        if scan.current is None:
            if not trimmed:
                continue
            raise BundleError(
                constraint_id,
                f"Unexpected content before first section in {source_path}: '{line}'",
                path=source_path,
            )

        scan.buffers[scan.current].append(line)

    if scan.expected_index != len(CONSTRAINT_SECTION_ORDER):
        missing = CONSTRAINT_SECTION_ORDER[scan.expected_index]
        raise BundleError(
            constraint_id,
            f"Missing section '{missing}' in {source_path}.",
            path=source_path,
        )

    sections: dict[str, str] = {}
    for section_name in CONSTRAINT_SECTION_ORDER:
        content = "\n".join(scan.buffers[section_name]).strip()
        if not content:
            raise BundleError(
                constraint_id,
                f"Section '{section_name}' is empty in {source_path}.",
                path=source_path,
            )
        sections[section_name] = content
    return sections


def parse_key_value_block(
    block: str,
    *,
    constraint_id: str,
    source_path: Path,
    label: str,
) -> dict[str, Scalar]:
    """Parse ``key: value`` lines with scalar coercion; blank lines are ignored."""

    data: dict[str, Scalar] = {}
    for raw_line in _LINE_SPLIT_RE.split(block):
        line = raw_line.strip()
        if not line:
            continue
        key, separator, value = line.partition(":")
        key = key.strip()
        if not key or not separator:
            raise BundleError(
                constraint_id,
                f"Invalid key-value pair '{line}' in {label} ({source_path}).",
                path=source_path,
            )
        data[key] = coerce_scalar(value.strip())
    return data


def coerce_scalar(value: str) -> Scalar:
    """Pure-digit strings become ints, ``true``/``false`` become bools."""

    if _DIGITS_RE.fullmatch(value):
        return int(value)
    if value == "true":
        return True
    if value == "false":
        return False
    return value


def _extract_frontmatter(content: str, path: Path) -> tuple[dict[str, Scalar], str]:
    match = _FRONTMATTER_RE.match(content)
    if match is None:
        raise BundleError(
            GLOBAL_CONSTRAINT_ID,
            f"File {path} is missing YAML frontmatter.",
            path=path,
        )

    data: dict[str, Scalar] = {}
    for raw_line in _LINE_SPLIT_RE.split(match.group("frontmatter")):
        line = raw_line.strip()
        if not line:
            continue
        key, separator, value = line.partition(":")
        key = key.strip()
        if not key or not separator:
            raise BundleError(
                GLOBAL_CONSTRAINT_ID,
                f"Invalid frontmatter line '{line}' in {path}.",
                path=path,
            )
        data[key] = coerce_scalar(value.strip())
    return data, match.group("body")


def _as_string(value: object, key: str, path: Path, constraint_id: str) -> str:
    if isinstance(value, str) and value:
        return value
    raise BundleError(constraint_id, f"Expected string '{key}' in {path}.", path=path)


def _as_bool(
    value: object,
    key: str,
    path: Path,
    constraint_id: str,
    *,
    default: bool,
) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return default
    raise BundleError(constraint_id, f"Expected boolean '{key}' in {path}.", path=path)


def _as_int(value: object, key: str, path: Path, constraint_id: str) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    raise BundleError(constraint_id, f"Expected numeric '{key}' in {path}.", path=path)


def _as_group(value: object, path: Path, constraint_id: str) -> ConstraintGroup:
    if value is None:
        return ConstraintGroup.CORE
    if isinstance(value, str) and value in _GROUP_VALUES:
        return ConstraintGroup(value)
    allowed = ", ".join(group.value for group in ConstraintGroup)
    raise BundleError(
        constraint_id,
        f"Expected 'group' to be one of: {allowed} in {path}.",
        path=path,
    )


__all__ = [
    "coerce_scalar",
    "extract_sections",
    "parse_constraint_text",
    "parse_key_value_block",
]
