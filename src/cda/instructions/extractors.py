"""
cda — instruction block extraction.

File: src/cda/instructions/extractors.py

Purpose
- Mine the free-text sections of a validated constraint document for detection steps,
  report fields, pass criteria, fix strategy, and a self-verification checklist.

What should be included in this file
- A line classifier (blank / fence / bullet / text) shared by every list heuristic.
- List builders that merge unbulleted continuation lines into the previous item.
- The report-field declaration scanner, which is a second, narrower validation pass:
  a constraint that declares no report fields is a bundle error.

Non-functional requirements
- Pure and deterministic over a document's section text.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Final

from cda.constraints.model import ConstraintDocument
from cda.errors import BundleError
from cda.instructions.model import InstructionConstraintBlock

DEFAULT_FIX_STRATEGY: Final[str] = "Follow FIX SEQUENCE (STRICT)."
PASS_CRITERIA_SEPARATOR: Final[str] = "; "

_LINE_SPLIT_RE: Final[re.Pattern[str]] = re.compile(r"\r?\n")
_WHITESPACE_RE: Final[re.Pattern[str]] = re.compile(r"\s+")
_BULLET_RE: Final[re.Pattern[str]] = re.compile(r"^(?:[-*]|\d+\.)\s+(?P<text>.*)$")
_FENCE_PREFIX: Final[str] = "```"
_DETECTION_MARKER_RE: Final[re.Pattern[str]] = re.compile(r"^detection_steps:", re.IGNORECASE)
_REPORT_FIELDS_RE: Final[re.Pattern[str]] = re.compile(
    r"(?:keys|report_fields)[^:]*:\s*(?P<fields>.+)$", re.IGNORECASE
)
_FIELD_SPLIT_RE: Final[re.Pattern[str]] = re.compile(r"[,;]")


class LineKind(Enum):
    BLANK = "blank"
    FENCE = "fence"
    BULLET = "bullet"
    TEXT = "text"


@dataclass(frozen=True, slots=True)
class ClassifiedLine:
    kind: LineKind
    text: str


def classify_line(raw_line: str) -> ClassifiedLine:
    """Classify one line; ``text`` is the bullet payload for bullets, else the trimmed line."""

    line = raw_line.strip()
    if not line:
        return ClassifiedLine(LineKind.BLANK, "")
    if line.startswith(_FENCE_PREFIX):
        return ClassifiedLine(LineKind.FENCE, line)
    bullet = _BULLET_RE.match(line)
    if bullet is not None:
        return ClassifiedLine(LineKind.BULLET, bullet.group("text").strip())
    return ClassifiedLine(LineKind.TEXT, line)


def tokenize(section: str) -> Iterator[ClassifiedLine]:
    for raw_line in _LINE_SPLIT_RE.split(section):
        yield classify_line(raw_line)


def normalize_whitespace(value: str) -> str:
    return _WHITESPACE_RE.sub(" ", value).strip()


def build_list(
    lines: Iterable[ClassifiedLine],
    *,
    stop_at_fence: bool,
    leading_text_opens_item: bool,
) -> list[str]:
    """Fold classified lines into list items.

    Bullets open items; text lines extend the previous item with a single space. A text
    line before any bullet either opens an item or is dropped.
    """

    items: list[str] = []
    for line in lines:
        if line.kind is LineKind.BLANK:
            continue
        if line.kind is LineKind.FENCE and stop_at_fence:
            break
        if line.kind is LineKind.BULLET:
            items.append(line.text)
            continue
        if items:
            items[-1] = f"{items[-1]} {line.text}"
        elif leading_text_opens_item:
            items.append(line.text)
    return items


def extract_detection_steps(section: str) -> list[str]:
    """Items listed after a ``detection_steps:`` marker, up to the next code fence.

    Without a marker (or with an empty list after it) the whole normalized section is
    the single step.
    """

    lines = iter(tokenize(section))
    for line in lines:
        if line.kind is LineKind.TEXT and _DETECTION_MARKER_RE.match(line.text):
            steps = build_list(lines, stop_at_fence=True, leading_text_opens_item=False)
            if steps:
                return steps
            break
    return [normalize_whitespace(section)]


def extract_report_fields(section: str, constraint_id: str) -> list[str]:
    """Field names from the first ``keys:`` / ``report_fields:`` declaration line."""

    for raw_line in _LINE_SPLIT_RE.split(section):
        line = raw_line.strip()
        if not line:
            continue
        match = _REPORT_FIELDS_RE.search(line)
        if match is None:
            continue
        fields = _split_field_declaration(match.group("fields"))
        if fields:
            return fields
    raise BundleError(
        constraint_id,
        f"REPORTING CONTRACT missing required keys definition for {constraint_id}.",
    )


def extract_bullet_list(section: str) -> list[str]:
    return build_list(tokenize(section), stop_at_fence=False, leading_text_opens_item=True)


def build_instruction_block(document: ConstraintDocument) -> InstructionConstraintBlock:
    """Distil one validated document into its instruction block."""

    success_criteria = extract_bullet_list(document.section("SUCCESS CRITERIA (MUST)"))
    fix_steps = extract_bullet_list(document.section("FIX SEQUENCE (STRICT)"))
    checklist = extract_bullet_list(document.section("POST-FIX ASSERTIONS"))

    return InstructionConstraintBlock(
        constraint_id=document.meta.id,
        enforcement_order=document.meta.enforcement_order,
        objective=normalize_whitespace(document.section("PURPOSE")),
        detection_steps=tuple(
            extract_detection_steps(document.section("VALIDATION ALGORITHM (PSEUDOCODE)"))
        ),
        report_fields=tuple(
            extract_report_fields(document.section("REPORTING CONTRACT"), document.meta.id)
        ),
        pass_criteria=PASS_CRITERIA_SEPARATOR.join(success_criteria),
        fix_strategy=fix_steps[0] if fix_steps else DEFAULT_FIX_STRATEGY,
        self_verification_checklist=tuple(checklist),
    )


def _split_field_declaration(raw: str) -> list[str]:
    remainder = raw.strip()
    bracket_index = remainder.find("]")
    if bracket_index != -1:
        remainder = remainder[:bracket_index]
    period_index = remainder.find(".")
    if period_index != -1:
        remainder = remainder[:period_index]
    remainder = remainder.removeprefix("[")
    return [token.strip() for token in _FIELD_SPLIT_RE.split(remainder) if token.strip()]


__all__ = [
    "ClassifiedLine",
    "DEFAULT_FIX_STRATEGY",
    "LineKind",
    "build_instruction_block",
    "build_list",
    "classify_line",
    "extract_bullet_list",
    "extract_detection_steps",
    "extract_report_fields",
    "normalize_whitespace",
    "tokenize",
]
