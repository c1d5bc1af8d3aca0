"""Shared builders for constraint document fixtures."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping

import pytest

from cda.constraints.model import CONSTRAINT_SECTION_ORDER

DEFAULT_SECTION_BODIES: dict[str, str] = {
    "PURPOSE": "Keep modules   honest\n  about their layer.",
    "VALIDATION ALGORITHM (PSEUDOCODE)": (
        "detection_steps:\n"
        "1. Enumerate source files\n"
        "   outside ignored paths.\n"
        "- Resolve every import.\n"
        "```\n"
        "- not a step\n"
        "```"
    ),
    "REPORTING CONTRACT": "report_fields: [constraint_id, file_path, line].",
    "FIX SEQUENCE (STRICT)": "1. Move the dependency behind an interface.\n2. Re-run detection.",
    "SUCCESS CRITERIA (MUST)": "- No forbidden imports remain.\n- Every file was scanned.",
    "POST-FIX ASSERTIONS": "- Detection reports zero violations.",
}


def render_constraint_text(
    constraint_id: str = "sample-rule",
    *,
    enforcement_order: int = 1,
    severity: str = "error",
    version: int | str = 1,
    enabled: bool | None = None,
    optional: bool | None = None,
    group: str | None = None,
    header_id: str | None = None,
    header_severity: str | None = None,
    sections: Mapping[str, str] | None = None,
    omit: Iterable[str] = (),
    section_order: Iterable[str] | None = None,
) -> str:
    """Render a well-formed constraint document, with targeted deviations."""

    frontmatter = [
        f"id: {constraint_id}",
        f"name: Sample rule {constraint_id}",
        "category: layering",
        f"severity: {severity}",
        f"version: {version}",
    ]
    if enabled is not None:
        frontmatter.append(f"enabled: {'true' if enabled else 'false'}")
    if optional is not None:
        frontmatter.append(f"optional: {'true' if optional else 'false'}")
    if group is not None:
        frontmatter.append(f"group: {group}")

    bodies = {
        name: f"{name.title()} details for {constraint_id}." for name in CONSTRAINT_SECTION_ORDER
    }
    bodies.update(DEFAULT_SECTION_BODIES)
    bodies["HEADER"] = (
        f"constraint_id: {header_id or constraint_id}\n"
        f"severity: {header_severity or severity}\n"
        f"enforcement_order: {enforcement_order}"
    )
    bodies.update(sections or {})

    skipped = set(omit)
    lines = ["---", *frontmatter, "---", ""]
    for name in section_order or CONSTRAINT_SECTION_ORDER:
        if name in skipped:
            continue
        lines.extend([name, bodies[name], ""])
    return "\n".join(lines)


@pytest.fixture(scope="session")
def constraint_text() -> Callable[..., str]:
    return render_constraint_text
