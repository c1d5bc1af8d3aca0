"""Deterministic assembly of batch and single-constraint instruction packages."""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Final

from cda.constraints.loader import sort_constraints
from cda.constraints.model import ConstraintDocument
from cda.instructions.extractors import build_instruction_block
from cda.instructions.model import (
    BATCH_REPORT_KIND,
    SINGLE_REPORT_KIND,
    BatchInstructionPackage,
    InstructionPackage,
    ReportTemplate,
    SingleInstructionPackage,
)

DEFAULT_IGNORED_PATHS: Final[tuple[str, ...]] = ("node_modules", "dist", "build", ".git")


def build_batch_package(
    run_id: str,
    constraints: Sequence[ConstraintDocument],
    ignored_paths: Sequence[str] | None = None,
) -> BatchInstructionPackage:
    """Package every document in ``(enforcement_order, id)`` order.

    The caller decides which documents are included; activity flags are not consulted.
    """

    ordered = sort_constraints(constraints)
    blocks = tuple(build_instruction_block(doc) for doc in ordered)
    return BatchInstructionPackage(
        run_id=run_id,
        recommended_order=tuple(doc.meta.id for doc in ordered),
        ignored_paths=tuple(ignored_paths) if ignored_paths is not None else DEFAULT_IGNORED_PATHS,
        constraints=blocks,
        report_template=ReportTemplate(
            report_kind=BATCH_REPORT_KIND,
            run_id=run_id,
            constraint_blocks_received=len(blocks),
            constraints_evaluated=len(blocks),
        ),
    )


def build_single_package(run_id: str, constraint: ConstraintDocument) -> SingleInstructionPackage:
    block = build_instruction_block(constraint)
    return SingleInstructionPackage(
        run_id=run_id,
        constraint=block,
        report_template=ReportTemplate(
            report_kind=SINGLE_REPORT_KIND,
            run_id=run_id,
            constraint_blocks_received=1,
            constraint_id=block.constraint_id,
        ),
    )


def serialize_package(package: InstructionPackage) -> str:
    """Stable JSON text; field order follows the wire layout, not alphabetical order."""

    return json.dumps(package.to_dict(), indent=2, ensure_ascii=False) + "\n"


__all__ = [
    "DEFAULT_IGNORED_PATHS",
    "build_batch_package",
    "build_single_package",
    "serialize_package",
]
