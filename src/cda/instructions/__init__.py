"""
cda — instruction packages.

Purpose
- Distil validated constraint documents into structured instruction blocks and
  assemble them, with deterministic ordering, into batch or single packages paired
  with zeroed report templates.

Non-functional requirements
- Pure: identical documents and run id always yield identical packages.
"""

from cda.instructions.assembler import (
    DEFAULT_IGNORED_PATHS,
    build_batch_package,
    build_single_package,
    serialize_package,
)
from cda.instructions.extractors import (
    build_instruction_block,
    extract_bullet_list,
    extract_detection_steps,
    extract_report_fields,
)
from cda.instructions.model import (
    BatchInstructionPackage,
    InstructionConstraintBlock,
    ReportTemplate,
    SingleInstructionPackage,
)

__all__ = [
    "BatchInstructionPackage",
    "DEFAULT_IGNORED_PATHS",
    "InstructionConstraintBlock",
    "ReportTemplate",
    "SingleInstructionPackage",
    "build_batch_package",
    "build_instruction_block",
    "build_single_package",
    "extract_bullet_list",
    "extract_detection_steps",
    "extract_report_fields",
    "serialize_package",
]
