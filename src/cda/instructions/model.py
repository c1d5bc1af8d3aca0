"""Instruction package value objects and their camelCase wire payloads."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Literal

BATCH_REPORT_KIND: Final[str] = "cda_validation_result"
SINGLE_REPORT_KIND: Final[str] = "cda_single_constraint_validation_result"
INITIAL_EXECUTION_STATE: Final[str] = "unvalidated"

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]


@dataclass(frozen=True, slots=True)
class InstructionConstraintBlock:
    """Structured distillate of one constraint document."""

    constraint_id: str
    enforcement_order: int
    objective: str
    detection_steps: tuple[str, ...]
    report_fields: tuple[str, ...]
    pass_criteria: str
    fix_strategy: str
    self_verification_checklist: tuple[str, ...]

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "constraintId": self.constraint_id,
            "enforcementOrder": self.enforcement_order,
            "objective": self.objective,
            "detectionSteps": list(self.detection_steps),
            "reportFields": list(self.report_fields),
            "passCriteria": self.pass_criteria,
            "fixStrategy": self.fix_strategy,
            "selfVerificationChecklist": list(self.self_verification_checklist),
        }


@dataclass(frozen=True, slots=True)
class ReportTemplate:
    """Zeroed report skeleton an executing agent overwrites after real work.

    ``constraint_id`` is set only for single-constraint templates; ``summary`` is
    emitted only for batch templates.
    """

    report_kind: str
    run_id: str
    constraint_blocks_received: int
    constraint_id: str | None = None
    constraints_evaluated: int = 0

    @property
    def is_batch(self) -> bool:
        return self.constraint_id is None

    def to_dict(self) -> dict[str, JSONValue]:
        payload: dict[str, JSONValue] = {
            "reportKind": self.report_kind,
            "runId": self.run_id,
        }
        if self.constraint_id is not None:
            payload["constraintId"] = self.constraint_id
        payload.update(
            {
                "executionState": INITIAL_EXECUTION_STATE,
                "analysisPerformed": False,
                "enumeratedFilesCount": 0,
                "constraintBlocksReceived": self.constraint_blocks_received,
            }
        )
        if self.is_batch:
            payload["summary"] = {
                "analyzedFiles": 0,
                "constraintsEvaluated": self.constraints_evaluated,
                "totalViolations": 0,
            }
        payload.update(
            {
                "violations": [],
                "fixesApplied": [],
                "postFixStatus": {"revalidated": False, "remainingViolations": 0},
                "initialViolationCount": 0,
                "remainingViolationCount": 0,
                "revalidationAttemptsUsed": 0,
                "successConditions": {
                    "allConstraintsEvaluated": False,
                    "noRemainingViolations": False,
                },
                "selfAudit": {
                    "allConstraintsPresent": False,
                    "allRequiredFieldsPopulated": False,
                    "revalidationAttemptsDocumented": False,
                    "schemaConformance": False,
                },
                "agentExecutionSignature": None,
                "completionTimestamp": None,
                "status": None,
            }
        )
        return payload


@dataclass(frozen=True, slots=True)
class BatchInstructionPackage:
    run_id: str
    recommended_order: tuple[str, ...]
    ignored_paths: tuple[str, ...]
    constraints: tuple[InstructionConstraintBlock, ...]
    report_template: ReportTemplate
    mode: Literal["batch"] = "batch"

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "runId": self.run_id,
            "mode": self.mode,
            "recommendedOrder": list(self.recommended_order),
            "ignoredPaths": list(self.ignored_paths),
            "constraints": [block.to_dict() for block in self.constraints],
            "reportTemplate": self.report_template.to_dict(),
        }


@dataclass(frozen=True, slots=True)
class SingleInstructionPackage:
    run_id: str
    constraint: InstructionConstraintBlock
    report_template: ReportTemplate
    mode: Literal["single"] = "single"

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "runId": self.run_id,
            "mode": self.mode,
            "constraint": self.constraint.to_dict(),
            "reportTemplate": self.report_template.to_dict(),
        }


InstructionPackage = BatchInstructionPackage | SingleInstructionPackage


__all__ = [
    "BATCH_REPORT_KIND",
    "BatchInstructionPackage",
    "INITIAL_EXECUTION_STATE",
    "InstructionConstraintBlock",
    "InstructionPackage",
    "JSONValue",
    "ReportTemplate",
    "SINGLE_REPORT_KIND",
    "SingleInstructionPackage",
]
