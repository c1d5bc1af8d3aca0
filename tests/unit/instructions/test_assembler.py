"""Unit tests for batch and single instruction package assembly."""

from __future__ import annotations

import json
from collections.abc import Callable

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from cda.constraints.model import ConstraintDocument
from cda.constraints.parser import parse_constraint_text
from cda.instructions.assembler import (
    DEFAULT_IGNORED_PATHS,
    build_batch_package,
    build_single_package,
    serialize_package,
)
from cda.instructions.model import BATCH_REPORT_KIND, SINGLE_REPORT_KIND

RenderFn = Callable[..., str]
RUN_ID = "2026-01-02T03:04:05.678Z-abc123"


def _documents(render: RenderFn) -> list[ConstraintDocument]:
    specs = [("gamma", 2), ("alpha", 2), ("omega", 1), ("beta", 5)]
    return [parse_constraint_text(render(cid, enforcement_order=order)) for cid, order in specs]


@pytest.mark.unit
def test_batch_package_orders_blocks_and_recommended_order(constraint_text: RenderFn) -> None:
    package = build_batch_package(RUN_ID, _documents(constraint_text))

    assert package.mode == "batch"
    assert package.run_id == RUN_ID
    assert package.recommended_order == ("omega", "alpha", "gamma", "beta")
    assert [block.constraint_id for block in package.constraints] == list(
        package.recommended_order
    )
    assert package.ignored_paths == DEFAULT_IGNORED_PATHS == (
        "node_modules",
        "dist",
        "build",
        ".git",
    )


@pytest.mark.unit
def test_batch_report_template_is_zeroed(constraint_text: RenderFn) -> None:
    package = build_batch_package(RUN_ID, _documents(constraint_text))

    template = package.report_template.to_dict()

    assert list(template) == [
        "reportKind",
        "runId",
        "executionState",
        "analysisPerformed",
        "enumeratedFilesCount",
        "constraintBlocksReceived",
        "summary",
        "violations",
        "fixesApplied",
        "postFixStatus",
        "initialViolationCount",
        "remainingViolationCount",
        "revalidationAttemptsUsed",
        "successConditions",
        "selfAudit",
        "agentExecutionSignature",
        "completionTimestamp",
        "status",
    ]
    assert template["reportKind"] == BATCH_REPORT_KIND
    assert template["runId"] == RUN_ID
    assert template["executionState"] == "unvalidated"
    assert template["analysisPerformed"] is False
    assert template["constraintBlocksReceived"] == 4
    assert template["summary"] == {
        "analyzedFiles": 0,
        "constraintsEvaluated": 4,
        "totalViolations": 0,
    }
    assert template["violations"] == []
    assert template["postFixStatus"] == {"revalidated": False, "remainingViolations": 0}
    assert template["selfAudit"] == {
        "allConstraintsPresent": False,
        "allRequiredFieldsPopulated": False,
        "revalidationAttemptsDocumented": False,
        "schemaConformance": False,
    }
    assert template["status"] is None


@pytest.mark.unit
def test_batch_includes_whatever_the_caller_passes(constraint_text: RenderFn) -> None:
    disabled = parse_constraint_text(constraint_text("dormant", enabled=False, optional=True))

    package = build_batch_package(RUN_ID, [disabled])

    assert package.recommended_order == ("dormant",)


@pytest.mark.unit
def test_batch_custom_ignored_paths(constraint_text: RenderFn) -> None:
    package = build_batch_package(
        RUN_ID, _documents(constraint_text), ignored_paths=["vendor", "out"]
    )

    assert package.ignored_paths == ("vendor", "out")
    assert package.to_dict()["ignoredPaths"] == ["vendor", "out"]


@pytest.mark.unit
def test_empty_batch() -> None:
    payload = build_batch_package(RUN_ID, []).to_dict()

    assert payload["constraints"] == []
    assert payload["recommendedOrder"] == []
    assert payload["reportTemplate"]["constraintBlocksReceived"] == 0  # type: ignore[index]


@pytest.mark.unit
def test_single_package_template(constraint_text: RenderFn) -> None:
    document = _documents(constraint_text)[0]

    package = build_single_package(RUN_ID, document)
    template = package.report_template.to_dict()

    assert package.mode == "single"
    assert list(package.to_dict()) == ["runId", "mode", "constraint", "reportTemplate"]
    assert list(template)[:3] == ["reportKind", "runId", "constraintId"]
    assert template["reportKind"] == SINGLE_REPORT_KIND
    assert template["constraintId"] == "gamma"
    assert template["constraintBlocksReceived"] == 1
    assert "summary" not in template


@pytest.mark.unit
def test_single_block_matches_batch_block(constraint_text: RenderFn) -> None:
    documents = _documents(constraint_text)
    batch = build_batch_package(RUN_ID, documents)

    for document in documents:
        single = build_single_package(RUN_ID, document)
        matching = next(b for b in batch.constraints if b.constraint_id == document.meta.id)
        assert single.constraint == matching


@pytest.mark.unit
def test_serialized_batch_layout(constraint_text: RenderFn) -> None:
    text = serialize_package(build_batch_package(RUN_ID, _documents(constraint_text)))

    payload = json.loads(text)
    assert text.endswith("}\n")
    assert list(payload) == [
        "runId",
        "mode",
        "recommendedOrder",
        "ignoredPaths",
        "constraints",
        "reportTemplate",
    ]
    assert payload["constraints"][0]["reportFields"] == ["constraint_id", "file_path", "line"]


@pytest.mark.unit
@settings(max_examples=40, deadline=None)
@given(permutation=st.permutations([0, 1, 2, 3]))
def test_batch_serialization_ignores_input_order(
    constraint_text: RenderFn, permutation: list[int]
) -> None:
    documents = _documents(constraint_text)
    shuffled = [documents[index] for index in permutation]

    assert serialize_package(build_batch_package(RUN_ID, shuffled)) == serialize_package(
        build_batch_package(RUN_ID, documents)
    )
