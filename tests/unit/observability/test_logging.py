"""
cda — unit tests for observability logging

File: tests/unit/observability/test_logging.py

Purpose
- Validate JSON-lines run logging, correlation propagation, and the structlog bridge.

What this test file should cover
- JSON line validity and per-run file placement.
- Correlation field propagation across nested scopes.
- Domain structlog events landing in the run log.
- Idempotent shutdown and replacement of the previous run's handle.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING
from uuid import uuid4

import pytest
import structlog

from cda.constraints.loader import load_constraints
from cda.observability.logging import (
    LoggingConfig,
    configure_structlog,
    correlation_scope,
    get_correlation_context,
    setup_structured_logging,
    shutdown_logging,
)

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture(autouse=True)
def _cleanup_logging() -> Iterator[None]:
    yield
    shutdown_logging()
    structlog.reset_defaults()


def _logger_name() -> str:
    return f"cda.tests.logging.{uuid4().hex}"


def _read_json_lines(path: Path) -> list[dict[str, object]]:
    lines = path.read_text(encoding="utf-8").splitlines()
    return [json.loads(line) for line in lines]


@pytest.mark.unit
def test_json_lines_carry_run_id_and_correlation(tmp_path: Path) -> None:
    logger_name = _logger_name()
    handle = setup_structured_logging(
        LoggingConfig(run_id="run-json", base_log_dir=tmp_path, logger_name=logger_name)
    )
    logger = logging.getLogger(logger_name)

    with correlation_scope(constraint_id="max-file-lines"):
        logger.info("block built", extra={"report_fields": ("a", "b"), "count": 2})
    logger.warning("outside scope")

    shutdown_logging(handle)

    assert handle.log_path == tmp_path / "run-json" / "cda.jsonl"
    first, second = _read_json_lines(handle.log_path)
    assert first["message"] == "block built"
    assert first["level"] == "INFO"
    assert first["run_id"] == "run-json"
    assert first["constraint_id"] == "max-file-lines"
    assert first["fields"] == {"count": 2, "report_fields": ["a", "b"]}
    assert str(first["timestamp"]).endswith("Z")
    assert "constraint_id" not in second
    assert second["level"] == "WARNING"


@pytest.mark.unit
def test_nested_correlation_scopes_restore_outer_state() -> None:
    with correlation_scope(run_id="outer"):
        with correlation_scope(constraint_id="inner", run_id=None):
            assert get_correlation_context() == {"constraint_id": "inner"}
        assert get_correlation_context() == {"run_id": "outer"}
    assert get_correlation_context() == {}


@pytest.mark.unit
def test_structlog_events_reach_the_run_log(tmp_path: Path) -> None:
    logger_name = _logger_name()
    handle = setup_structured_logging(
        LoggingConfig(run_id="run-bridge", base_log_dir=tmp_path, logger_name=logger_name)
    )
    configure_structlog()

    structlog.get_logger(f"{logger_name}.loader").info("constraints_loaded", total=3, active=2)
    shutdown_logging(handle)

    (event,) = _read_json_lines(handle.log_path)
    assert event["message"] == "constraints_loaded"
    assert event["logger"] == f"{logger_name}.loader"
    assert event["fields"] == {"total": 3, "active": 2}


@pytest.mark.unit
def test_loader_events_use_the_cda_logger(tmp_path: Path) -> None:
    handle = setup_structured_logging(LoggingConfig(run_id="run-loader", base_log_dir=tmp_path))
    configure_structlog()

    load_constraints()
    shutdown_logging(handle)

    events = _read_json_lines(handle.log_path)
    assert [event["message"] for event in events] == ["constraints_loaded"]
    assert events[0]["logger"] == "cda.constraints.loader"
    assert events[0]["fields"]["total"] == 10  # type: ignore[index]


@pytest.mark.unit
def test_level_filtering(tmp_path: Path) -> None:
    logger_name = _logger_name()
    handle = setup_structured_logging(
        LoggingConfig(
            run_id="run-level", base_log_dir=tmp_path, logger_name=logger_name, level="warning"
        )
    )
    logger = logging.getLogger(logger_name)
    logger.info("dropped")
    logger.error("kept")
    shutdown_logging(handle)

    assert [event["message"] for event in _read_json_lines(handle.log_path)] == ["kept"]


@pytest.mark.unit
def test_shutdown_is_idempotent(tmp_path: Path) -> None:
    logger_name = _logger_name()
    handle = setup_structured_logging(
        LoggingConfig(run_id="run-shutdown", base_log_dir=tmp_path, logger_name=logger_name)
    )
    logging.getLogger(logger_name).info("only once")

    shutdown_logging(handle)
    shutdown_logging(handle)
    shutdown_logging()

    assert logging.getLogger(logger_name).handlers == []
    assert handle.dropped_records == 0
    assert [event["message"] for event in _read_json_lines(handle.log_path)] == ["only once"]


@pytest.mark.unit
def test_new_run_closes_the_previous_one(tmp_path: Path) -> None:
    first_name, second_name = _logger_name(), _logger_name()
    first = setup_structured_logging(
        LoggingConfig(run_id="run-first", base_log_dir=tmp_path, logger_name=first_name)
    )
    second = setup_structured_logging(
        LoggingConfig(run_id="run-second", base_log_dir=tmp_path, logger_name=second_name)
    )

    assert logging.getLogger(first_name).handlers == []
    assert len(logging.getLogger(second_name).handlers) == 1

    shutdown_logging()

    assert logging.getLogger(second_name).handlers == []
    assert first.log_path.exists()
    assert second.log_path.exists()


@pytest.mark.unit
@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"run_id": "  "}, "run_id must not be empty"),
        ({"log_filename": "nested/cda.jsonl"}, "path separators"),
        ({"queue_size": 0}, "queue_size must be > 0"),
        ({"level": "LOUD"}, "unsupported logging level"),
    ],
)
def test_invalid_logging_config(tmp_path: Path, overrides: dict[str, object], message: str) -> None:
    settings: dict[str, object] = {"run_id": "run-bad", "base_log_dir": tmp_path}
    settings.update(overrides)

    with pytest.raises(ValueError, match=message):
        setup_structured_logging(LoggingConfig(**settings))  # type: ignore[arg-type]
