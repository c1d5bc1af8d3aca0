"""
cda — constraint bundle loader.

File: src/cda/constraints/loader.py

Purpose
- Read a directory of constraint markdown files, parse each, apply project overrides,
  and return documents in enforcement order.

Functional requirements
- Duplicate constraint ids across files are rejected rather than silently overwritten.
- An empty bundle is a bundle error.
- Each call is a fresh compile from source text; nothing is cached.

Non-functional requirements
- Deterministic: file discovery is name-sorted and the result is sorted by
  ``(enforcement_order, id)`` regardless of discovery order.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any, Final

import structlog

from cda.constraints.model import ConstraintDocument
from cda.constraints.overrides import partition_constraints, resolve_overrides
from cda.constraints.parser import parse_constraint_text
from cda.errors import GLOBAL_CONSTRAINT_ID, BundleError, CdaIOError

BUNDLED_CONSTRAINTS_DIR: Final[Path] = Path(__file__).resolve().parent.parent / "bundle" / "core"
CONSTRAINT_FILE_SUFFIX: Final[str] = ".md"


def discover_constraint_files(directory: Path | str) -> list[Path]:
    """Regular ``*.md`` files directly inside ``directory``, sorted by name.

    A missing directory yields an empty list; the caller decides whether that is fatal.
    """

    root = Path(directory)
    if not root.exists():
        return []
    if not root.is_dir():
        raise CdaIOError(root, "constraint source is not a directory")
    try:
        entries = list(root.iterdir())
    except OSError as exc:
        raise CdaIOError(root, f"unable to list constraint directory: {exc}") from exc
    return sorted(
        (entry for entry in entries if entry.is_file() and entry.suffix == CONSTRAINT_FILE_SUFFIX),
        key=lambda entry: entry.name,
    )


def load_constraint_file(path: Path | str) -> ConstraintDocument:
    """Read and parse a single constraint file."""

    file_path = Path(path)
    try:
        raw_text = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CdaIOError(file_path, f"unable to read constraint file: {exc}") from exc
    return parse_constraint_text(raw_text, source_path=file_path)


def load_constraints(
    directory: Path | str | None = None,
    *,
    overrides: Mapping[str, object] | None = None,
    logger: Any | None = None,
) -> list[ConstraintDocument]:
    """Load, validate, and resolve every constraint in ``directory``.

    ``directory=None`` loads the bundled core set.
    """

    log = logger if logger is not None else structlog.get_logger(__name__)
    root = Path(directory) if directory is not None else BUNDLED_CONSTRAINTS_DIR

    files = discover_constraint_files(root)
    if not files:
        raise BundleError(GLOBAL_CONSTRAINT_ID, "No constraint markdown files found.", path=root)

    documents = [load_constraint_file(path) for path in files]
    _reject_duplicate_ids(documents)

    resolved = sort_constraints(resolve_overrides(documents, overrides))
    active, disabled = partition_constraints(resolved)
    log.info(
        "constraints_loaded",
        constraints_dir=root.as_posix(),
        total=len(resolved),
        active=len(active),
        disabled=len(disabled),
        override_count=len(overrides or {}),
    )
    return resolved


def sort_constraints(documents: Iterable[ConstraintDocument]) -> list[ConstraintDocument]:
    """Total order by ``(enforcement_order, id)``."""

    return sorted(documents, key=lambda doc: doc.meta.sort_key())


def log_disabled_constraints(
    disabled: Sequence[ConstraintDocument],
    *,
    logger: Any | None = None,
) -> None:
    """Emit one ``constraint_skipped`` event per disabled constraint."""

    log = logger if logger is not None else structlog.get_logger(__name__)
    for doc in disabled:
        log.info(
            "constraint_skipped",
            constraint_id=doc.meta.id,
            reason="disabled by configuration",
            optional=doc.meta.optional,
        )


def _reject_duplicate_ids(documents: Sequence[ConstraintDocument]) -> None:
    first_seen: dict[str, Path] = {}
    for doc in documents:
        previous = first_seen.get(doc.meta.id)
        if previous is not None:
            raise BundleError(
                doc.meta.id,
                f"Duplicate constraint id declared in {previous} and {doc.source_path}.",
                path=doc.source_path,
            )
        first_seen[doc.meta.id] = doc.source_path


__all__ = [
    "BUNDLED_CONSTRAINTS_DIR",
    "CONSTRAINT_FILE_SUFFIX",
    "discover_constraint_files",
    "load_constraint_file",
    "load_constraints",
    "log_disabled_constraints",
    "sort_constraints",
]
