"""
cda — constraint documents.

Purpose
- Parse constraint markdown into validated documents, load bundles from disk, and
  resolve project overrides onto bundle defaults.

Non-functional requirements
- Deterministic; same source text yields the same documents and the same errors.
"""

from cda.constraints.loader import (
    BUNDLED_CONSTRAINTS_DIR,
    discover_constraint_files,
    load_constraint_file,
    load_constraints,
    log_disabled_constraints,
    sort_constraints,
)
from cda.constraints.model import (
    CONSTRAINT_SECTION_ORDER,
    ConstraintDocument,
    ConstraintGroup,
    ConstraintHeader,
    ConstraintMeta,
)
from cda.constraints.overrides import (
    ConfigConstraintState,
    ConstraintOverride,
    build_config_constraint_state,
    compute_overrides_from_state,
    normalize_constraint_overrides,
    partition_constraints,
    resolve_overrides,
)
from cda.constraints.parser import parse_constraint_text

__all__ = [
    "BUNDLED_CONSTRAINTS_DIR",
    "CONSTRAINT_SECTION_ORDER",
    "ConfigConstraintState",
    "ConstraintDocument",
    "ConstraintGroup",
    "ConstraintHeader",
    "ConstraintMeta",
    "ConstraintOverride",
    "build_config_constraint_state",
    "compute_overrides_from_state",
    "discover_constraint_files",
    "load_constraint_file",
    "load_constraints",
    "log_disabled_constraints",
    "normalize_constraint_overrides",
    "parse_constraint_text",
    "partition_constraints",
    "resolve_overrides",
    "sort_constraints",
]
