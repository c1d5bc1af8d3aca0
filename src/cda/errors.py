"""
cda — typed error surface.

File: src/cda/errors.py

Purpose
- Categorized, caller-visible failures for bundle parsing, configuration, and I/O.

Functional requirements
- Bundle errors always name the offending constraint id (or ``global``).
- Configuration errors always name the offending key path.
- Every error maps to a process exit code; the CLI layer owns the mapping to output.

Non-functional requirements
- Deterministic messages: the same malformed input reproduces the same error text.
"""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path
from typing import Final

GLOBAL_CONSTRAINT_ID: Final[str] = "global"


class ErrorCode(StrEnum):
    """Error categories surfaced to callers."""

    FATAL = "FATAL"
    CONFIG_ERROR = "CONFIG_ERROR"
    BUNDLE_ERROR = "BUNDLE_ERROR"
    IO_ERROR = "IO_ERROR"


# All categories currently share exit code 1.
ERROR_EXIT_CODES: Final[dict[ErrorCode, int]] = {
    ErrorCode.FATAL: 1,
    ErrorCode.CONFIG_ERROR: 1,
    ErrorCode.BUNDLE_ERROR: 1,
    ErrorCode.IO_ERROR: 1,
}


class CdaError(Exception):
    """Base class for categorized failures."""

    code: ErrorCode
    message: str

    def __init__(self, code: ErrorCode, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)

    @property
    def exit_code(self) -> int:
        return ERROR_EXIT_CODES[self.code]


class BundleError(CdaError):
    """Structural failure in a constraint document or bundle."""

    constraint_id: str
    detail: str
    path: Path | None

    def __init__(self, constraint_id: str, detail: str, *, path: Path | None = None) -> None:
        self.constraint_id = constraint_id or GLOBAL_CONSTRAINT_ID
        self.detail = detail
        self.path = path
        super().__init__(
            ErrorCode.BUNDLE_ERROR,
            f"BUNDLE_ERROR [{self.constraint_id}]: {detail}",
        )


class ConfigError(CdaError):
    """Invalid project configuration or override payload."""

    key_path: str
    detail: str
    path: Path | None

    def __init__(self, key_path: str, detail: str, *, path: Path | None = None) -> None:
        self.key_path = key_path
        self.detail = detail
        self.path = path
        location = f"{path}: " if path is not None else ""
        super().__init__(ErrorCode.CONFIG_ERROR, f"{location}{key_path} {detail}")


class CdaIOError(CdaError):
    """A source file or directory could not be read."""

    path: Path

    def __init__(self, path: Path, detail: str) -> None:
        self.path = path
        super().__init__(ErrorCode.IO_ERROR, f"{path}: {detail}")


def is_cda_error(error: object) -> bool:
    return isinstance(error, CdaError)


def exit_code_for(error: BaseException) -> int:
    """Exit code for ``error``; uncategorized exceptions map to the FATAL code."""

    if isinstance(error, CdaError):
        return error.exit_code
    return ERROR_EXIT_CODES[ErrorCode.FATAL]


__all__ = [
    "BundleError",
    "CdaError",
    "CdaIOError",
    "ConfigError",
    "ERROR_EXIT_CODES",
    "ErrorCode",
    "GLOBAL_CONSTRAINT_ID",
    "exit_code_for",
    "is_cda_error",
]
