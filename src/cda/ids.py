"""Run id generation and validation."""

from __future__ import annotations

import re
import secrets
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Final

BASE36_ALPHABET: Final[str] = "0123456789abcdefghijklmnopqrstuvwxyz"
RUN_ID_SUFFIX_LENGTH: Final[int] = 6
_SEPARATOR: Final[str] = "-"

_RUN_ID_RE: Final[re.Pattern[str]] = re.compile(
    r"^(?P<timestamp>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z)-(?P<suffix>[0-9a-z]{6})$"
)

_RandomSuffix = Callable[[int], str]


def generate_run_id(
    *,
    now: datetime | None = None,
    random: _RandomSuffix | None = None,
) -> str:
    """Generate ``<UTC ISO-8601 with milliseconds>Z-<6 base36 chars>``.

    ``now`` and ``random`` are injectable for deterministic tests; ``random`` receives
    the suffix length and must return that many base36 characters.
    """
    timestamp = _format_timestamp(now if now is not None else datetime.now(tz=UTC))
    suffix_source = random if random is not None else _random_base36
    suffix = suffix_source(RUN_ID_SUFFIX_LENGTH)
    if len(suffix) != RUN_ID_SUFFIX_LENGTH or any(ch not in BASE36_ALPHABET for ch in suffix):
        raise ValueError(
            f"run id suffix must be {RUN_ID_SUFFIX_LENGTH} lowercase base36 characters, "
            f"got {suffix!r}"
        )
    return f"{timestamp}{_SEPARATOR}{suffix}"


def validate_run_id(value: str) -> None:
    """Raise ``ValueError`` when ``value`` is not a well-formed run id."""
    if not isinstance(value, str):
        raise ValueError(f"run id must be a string, got {type(value).__name__}")
    match = _RUN_ID_RE.match(value)
    if match is None:
        raise ValueError(f"malformed run id {value!r}")
    try:
        datetime.strptime(match.group("timestamp"), "%Y-%m-%dT%H:%M:%S.%fZ")
    except ValueError as exc:
        raise ValueError(f"run id timestamp is not a valid date: {value!r}") from exc


def _format_timestamp(moment: datetime) -> str:
    if moment.tzinfo is None or moment.utcoffset() is None:
        normalized = moment.replace(tzinfo=UTC)
    else:
        normalized = moment.astimezone(UTC)
    return normalized.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _random_base36(length: int) -> str:
    return "".join(secrets.choice(BASE36_ALPHABET) for _ in range(length))


__all__ = [
    "BASE36_ALPHABET",
    "RUN_ID_SUFFIX_LENGTH",
    "generate_run_id",
    "validate_run_id",
]
