"""
cda — structured logging.

File: src/cda/observability/logging.py

Purpose
- JSON-lines logging for a single run: one file per run id, optional stream sink.
- Route structlog events from the domain modules into the same stdlib pipeline.

What should be included in this file
- A canonical JSON formatter (sorted keys, UTC millisecond timestamps).
- Correlation fields carried through ``contextvars`` so nested calls inherit them.
- A queue-backed handler so emitting a record never blocks on file I/O.

Non-functional requirements
- Records dropped on a full queue are counted, never raised.
- Setup replaces any previously active handle; shutdown is idempotent.
"""

from __future__ import annotations

import atexit
import contextvars
import json
import logging
import logging.handlers
import math
import queue
import threading
import time
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Final

import structlog

DEFAULT_LOGGER_NAME: Final[str] = "cda"
DEFAULT_LOG_FILENAME: Final[str] = "cda.jsonl"
_DEFAULT_QUEUE_SIZE: Final[int] = 4096

_CORRELATION_KEYS: Final[tuple[str, ...]] = ("run_id", "constraint_id", "correlation_id")

# Anything on a record outside this set was passed through ``extra``.
_RECORD_BUILTINS: Final[frozenset[str]] = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "correlation"}

_correlation: contextvars.ContextVar[tuple[tuple[str, str], ...]] = contextvars.ContextVar(
    "cda_correlation", default=()
)

_state_lock = threading.Lock()
_active: StructuredLoggingHandle | None = None
_atexit_hooked = False


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Settings for one run's structured logging."""

    run_id: str
    base_log_dir: Path | str = Path("logs")
    logger_name: str = DEFAULT_LOGGER_NAME
    level: int | str = "INFO"
    queue_size: int = _DEFAULT_QUEUE_SIZE
    log_filename: str = DEFAULT_LOG_FILENAME
    log_to_stream: bool = False


class _CountingQueueHandler(logging.handlers.QueueHandler):
    """Attaches the correlation snapshot and counts records lost to a full queue."""

    def __init__(self, log_queue: queue.Queue[object]) -> None:
        super().__init__(log_queue)
        self.dropped = 0

    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        prepared: logging.LogRecord = super().prepare(record)
        snapshot = get_correlation_context()
        if snapshot:
            prepared.correlation = snapshot
        return prepared

    def enqueue(self, record: logging.LogRecord) -> None:
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            self.dropped += 1


class JsonLineFormatter(logging.Formatter):
    """One canonical JSON object per record."""

    def __init__(self, *, base_context: Mapping[str, str] | None = None) -> None:
        super().__init__()
        self._base_context = dict(base_context or {})

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "timestamp": _utc_millis(record.created),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_correlation_fields(record, self._base_context),
        }
        extras = {
            key: _jsonable(value)
            for key, value in vars(record).items()
            if key not in _RECORD_BUILTINS
            and key not in _CORRELATION_KEYS
            and not key.startswith("_")
        }
        if extras:
            payload["fields"] = extras
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = record.stack_info
        return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


class StructuredLoggingHandle:
    """Running log pipeline for one run id."""

    def __init__(
        self,
        *,
        logger: logging.Logger,
        run_id: str,
        log_path: Path,
        log_queue: queue.Queue[object],
        queue_handler: _CountingQueueHandler,
        sinks: tuple[logging.Handler, ...],
        listener: logging.handlers.QueueListener,
    ) -> None:
        self.logger = logger
        self.run_id = run_id
        self.log_path = log_path
        self._queue = log_queue
        self._queue_handler = queue_handler
        self._sinks = sinks
        self._listener = listener
        self._close_lock = threading.Lock()
        self._closed = False

    @property
    def dropped_records(self) -> int:
        return self._queue_handler.dropped

    def shutdown(self, *, timeout_seconds: float = 2.0) -> None:
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        deadline = time.monotonic() + max(timeout_seconds, 0.0)
        while self._queue.unfinished_tasks and time.monotonic() < deadline:
            time.sleep(0.01)
        self._listener.stop()
        self.logger.removeHandler(self._queue_handler)
        self._queue_handler.close()
        for sink in self._sinks:
            sink.flush()
            sink.close()


def setup_structured_logging(config: LoggingConfig) -> StructuredLoggingHandle:
    """Configure logging for one run; writes to ``<base_log_dir>/<run_id>/<log_filename>``."""
    global _active, _atexit_hooked

    run_id = _non_blank(config.run_id, "run_id")
    filename = _non_blank(config.log_filename, "log_filename")
    if Path(filename).name != filename:
        raise ValueError("log_filename must not include path separators")
    if config.queue_size <= 0:
        raise ValueError("queue_size must be > 0")
    level = _level_number(config.level)
    logger_name = _non_blank(config.logger_name, "logger_name")

    shutdown_logging()

    log_path = Path(config.base_log_dir) / run_id / filename
    log_path.parent.mkdir(parents=True, exist_ok=True)

    formatter = JsonLineFormatter(base_context={"run_id": run_id})
    sinks: list[logging.Handler] = [logging.FileHandler(log_path, encoding="utf-8")]
    if config.log_to_stream:
        sinks.append(logging.StreamHandler())
    for sink in sinks:
        sink.setLevel(level)
        sink.setFormatter(formatter)

    logger = logging.getLogger(logger_name)
    for stale in list(logger.handlers):
        logger.removeHandler(stale)
        stale.close()
    logger.setLevel(level)
    logger.propagate = False

    log_queue: queue.Queue[object] = queue.Queue(maxsize=config.queue_size)
    queue_handler = _CountingQueueHandler(log_queue)
    queue_handler.setLevel(level)
    listener = logging.handlers.QueueListener(log_queue, *sinks, respect_handler_level=True)
    listener.start()
    logger.addHandler(queue_handler)

    handle = StructuredLoggingHandle(
        logger=logger,
        run_id=run_id,
        log_path=log_path,
        log_queue=log_queue,
        queue_handler=queue_handler,
        sinks=tuple(sinks),
        listener=listener,
    )
    with _state_lock:
        _active = handle
        if not _atexit_hooked:
            atexit.register(shutdown_logging)
            _atexit_hooked = True
    return handle


def configure_structlog() -> None:
    """Send ``structlog.get_logger(...)`` events through stdlib logging.

    Event keyword arguments become ``extra`` fields and land under ``fields`` in the
    JSON line.
    """
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.stdlib.render_to_log_kwargs,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def shutdown_logging(
    handle: StructuredLoggingHandle | None = None,
    *,
    timeout_seconds: float = 2.0,
) -> None:
    """Stop the listener and close sinks for ``handle`` (default: the active one)."""
    global _active
    with _state_lock:
        target = handle if handle is not None else _active
        if target is not None and target is _active:
            _active = None
    if target is not None:
        target.shutdown(timeout_seconds=timeout_seconds)


def get_correlation_context() -> dict[str, str]:
    return dict(_correlation.get())


@contextmanager
def correlation_scope(**fields: str | None) -> Iterator[None]:
    """Bind correlation fields for records emitted in scope; ``None`` unbinds a key."""
    bound = get_correlation_context()
    for key, value in fields.items():
        if value is None:
            bound.pop(key, None)
        else:
            bound[_non_blank(key, "correlation key")] = _non_blank(value, "correlation value")
    token = _correlation.set(tuple(bound.items()))
    try:
        yield
    finally:
        _correlation.reset(token)


def _non_blank(value: object, label: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{label} must be a string, got {type(value).__name__}")
    if not value.strip():
        raise ValueError(f"{label} must not be empty")
    return value.strip()


def _level_number(value: int | str) -> int:
    if isinstance(value, int):
        return value
    number = logging.getLevelNamesMapping().get(value.strip().upper())
    if number is None:
        raise ValueError(f"unsupported logging level {value!r}")
    return number


def _utc_millis(epoch_seconds: float) -> str:
    stamp = datetime.fromtimestamp(epoch_seconds, tz=UTC).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")


def _correlation_fields(record: logging.LogRecord, base: Mapping[str, str]) -> dict[str, str]:
    fields = dict(base)
    snapshot = getattr(record, "correlation", None)
    if isinstance(snapshot, Mapping):
        fields.update((k, v) for k, v in snapshot.items() if isinstance(v, str))
    for key in _CORRELATION_KEYS:
        explicit = getattr(record, key, None)
        if isinstance(explicit, str) and explicit.strip():
            fields[key] = explicit.strip()
    return fields


def _jsonable(value: object) -> object:
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else repr(value)
    if isinstance(value, Path):
        return value.as_posix()
    if isinstance(value, Mapping):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if isinstance(value, (set, frozenset)):
        return sorted((_jsonable(item) for item in value), key=repr)
    return repr(value)


__all__ = [
    "DEFAULT_LOGGER_NAME",
    "DEFAULT_LOG_FILENAME",
    "JsonLineFormatter",
    "LoggingConfig",
    "StructuredLoggingHandle",
    "configure_structlog",
    "correlation_scope",
    "get_correlation_context",
    "setup_structured_logging",
    "shutdown_logging",
]
