"""
vehicle-diagnostics — structured JSON-lines logging for diagnostic runs.

Records from the ``vehicle_diagnostics`` logger tree pass through a bounded queue
to a background listener, which writes one JSON object per line to stderr and,
when enabled, to ``<log_dir>/<run_id>/diagnostics.jsonl``. Stdout is never a sink.

Correlation fields bound with ``correlation_scope`` are stamped onto each record
in the emitting thread, so they survive the hop to the listener thread.
``structlog`` loggers are routed into the same tree by ``configure_structlog``.
"""

from __future__ import annotations

import atexit
import json
import logging
import logging.handlers
import queue
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from types import MappingProxyType
from typing import Any, Final

import structlog

from vehicle_diagnostics.constants import DEFAULT_LOG_DIR, LOGGER_NAME

_LOG_FILENAME: Final[str] = "diagnostics.jsonl"
_QUEUE_SIZE: Final[int] = 4096

# Attributes every LogRecord carries; anything else on a record came from ``extra``.
_RESERVED_ATTRS: Final[frozenset[str]] = frozenset(vars(logging.makeLogRecord({}))) | {
    "message",
    "asctime",
    "correlation",
    "taskName",
}

_CORRELATION: ContextVar[Mapping[str, str]] = ContextVar(
    "vehicle_diagnostics_correlation", default=MappingProxyType({})
)

_active_lock = threading.Lock()
_active_handle: StructuredLoggingHandle | None = None
_atexit_registered = False


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Settings for one structured logging setup."""

    run_id: str
    base_log_dir: Path | str = Path(DEFAULT_LOG_DIR)
    logger_name: str = LOGGER_NAME
    level: int | str = "WARNING"
    queue_size: int = _QUEUE_SIZE
    log_filename: str = _LOG_FILENAME
    log_to_stderr: bool = True
    log_to_file: bool = False


class _CorrelatingQueueHandler(logging.handlers.QueueHandler):
    """Queue handler that stamps correlation fields and drops records when full."""

    def __init__(self, log_queue: queue.Queue[logging.LogRecord]) -> None:
        super().__init__(log_queue)
        self.dropped = 0

    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        record.correlation = dict(_CORRELATION.get())
        return super().prepare(record)

    def enqueue(self, record: logging.LogRecord) -> None:
        # Called under the handler lock, so the counter needs no lock of its own.
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            self.dropped += 1


class _JsonLineFormatter(logging.Formatter):
    def __init__(self, run_id: str) -> None:
        super().__init__()
        self._run_id = run_id

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=UTC)
        event: dict[str, object] = {
            "timestamp": created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "run_id": self._run_id,
        }
        event.update(getattr(record, "correlation", None) or {})

        fields = {
            key: value
            for key, value in vars(record).items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }
        if fields:
            event["fields"] = fields
        return json.dumps(
            event, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str
        )


class StructuredLoggingHandle:
    """An active logging setup; ``shutdown`` drains the queue and closes every sink."""

    def __init__(
        self,
        *,
        logger: logging.Logger,
        run_id: str,
        log_path: Path | None,
        queue_handler: _CorrelatingQueueHandler,
        listener: logging.handlers.QueueListener,
        sinks: tuple[logging.Handler, ...],
    ) -> None:
        self.logger = logger
        self.run_id = run_id
        self.log_path = log_path
        self._queue_handler = queue_handler
        self._listener = listener
        self._sinks = sinks
        self._lock = threading.Lock()
        self._closed = False

    @property
    def dropped_records(self) -> int:
        return self._queue_handler.dropped

    @property
    def is_shutdown(self) -> bool:
        return self._closed

    def shutdown(self) -> None:
        with self._lock:
            if self._closed:
                return
            self.logger.removeHandler(self._queue_handler)
            self._queue_handler.close()
            # stop() enqueues a sentinel and joins, so queued records are written first.
            self._listener.stop()
            for sink in self._sinks:
                sink.flush()
                sink.close()
            self._closed = True


def setup_logging(
    observability_config: Mapping[str, object] | None = None,
    *,
    run_id: str,
    log_dir: Path | str | None = None,
    log_to_stderr: bool = True,
) -> logging.Logger:
    """Configure logging from an ``[observability]`` section; returns the package logger."""

    section = observability_config or {}
    level = section.get("log_level", "WARNING")
    base_log_dir = log_dir if log_dir is not None else section.get("log_dir", DEFAULT_LOG_DIR)
    handle = setup_structured_logging(
        LoggingConfig(
            run_id=run_id,
            base_log_dir=base_log_dir if isinstance(base_log_dir, (str, Path)) else DEFAULT_LOG_DIR,
            level=level if isinstance(level, (int, str)) else "WARNING",
            log_to_stderr=log_to_stderr,
            log_to_file=bool(section.get("log_to_file", False)),
        )
    )
    return handle.logger


def setup_structured_logging(config: LoggingConfig) -> StructuredLoggingHandle:
    """Install queue-backed JSON logging on ``config.logger_name``, replacing any previous setup."""

    global _active_handle

    shutdown_logging()

    run_id = _require_text(config.run_id, "run_id")
    logger_name = _require_text(config.logger_name, "logger_name")
    log_filename = _require_text(config.log_filename, "log_filename")
    if Path(log_filename).name != log_filename:
        raise ValueError("log_filename must not include path separators")
    if isinstance(config.queue_size, bool) or not isinstance(config.queue_size, int):
        raise ValueError(f"queue_size must be an integer, got {type(config.queue_size).__name__}")
    if config.queue_size <= 0:
        raise ValueError("queue_size must be > 0")
    level = _parse_level(config.level)

    formatter = _JsonLineFormatter(run_id)
    sinks: list[logging.Handler] = []
    log_path: Path | None = None
    if config.log_to_file:
        log_path = Path(config.base_log_dir) / run_id / log_filename
        log_path.parent.mkdir(parents=True, exist_ok=True)
        sinks.append(logging.FileHandler(log_path, encoding="utf-8"))
    if config.log_to_stderr:
        sinks.append(logging.StreamHandler())
    if not sinks:
        sinks.append(logging.NullHandler())
    for sink in sinks:
        sink.setLevel(level)
        sink.setFormatter(formatter)

    logger = logging.getLogger(logger_name)
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
        existing.close()
    logger.setLevel(level)
    logger.propagate = False

    log_queue: queue.Queue[logging.LogRecord] = queue.Queue(maxsize=config.queue_size)
    queue_handler = _CorrelatingQueueHandler(log_queue)
    listener = logging.handlers.QueueListener(log_queue, *sinks, respect_handler_level=True)
    listener.start()
    logger.addHandler(queue_handler)
    configure_structlog()

    handle = StructuredLoggingHandle(
        logger=logger,
        run_id=run_id,
        log_path=log_path,
        queue_handler=queue_handler,
        listener=listener,
        sinks=tuple(sinks),
    )
    with _active_lock:
        _active_handle = handle
    _register_atexit()
    return handle


def configure_structlog() -> None:
    """Route ``structlog`` events through the stdlib logger tree as message + ``extra`` fields."""

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.render_to_log_kwargs,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> Any:
    """Return a structlog logger bound to the stdlib logger ``name``.

    Events always land in stdlib logging, so they stay silent until a handler is
    installed and never reach stdout. Processors come from the current structlog
    configuration at call time.
    """

    return structlog.wrap_logger(
        logging.getLogger(name), wrapper_class=structlog.stdlib.BoundLogger
    )


def shutdown_logging(handle: StructuredLoggingHandle | None = None) -> None:
    """Shut down ``handle`` (default: the active setup). Safe to call repeatedly."""

    global _active_handle

    with _active_lock:
        target = handle if handle is not None else _active_handle
        if target is _active_handle:
            _active_handle = None
    if target is not None:
        target.shutdown()


def get_active_logging_handle() -> StructuredLoggingHandle | None:
    with _active_lock:
        return _active_handle


def get_correlation_context() -> dict[str, str]:
    return dict(_CORRELATION.get())


@contextmanager
def correlation_scope(**fields: str | None) -> Iterator[None]:
    """Bind correlation fields for records logged in the block; ``None`` or blank unbinds."""

    merged = dict(_CORRELATION.get())
    for key, value in fields.items():
        if value is None or not value.strip():
            merged.pop(key, None)
        else:
            merged[key] = value.strip()
    token = _CORRELATION.set(MappingProxyType(merged))
    try:
        yield
    finally:
        _CORRELATION.reset(token)


def _register_atexit() -> None:
    global _atexit_registered
    if not _atexit_registered:
        atexit.register(shutdown_logging)
        _atexit_registered = True


def _require_text(value: object, name: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{name} must be a string, got {type(value).__name__}")
    text = value.strip()
    if not text:
        raise ValueError(f"{name} must not be empty")
    return text


def _parse_level(value: int | str) -> int:
    if isinstance(value, int):
        return value
    level = logging.getLevelName(str(value).strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"unsupported logging level {value!r}")
    return level


__all__ = [
    "LoggingConfig",
    "StructuredLoggingHandle",
    "configure_structlog",
    "correlation_scope",
    "get_active_logging_handle",
    "get_correlation_context",
    "get_logger",
    "setup_logging",
    "setup_structured_logging",
    "shutdown_logging",
]
